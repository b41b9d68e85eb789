"""
=============================================================================
STEP 2: HAZE ESTIMATION & REMOVAL
=============================================================================
Purpose:
    Estimate how much atmospheric light has been scattered into every
    pixel of a photograph and invert that to recover the scene.

Theory (simplified):
    The haze imaging model:

        I(x) = J(x) · t(x) + A · (1 − t(x))

    where:
        I(x) = observed (hazy) image
        J(x) = scene radiance (the image we want back)
        t(x) = transmission — fraction of light that reaches the
               camera without being scattered
        A    = atmospheric light — a single scalar intensity here

    Solving for J:

        J(x) = (I(x) − A) / max(t(x), t0) + A

Pipeline:
    1. Pick ONE dark channel for the whole image (the minimum channel of
       the darkest pixel) and use it to collect the brightest candidates
       for the atmospheric light A.
    2. For every pixel, pick the dark channel of a 20×20 window around
       it and read the pixel's own value in that channel: t = 1 − v / A.
    3. Recover every channel of every pixel with the formula above.

Known deviations from He et al.:
    - The "dark channel" of a region is a single channel INDEX chosen
      from the region's darkest pixel, not a per-pixel min-filter map.
    - The candidate bucket for A is filled first-fit: a pixel replaces
      the first slot it beats and stops.  The bucket is therefore not a
      true top 0.1%, and A is the largest grayscale intensity left in
      it.
    - No omega factor, no guided filter, no clamping of t(x).
    All three change the output images; keep them as they are.

References:
    He, K., Sun, J., & Tang, X. (2009).
    "Single Image Haze Removal Using Dark Channel Prior."
    IEEE TPAMI, 33(12), 2341–2353.
=============================================================================
"""

import time
from dataclasses import dataclass

import numpy as np

from errors import DegenerateRegionError, InvalidRegionError
from settings import logger


# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------
WINDOW_HALF_WIDTH = 10   # Window spans [x-10, x+10) × [y-10, y+10)
TOP_FRACTION = 0.001     # Candidate bucket holds 0.1% of the region
MIN_CANDIDATES = 1       # Floor for the bucket size (0 = no floor)
T0 = 0.54                # Transmission floor used during recovery; tuned
                         # by maximising the high-frequency pixel count

# One slot of the atmospheric light candidate bucket
CANDIDATE_DTYPE = np.dtype([
    ("x", np.intp),
    ("y", np.intp),
    ("val", np.float64),
    ("intensity", np.float64),
])


@dataclass(frozen=True)
class Region:
    """Half-open rectangle [x1, x2) × [y1, y2) in pixel coordinates."""
    x1: int
    y1: int
    x2: int
    y2: int

    def __post_init__(self):
        if self.x2 <= self.x1 or self.y2 <= self.y1:
            raise InvalidRegionError(
                f"Region [{self.x1}, {self.x2}) x [{self.y1}, {self.y2}) "
                "has non-positive width or height"
            )

    @classmethod
    def full(cls, image: np.ndarray) -> "Region":
        """The region covering the whole image."""
        h, w = image.shape[:2]
        return cls(0, 0, w, h)

    @property
    def width(self) -> int:
        return self.x2 - self.x1

    @property
    def height(self) -> int:
        return self.y2 - self.y1

    @property
    def area(self) -> int:
        return self.width * self.height


def _as_channels(image: np.ndarray) -> np.ndarray:
    # Grayscale images are treated as single-channel colour images
    if image.ndim == 2:
        return image[:, :, np.newaxis]
    return image


def _check_bounds(region: Region, image: np.ndarray):
    h, w = image.shape[:2]
    if region.x1 < 0 or region.y1 < 0 or region.x2 > w or region.y2 > h:
        raise InvalidRegionError(
            f"Region [{region.x1}, {region.x2}) x [{region.y1}, {region.y2}) "
            f"lies outside the {w}x{h} image"
        )


# ===========================================================================
# 2a. DARK CHANNEL
# ===========================================================================
def min_channel(values) -> int:
    """
    Index of the smallest of `values` (at least one value).

    The first value is assumed to be the minimum and is only replaced
    by a strictly smaller one, so ties go to the lowest index.
    """
    min_val = values[0]
    min_in = 0
    for i in range(1, len(values)):
        if values[i] < min_val:
            min_val = values[i]
            min_in = i
    return min_in


def find_dark_channel(image: np.ndarray, region: Region) -> int:
    """
    Find the dark channel of an image region.

    The region's darkest pixel is the first one, in row-major order,
    whose minimum channel value is lower than that of every pixel
    before it.  Its minimum channel is the dark channel for the whole
    region.

    Args:
        image:  Image of shape (H, W, C) or (H, W).
        region: Area to search; must lie inside the image.

    Returns:
        Channel index in [0, C).

    Raises:
        InvalidRegionError: If the region lies outside the image.
    """
    _check_bounds(region, image)
    window = _as_channels(image)[region.y1:region.y2, region.x1:region.x2]

    # argmin returns the first occurrence, i.e. the row-major winner
    darkest = int(np.argmin(window.min(axis=2)))
    y, x = divmod(darkest, region.width)

    return min_channel(window[y, x])


def window_region(x: int, y: int, width: int, height: int,
                  half_width: int = WINDOW_HALF_WIDTH) -> Region:
    """
    Window used to pick the dark channel around pixel (x, y).

    The window is clipped to the image rather than re-centred, so near
    a border it simply shrinks: at (0, 0) it is [0, hw) × [0, hw).
    """
    return Region(
        max(x - half_width, 0),
        max(y - half_width, 0),
        min(x + half_width, width),
        min(y + half_width, height),
    )


def window_dark_channels(image: np.ndarray,
                         half_width: int = WINDOW_HALF_WIDTH) -> np.ndarray:
    """
    Dark channel of every pixel's window, for the whole image at once.

    Equivalent to calling `find_dark_channel(image, window_region(...))`
    for each pixel, but sweeps the image one row at a time.  The
    per-pixel minimum is padded with +inf so that clipped windows keep
    their row-major order and padding never wins.

    Args:
        image:      Image of shape (H, W, C) or (H, W).
        half_width: Half the window side (default 10).

    Returns:
        Integer array of shape (H, W) with a channel index per pixel.
    """
    if half_width < 1:
        raise InvalidRegionError(f"Window half width must be >= 1, got {half_width}")

    channels = _as_channels(image)
    h, w = channels.shape[:2]
    size = 2 * half_width

    pixel_min = channels.min(axis=2).astype(np.float64)
    pixel_channel = channels.argmin(axis=2)

    padded = np.full((h + size - 1, w + size - 1), np.inf)
    padded[half_width:half_width + h, half_width:half_width + w] = pixel_min
    windows = np.lib.stride_tricks.sliding_window_view(padded, (size, size))

    dark_channels = np.empty((h, w), dtype=np.intp)
    cols = np.arange(w)
    for y in range(h):
        darkest = windows[y].reshape(w, size * size).argmin(axis=1)
        dy, dx = np.divmod(darkest, size)
        dark_channels[y] = pixel_channel[y + dy - half_width,
                                         cols + dx - half_width]

    return dark_channels


# ===========================================================================
# 2b. ATMOSPHERIC LIGHT
# ===========================================================================
def select_light_candidates(image: np.ndarray,
                            gray: np.ndarray,
                            region: Region = None,
                            top_fraction: float = TOP_FRACTION,
                            min_candidates: int = MIN_CANDIDATES) -> np.ndarray:
    """
    Fill the candidate bucket for the atmospheric light.

    Every pixel of the region is read in the region's dark channel
    (`val`) and in the grayscale image (`intensity`).  It then replaces
    the FIRST slot whose (val, intensity) is lower than its own, val
    first and intensity as the tiebreaker, and stops looking.

    Args:
        image:          Colour image (H, W, C).
        gray:           Grayscale companion (H, W).
        region:         Area to search (default: the whole image).
        top_fraction:   Bucket size as a fraction of the region area.
        min_candidates: Lower bound for the bucket size.

    Returns:
        Structured array of CANDIDATE_DTYPE; unused slots hold -1.

    Raises:
        DegenerateRegionError: If the bucket is empty or never written.
    """
    if gray.shape[:2] != image.shape[:2]:
        raise ValueError(
            f"Grayscale image {gray.shape[:2]} does not match "
            f"colour image {image.shape[:2]}"
        )

    channels = _as_channels(image)
    if region is None:
        region = Region.full(channels)

    top_num = max(int(region.area * top_fraction), min_candidates)
    if top_num <= 0:
        raise DegenerateRegionError(
            f"A {region.width}x{region.height} region is too small to hold "
            f"any atmospheric light candidate"
        )

    bucket = np.full(top_num, -1, dtype=CANDIDATE_DTYPE)
    top_val = bucket["val"]
    top_intensity = bucket["intensity"]

    dark = find_dark_channel(channels, region)
    vals = channels[region.y1:region.y2, region.x1:region.x2, dark]
    intensities = _as_channels(gray)[region.y1:region.y2, region.x1:region.x2, 0]

    for y in range(region.y1, region.y2):
        row_vals = vals[y - region.y1].tolist()
        row_intensities = intensities[y - region.y1].tolist()
        for x, val, intensity in zip(range(region.x1, region.x2),
                                     row_vals, row_intensities):
            # Slots stay in non-increasing order, so a pixel that does
            # not beat the last slot beats none of them
            last_val = top_val[-1]
            if last_val > val or (last_val == val and top_intensity[-1] >= intensity):
                continue

            beaten = (top_val < val) | ((top_val == val) & (top_intensity < intensity))
            i = int(np.argmax(beaten))
            bucket[i] = (x, y, val, intensity)

    if not np.any(bucket["x"] >= 0):
        raise DegenerateRegionError(
            "No pixel was recorded as an atmospheric light candidate"
        )

    return bucket


def estimate_atmospheric_light(image: np.ndarray,
                               gray: np.ndarray,
                               region: Region = None,
                               top_fraction: float = TOP_FRACTION,
                               min_candidates: int = MIN_CANDIDATES) -> float:
    """
    Estimate the scalar atmospheric light A of an image region.

    A is the highest grayscale intensity in the candidate bucket (see
    `select_light_candidates`); the first such slot wins on ties.

    Returns:
        Atmospheric light on the image's intensity scale (0-255 for
        8-bit input).
    """
    bucket = select_light_candidates(image, gray, region,
                                     top_fraction, min_candidates)
    written = bucket[bucket["x"] >= 0]
    best = written[int(np.argmax(written["intensity"]))]

    logger.debug("Atmospheric light %.1f taken from pixel (%d, %d)",
                 best["intensity"], best["x"], best["y"])
    return float(best["intensity"])


# ===========================================================================
# 2c. TRANSMISSION MAP
# ===========================================================================
def compute_transmission_map(image: np.ndarray,
                             atmospheric_light: float,
                             half_width: int = WINDOW_HALF_WIDTH,
                             dark_channels: np.ndarray = None) -> np.ndarray:
    """
    Compute the transmission t(x) = 1 − v(x) / A.

    v(x) is the pixel's OWN value in the dark channel of its window,
    not the value of the window's darkest pixel.

    Args:
        image:             Colour image (H, W, C).
        atmospheric_light: Estimated A.
        half_width:        Window half width (default 10).
        dark_channels:     Precomputed `window_dark_channels` output.

    Returns:
        Transmission map, float64, shape (H, W).  Not clamped: values
        are below 0 wherever v(x) exceeds A, and -inf or NaN when A is 0.
    """
    channels = _as_channels(image).astype(np.float64)
    if dark_channels is None:
        dark_channels = window_dark_channels(channels, half_width)

    v = np.take_along_axis(channels, dark_channels[:, :, np.newaxis], axis=2)
    with np.errstate(divide="ignore", invalid="ignore"):
        return 1.0 - v[:, :, 0] / atmospheric_light


# ===========================================================================
# 2d. RADIANCE RECOVERY
# ===========================================================================
def recover_radiance(image: np.ndarray,
                     transmission: np.ndarray,
                     atmospheric_light: float,
                     t0: float = T0) -> np.ndarray:
    """
    Invert the haze model: J = (I − A) / max(t, t0) + A, per channel.

    The result is float64 and not clamped to the 0-255 range; that
    happens when it is written out.  NaN transmissions fall back to t0.
    """
    denominator = np.fmax(transmission, t0)
    if image.ndim == 3:
        denominator = denominator[:, :, np.newaxis]
    return (image.astype(np.float64) - atmospheric_light) / denominator + atmospheric_light


# ===========================================================================
# PUBLIC API
# ===========================================================================
def defog(image_bgr: np.ndarray,
          gray: np.ndarray,
          half_width: int = WINDOW_HALF_WIDTH,
          t0: float = T0,
          min_candidates: int = MIN_CANDIDATES) -> dict:
    """
    Full haze removal pipeline.

    Args:
        image_bgr: Colour image in BGR, uint8.
        gray:      Its grayscale companion.

    Returns:
        Dictionary with:
            - 'atmospheric_light': Estimated A (float)
            - 'dark_channels'    : Window dark channel per pixel (intp)
            - 'transmission_map' : t(x), float64, unclamped
            - 'output'           : Recovered image, float64, unclamped
    """
    t_start = time.time()
    atmospheric_light = estimate_atmospheric_light(
        image_bgr, gray, min_candidates=min_candidates
    )
    t_light = time.time()
    logger.info("Atmospheric light estimated: %.1f (%.3fs)",
                atmospheric_light, t_light - t_start)

    dark_channels = window_dark_channels(image_bgr, half_width)
    transmission = compute_transmission_map(
        image_bgr, atmospheric_light, half_width, dark_channels
    )
    output = recover_radiance(image_bgr, transmission, atmospheric_light, t0)
    logger.info("Transmission map and recovered image computed (%.3fs)",
                time.time() - t_light)

    return {
        "atmospheric_light": atmospheric_light,
        "dark_channels": dark_channels,
        "transmission_map": transmission,
        "output": output,
    }
