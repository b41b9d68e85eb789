"""
=============================================================================
STEP 4: OUTPUT — IMAGE WRITING, DISPLAY & SUMMARY
=============================================================================
Purpose:
    Everything that happens after the numeric core:
        1. Saturate the transmission map and recovered image to uint8.
        2. Write `map.png` and `out.png`.
        3. Optionally show input, map and output in an OpenCV window.
        4. Optionally save a side-by-side Matplotlib summary figure.
        5. Build a short text report of the run.

Design Notes:
    The core never clamps.  Transmission values outside [0, 1] and
    recovered intensities outside [0, 255] are legal there; this module
    is the ONLY place they are rounded and saturated, the same way an
    8-bit image buffer would store them.
=============================================================================
"""

import os
import textwrap

import cv2
import numpy as np
import matplotlib
import matplotlib.pyplot as plt

import settings
from errors import OutputWriteError
from preprocessing import ensure_rgb

# Use non-interactive backend so the module works headlessly
matplotlib.use("Agg")


# ---------------------------------------------------------------------------
# Report Text
# ---------------------------------------------------------------------------
REPORT_TEMPLATE = textwrap.dedent("""\
+====================================================================+
|                        DEFOG -- RUN SUMMARY                        |
+====================================================================+
|  Image size:              {width:>5d} x {height:<5d}                          |
|  Atmospheric light:       {light:>9.1f}                                |
|  High-frequency (before): {before:>9d}                                |
|  High-frequency (after):  {after:>9d}                                |
|  Change:                  {delta:>+9d}                                |
+====================================================================+
""")


def to_uint8(image: np.ndarray) -> np.ndarray:
    """Round and saturate an image to the 0-255 range of uint8; NaN becomes 0."""
    return np.clip(np.rint(np.nan_to_num(image, nan=0.0)), 0, 255).astype(np.uint8)


def transmission_to_image(transmission: np.ndarray) -> np.ndarray:
    """Scale t(x) by 255 and saturate it into a grayscale map image."""
    return to_uint8(transmission * 255.0)


def save_outputs(transmission: np.ndarray,
                 output: np.ndarray,
                 output_dir: str = settings.output_dir,
                 map_name: str = settings.map_name,
                 out_name: str = settings.out_name) -> dict:
    """
    Write the transmission map and the recovered image to disk.

    Args:
        transmission: Transmission map t(x), float64, unclamped.
        output:       Recovered BGR image, float64, unclamped.
        output_dir:   Destination directory (created if missing).

    Returns:
        Dictionary with the written 'map' and 'out' paths.

    Raises:
        OutputWriteError: If the directory or an image cannot be written.
    """
    try:
        os.makedirs(output_dir, exist_ok=True)
    except OSError as e:
        raise OutputWriteError(f"Could not create output directory '{output_dir}': {e}") from e

    map_path = os.path.join(output_dir, map_name)
    out_path = os.path.join(output_dir, out_name)

    for path, image in ((map_path, transmission_to_image(transmission)),
                        (out_path, to_uint8(output))):
        if not cv2.imwrite(path, image):
            raise OutputWriteError(f"Could not write image to '{path}'")
        settings.logger.info("Saved %s", path)

    return {"map": map_path, "out": out_path}


def save_summary_image(original_bgr: np.ndarray,
                       transmission: np.ndarray,
                       output: np.ndarray,
                       metrics: dict,
                       output_path: str):
    """
    Save a three-panel figure: input, transmission map, defogged image,
    with the high-frequency counts underneath.
    """
    directory = os.path.dirname(output_path)
    if directory:
        os.makedirs(directory, exist_ok=True)

    fig, axes = plt.subplots(1, 3, figsize=(18, 6))

    axes[0].imshow(ensure_rgb(original_bgr))
    axes[0].set_title("Original Image", fontsize=13, fontweight="bold")

    im = axes[1].imshow(np.clip(transmission, 0.0, 1.0), cmap="jet",
                        vmin=0.0, vmax=1.0)
    axes[1].set_title("Transmission Map\n(Blue = Hazy · Red = Clear)",
                      fontsize=13, fontweight="bold")
    cbar = fig.colorbar(im, ax=axes[1], fraction=0.046, pad=0.04)
    cbar.set_label("t(x)", fontsize=10)

    axes[2].imshow(ensure_rgb(to_uint8(output)))
    axes[2].set_title("Defogged Image", fontsize=13, fontweight="bold")

    for ax in axes:
        ax.axis("off")

    info_text = (
        f"High-frequency pixels before: {metrics['before']}  |  "
        f"after: {metrics['after']}  |  "
        f"change: {metrics['delta']:+d}"
    )
    fig.text(0.5, 0.02, info_text, ha="center", fontsize=11,
             fontweight="bold")

    fig.tight_layout(rect=[0, 0.06, 1, 0.95])
    fig.savefig(output_path, dpi=150, bbox_inches="tight")
    plt.close(fig)
    settings.logger.info("Summary image saved to %s", output_path)


def show_images(original_bgr: np.ndarray,
                transmission: np.ndarray,
                output: np.ndarray,
                window_name: str = "disp"):
    """
    Show input, transmission map and output one after another in a
    single OpenCV window, waiting for a key press between them.
    """
    cv2.namedWindow(window_name, cv2.WINDOW_AUTOSIZE)
    try:
        for image in (original_bgr,
                      transmission_to_image(transmission),
                      to_uint8(output)):
            cv2.imshow(window_name, image)
            cv2.waitKey(0)
    finally:
        cv2.destroyAllWindows()


def generate_report(image_shape: tuple,
                    atmospheric_light: float,
                    metrics: dict) -> str:
    """Human-readable summary of one run."""
    height, width = image_shape[:2]
    return REPORT_TEMPLATE.format(
        width=width,
        height=height,
        light=atmospheric_light,
        before=metrics["before"],
        after=metrics["after"],
        delta=metrics["delta"],
    )
