"""
=============================================================================
STEP 1: IMAGE LOADING & PREPARATION
=============================================================================
Purpose:
    Turn an image file into the arrays the defogging core works on.

Operations:
    1. Decode the image from disk (always as 3-channel BGR).
    2. Optionally downscale it (preserving aspect ratio).
    3. Build the grayscale companion used by the atmospheric light
       estimator and by the high-frequency metric.

Design Notes:
    - No blur or other filtering is applied.  The transmission map is
      built from raw pixel values and any smoothing would change which
      channel a window selects.
    - Downscaling is off by default; the command line exposes it for
      large photographs.
=============================================================================
"""

import cv2
import numpy as np

from errors import InputDecodeError


def load_image(image_path: str) -> np.ndarray:
    """
    Load a colour image from the filesystem.

    Args:
        image_path: Absolute or relative path to the image file.

    Returns:
        The image as a uint8 NumPy array of shape (H, W, 3), BGR order.

    Raises:
        InputDecodeError: If the file is missing or cannot be decoded.
    """
    image = cv2.imread(str(image_path), cv2.IMREAD_COLOR)
    if image is None:
        raise InputDecodeError(
            f"Could not load image at '{image_path}'. "
            "Please check the path and file format."
        )
    return image


def resize_image(image: np.ndarray, max_dim: int = None) -> np.ndarray:
    """
    Resize the image so that its largest dimension equals `max_dim`,
    preserving the original aspect ratio.

    Only downscales; a falsy `max_dim` or an already small image is
    returned as a copy.

    Args:
        image:   Input image (BGR, uint8).
        max_dim: Target for the largest dimension, or None.

    Returns:
        Resized image (BGR, uint8).
    """
    if not max_dim:
        return image.copy()

    h, w = image.shape[:2]
    scale = max_dim / max(h, w)

    if scale >= 1.0:
        return image.copy()

    new_w = max(int(w * scale), 1)
    new_h = max(int(h * scale), 1)

    # INTER_AREA is best for downsampling (avoids aliasing)
    return cv2.resize(image, (new_w, new_h), interpolation=cv2.INTER_AREA)


def to_grayscale(image_bgr: np.ndarray) -> np.ndarray:
    """
    Luminance-weighted single-channel companion of a BGR image.

    The weights are applied in RGB order to the BGR data, so blue gets
    the red weight.  The atmospheric light and the high-frequency
    counts are calibrated against these weights.

    Float images (e.g. an unclamped recovered image) are saturated to
    uint8 first, matching an 8-bit grayscale buffer.
    """
    if image_bgr.dtype != np.uint8:
        image_bgr = np.clip(np.rint(np.nan_to_num(image_bgr, nan=0.0)), 0, 255).astype(np.uint8)
    # RGB2GRAY on BGR data on purpose
    return cv2.cvtColor(image_bgr, cv2.COLOR_RGB2GRAY)


def ensure_rgb(image_bgr: np.ndarray) -> np.ndarray:
    """
    Convert a BGR image (OpenCV default) to RGB for Matplotlib/Streamlit.
    """
    return cv2.cvtColor(image_bgr, cv2.COLOR_BGR2RGB)


def preprocess(image_path: str, max_dim: int = None) -> dict:
    """
    Full loading pipeline.

    Args:
        image_path: Path to the input image.
        max_dim:    Optional largest dimension after downscaling.

    Returns:
        Dictionary with the following keys:
            - 'original_bgr': Decoded (and possibly resized) image, BGR.
            - 'original_rgb': Same image in RGB (for display).
            - 'gray'        : Grayscale companion, uint8.
    """
    raw = load_image(image_path)
    resized = resize_image(raw, max_dim)

    return {
        "original_bgr": resized,
        "original_rgb": ensure_rgb(resized),
        "gray": to_grayscale(resized),
    }
