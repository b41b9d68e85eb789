"""
=============================================================================
STEP 3: HIGH-FREQUENCY PIXEL COUNT
=============================================================================
Purpose:
    Put a number on how much detail an image carries, so the hazy input
    and the defogged output can be compared.

Method:
    1. Convert the image to grayscale (float32).
    2. Forward 2-D DFT, keeping the real (CCS-packed) output.
    3. Binary threshold at 127 (> 127 → 255, else 0).
    4. Count the non-zero cells.

    A higher count is read as more retained high-frequency detail, i.e.
    less residual haze or blur.

Design Notes:
    - This is a diagnostic only; nothing in the pipeline uses it to
      change the recovered image.
    - The threshold is absolute, so counts are only comparable between
      images of the same size.
=============================================================================
"""

import cv2
import numpy as np

from preprocessing import to_grayscale


# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------
THRESHOLD = 127
MAX_VALUE = 255


def count_high_frequency(image_bgr: np.ndarray,
                         threshold: float = THRESHOLD) -> int:
    """
    Count the DFT cells of an image whose real part exceeds `threshold`.

    Args:
        image_bgr: Colour image (BGR).  Float images are saturated to
                   uint8 before the grayscale conversion, as if they had
                   been stored in an 8-bit image first.
        threshold: Binary threshold applied to the DFT output.

    Returns:
        Number of non-zero cells after thresholding.
    """
    if image_bgr.ndim == 2:
        gray = image_bgr
        if gray.dtype != np.uint8:
            gray = np.clip(np.rint(gray), 0, 255).astype(np.uint8)
    else:
        gray = to_grayscale(image_bgr)

    real = cv2.dft(gray.astype(np.float32), flags=cv2.DFT_REAL_OUTPUT)
    _, binary = cv2.threshold(real, threshold, MAX_VALUE, cv2.THRESH_BINARY)

    return int(cv2.countNonZero(binary))


def compare_metrics(before: int, after: int) -> dict:
    """
    Summarise a before/after pair of high-frequency counts.

    Returns:
        Dictionary with 'before', 'after', 'delta' (after − before) and
        'ratio' (after / before, None when before is 0).
    """
    return {
        "before": before,
        "after": after,
        "delta": after - before,
        "ratio": round(after / before, 4) if before else None,
    }
