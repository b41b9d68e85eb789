"""
=============================================================================
SAMPLE IMAGE GENERATOR
=============================================================================
Purpose:
    Generate a synthetic hazy outdoor scene for trying out the defogging
    pipeline when no real photograph is available.

    The generated image simulates:
        - A gradient sky
        - Simple building silhouettes with lit windows
        - A road surface
        - A controllable amount of haze, added with the same model the
          pipeline inverts:  I = J·t + A·(1 − t)

    The scene is not meant to be realistic; it has enough dark detail
    for the dark channel and enough bright sky for the atmospheric light.

Usage:
    python generate_sample.py               # Default medium haze
    python generate_sample.py --haze 0.8    # Heavy haze
    python generate_sample.py --haze 0.1    # Clear day
=============================================================================
"""

import os
import argparse

import cv2
import numpy as np


ATMOSPHERIC_LIGHT = 235.0   # Scalar haze intensity blended into the scene


def render_scene(width: int = 640, height: int = 480, seed: int = 123) -> np.ndarray:
    """
    Draw the haze-free scene J as a float64 BGR canvas.

    Regions:
        1. Sky (top 40%)   — blue-to-white gradient
        2. Buildings (mid) — dark rectangular silhouettes
        3. Road (bottom)   — grey surface with markings
    """
    canvas = np.zeros((height, width, 3), dtype=np.float64)

    # ----- Sky (top 40%) -----
    sky_end = max(int(height * 0.40), 1)
    for y in range(sky_end):
        ratio = y / sky_end
        canvas[y, :] = [235, 180 + 60 * ratio, 135 + 100 * ratio]  # BGR

    # ----- Buildings (40% – 75%) -----
    building_end = int(height * 0.75)
    canvas[sky_end:building_end, :] = [160, 160, 160]

    rng = np.random.RandomState(seed)
    num_buildings = 8
    building_width_range = (max(width // 12, 1), max(width // 6, 2))
    gap = width // (num_buildings + 2)

    for i in range(num_buildings):
        bw = rng.randint(*building_width_range)
        bh = rng.randint(int(height * 0.15), int(height * 0.35) + 1)
        bx = gap * (i + 1) + rng.randint(-20, 20)
        bx = int(max(0, min(bx, width - bw)))
        bw, by = int(bw), int(building_end - bh)

        shade = int(rng.randint(20, 90))
        colour = [shade, shade + int(rng.randint(-10, 10)), shade + int(rng.randint(-5, 15))]
        cv2.rectangle(canvas, (bx, by), (bx + bw, building_end), colour, -1)

        win_size = 6
        for wy in range(by + 8, building_end - 8, 14):
            for wx in range(bx + 6, bx + bw - 6, 12):
                if rng.random_sample() > 0.3:
                    cv2.rectangle(canvas, (wx, wy),
                                  (wx + win_size, wy + win_size),
                                  [180, 200, 220], -1)

    # ----- Road (bottom 25%) -----
    canvas[building_end:, :] = [60, 60, 65]
    for x in range(0, width, 60):
        cv2.rectangle(canvas, (x, height - 20),
                      (x + 30, height - 16), [200, 200, 200], -1)

    return canvas


def add_haze(scene: np.ndarray, haze_level: float,
             atmospheric_light: float = ATMOSPHERIC_LIGHT) -> np.ndarray:
    """
    Blend a scene toward the atmospheric light.

    Transmission falls off slightly toward the top of the frame (far
    away), from 1 − haze_level at the top to 1 − 0.85·haze_level at the
    bottom, and never drops below 0.05.

    Returns:
        Hazy image, BGR uint8.
    """
    height = scene.shape[0]
    depth_factor = 1.0 - (np.arange(height) / height) * 0.15
    t = np.maximum(1.0 - haze_level * depth_factor, 0.05)[:, np.newaxis, np.newaxis]

    hazy = scene * t + atmospheric_light * (1 - t)
    return np.clip(hazy, 0, 255).astype(np.uint8)


def generate_hazy_scene(width: int = 640,
                        height: int = 480,
                        haze_level: float = 0.4,
                        seed: int = 123) -> np.ndarray:
    """
    Generate a synthetic urban scene with controllable haze.

    Args:
        width:      Image width in pixels.
        height:     Image height in pixels.
        haze_level: Float in [0, 1].  0 = perfectly clear, 1 = whiteout.
        seed:       Seed for the building layout.

    Returns:
        Synthetic image as a BGR uint8 NumPy array.
    """
    return add_haze(render_scene(width, height, seed), haze_level)


def main():
    parser = argparse.ArgumentParser(
        description="Generate synthetic hazy scenes for DEFOG testing."
    )
    parser.add_argument(
        "--haze", type=float, default=0.4,
        help="Haze level: 0.0 (clear) to 1.0 (whiteout). Default: 0.4"
    )
    parser.add_argument(
        "--output", type=str, default="sample_images/sample_urban.jpg",
        help="Output image path."
    )
    args = parser.parse_args()

    out_dir = os.path.dirname(args.output) or "."
    os.makedirs(out_dir, exist_ok=True)
    os.makedirs("sample_images", exist_ok=True)

    print(f"Generating synthetic urban scene (haze = {args.haze})...")
    cv2.imwrite(args.output, generate_hazy_scene(haze_level=args.haze))
    print(f"Saved to {args.output}")

    # Also generate a clear and heavy-haze variant for comparison
    cv2.imwrite("sample_images/sample_clear.jpg", generate_hazy_scene(haze_level=0.1))
    print("Saved sample_images/sample_clear.jpg (haze=0.1)")

    cv2.imwrite("sample_images/sample_heavy_haze.jpg", generate_hazy_scene(haze_level=0.8))
    print("Saved sample_images/sample_heavy_haze.jpg (haze=0.8)")


if __name__ == "__main__":
    main()
