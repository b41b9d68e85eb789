"""
=============================================================================
DEFOG — Single Image Haze Removal
=============================================================================
Main entry point that orchestrates the full pipeline:

    Image → Load → Metric (before) → Haze Removal → Output → Metric (after)

Usage:
    python main.py path/to/hazy_image.jpg
    python main.py hazy.jpg --output-dir results --summary results/summary.png

Writes `map.png` (transmission map) and `out.png` (defogged image) and
prints the number of high-frequency pixels before and after defogging.
=============================================================================
"""

import sys
import argparse
import time

import settings
from settings import logger
from errors import DefogError, InputDecodeError
from preprocessing import preprocess
from haze_estimation import defog
from haze_metric import count_high_frequency, compare_metrics
from output_handler import (
    save_outputs,
    save_summary_image,
    show_images,
    generate_report,
)


def run_pipeline(image_path: str,
                 output_dir: str = settings.output_dir,
                 max_dim: int = settings.max_dimension,
                 show: bool = False,
                 summary_path: str = None) -> dict:
    """
    Execute the full defogging pipeline on a single image.

    Pipeline steps:
        1. Load the input image and its grayscale companion.
        2. Count high-frequency pixels in the input.
        3. Estimate atmospheric light, transmission map and radiance.
        4. Write map.png / out.png (and optional display / summary).
        5. Count high-frequency pixels in the output.

    Args:
        image_path:   Path to the hazy input image.
        output_dir:   Where map.png and out.png are written.
        max_dim:      Optional downscale bound for the largest side.
        show:         Display input, map and output in a window.
        summary_path: Optional path of a Matplotlib summary figure.

    Returns:
        Dictionary with 'atmospheric_light', 'transmission_map',
        'output', 'metrics' and 'paths'.
    """
    # STEP 1: load
    t0 = time.time()
    loaded = preprocess(image_path, max_dim)
    image = loaded["original_bgr"]
    h, w = image.shape[:2]
    logger.info("Image loaded: %dx%d (%.3fs)", w, h, time.time() - t0)

    # STEP 2: metric before
    before = count_high_frequency(image)
    print(f"Number of high-frequency pixels in the original image: {before}")

    # STEP 3: haze removal
    t0 = time.time()
    result = defog(image, loaded["gray"])
    logger.info("Defogging took %.3fs", time.time() - t0)

    # STEP 4: output
    paths = save_outputs(result["transmission_map"], result["output"], output_dir)

    # STEP 5: metric after
    after = count_high_frequency(result["output"])
    print(f"Number of high-frequency pixels in the defogged image: {after}")

    metrics = compare_metrics(before, after)
    logger.info("\n%s", generate_report(image.shape,
                                        result["atmospheric_light"], metrics))

    if summary_path:
        save_summary_image(image, result["transmission_map"],
                           result["output"], metrics, summary_path)
    if show:
        show_images(image, result["transmission_map"], result["output"])

    return {
        "atmospheric_light": result["atmospheric_light"],
        "transmission_map": result["transmission_map"],
        "output": result["output"],
        "metrics": metrics,
        "paths": paths,
    }


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="DEFOG — remove atmospheric haze from a single photograph",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=("Example:\n"
                "  python main.py sample_images/sample_urban.jpg\n\n"
                "Writes map.png and out.png to the output directory."),
    )
    parser.add_argument(
        "image",
        help="Path to a hazy RGB image (JPEG/PNG).",
    )
    parser.add_argument(
        "--output-dir", "-o",
        default=settings.output_dir,
        help="Directory for map.png and out.png (default: current directory).",
    )
    parser.add_argument(
        "--max-dim",
        type=int,
        default=settings.max_dimension,
        help="Downscale so the largest side is at most this many pixels.",
    )
    parser.add_argument(
        "--show",
        action="store_true",
        help="Display input, transmission map and output (press a key to advance).",
    )
    parser.add_argument(
        "--summary",
        default=None,
        help="Also save a side-by-side summary figure to this path.",
    )
    return parser


# ===========================================================================
# CLI ENTRY POINT
# ===========================================================================
def main(argv=None) -> int:
    """Parse CLI arguments, run the pipeline and return the exit code."""
    args = build_parser().parse_args(argv)

    try:
        run_pipeline(
            args.image,
            output_dir=args.output_dir,
            max_dim=args.max_dim,
            show=args.show,
            summary_path=args.summary,
        )
    except InputDecodeError as e:
        logger.error("%s", e)
        return 1
    except DefogError as e:
        logger.error("Defogging failed: %s", e)
        return 2

    return 0


if __name__ == "__main__":
    sys.exit(main())
