#!/usr/bin/env python3
"""
Surface Mask: tap-to-segment recolouring for still frames

Segments the surface under a tap point and recolours it.

Usage:
    python main.py IMAGE [--tap X Y | --all] [--config CONFIG_PATH] [--model MODEL]

Examples:
    python main.py room.jpg --tap 0.4 0.6 --color "#87CEEB" -o room_blue.png
    python main.py room.jpg --all -o out/
    python main.py room.jpg --model models/fastsam-s.onnx --mask-output mask.png

Without a loadable model the engine runs in demo mode and returns an
elliptical mask around the tap point.
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Optional

import cv2
import numpy as np
from loguru import logger

from surfacemask.config import load_config
from surfacemask.pipeline.orchestrator import SegmentationEngine
from surfacemask.runtime.preprocess import load_image
from surfacemask.segmentation.mask_processor import MaskProcessor, parse_hex_color


# ============================================================
# LOGGING CONFIGURATION
# ============================================================

def setup_logging(log_level: str = "INFO", log_file: Optional[str] = None):
    """Configure logging."""
    logger.remove()  # Remove default handler

    # Console output with colors
    logger.add(
        sys.stderr,
        level=log_level,
        format="<green>{time:HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | <cyan>{module}</cyan>:<cyan>{line}</cyan> | <level>{message}</level>",
        colorize=True,
    )

    # File output
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            log_file,
            level="DEBUG",
            format="{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {module}:{line} | {message}",
            rotation="10 MB",
            retention="7 days",
        )


# ============================================================
# OUTPUT
# ============================================================

def save_rgb(path: Path, image: np.ndarray):
    """Write an RGB image (OpenCV expects BGR)."""
    path.parent.mkdir(parents=True, exist_ok=True)
    if not cv2.imwrite(str(path), cv2.cvtColor(image, cv2.COLOR_RGB2BGR)):
        raise OSError(f"Failed to write {path}")


def save_mask(path: Path, mask: np.ndarray):
    """Write a 0/255 mask as a grayscale PNG."""
    path.parent.mkdir(parents=True, exist_ok=True)
    if not cv2.imwrite(str(path), mask):
        raise OSError(f"Failed to write {path}")


def run_point_query(
    engine: SegmentationEngine,
    frame: np.ndarray,
    args: argparse.Namespace,
    processor: MaskProcessor,
    color,
) -> None:
    """Segment at the tap point and write the recoloured frame."""
    tap_x, tap_y = args.tap
    selection = engine.segment_at_point(frame, tap_x, tap_y)

    if selection.used_fallback:
        reason = f": {selection.error_message}" if selection.error_message else ""
        logger.warning(f"Using fallback mask{reason}")

    bbox = processor.mask_to_bbox(selection.mask)
    logger.info(
        f"Mask at ({tap_x:.2f}, {tap_y:.2f}): {selection.area} pixels, bbox={bbox}"
    )

    output = Path(args.output)
    save_rgb(output, processor.apply_color_overlay(frame, selection.mask, color, args.opacity))
    logger.info(f"Output saved to: {output}")

    if args.mask_output:
        save_mask(Path(args.mask_output), selection.mask)
        logger.info(f"Mask saved to: {args.mask_output}")


def run_all_masks_query(
    engine: SegmentationEngine,
    frame: np.ndarray,
    args: argparse.Namespace,
    processor: MaskProcessor,
    color,
    stem: str,
) -> None:
    """Write every mask plus a combined overlay into the output directory."""
    result = engine.get_all_masks(frame)
    if result.used_fallback:
        logger.warning("No masks survived, using fallback mask")

    out_dir = Path(args.output)
    for i, mask in enumerate(result.masks):
        save_mask(out_dir / f"{stem}_mask_{i}.png", mask)

    combined = processor.combine_masks(result.masks)
    save_rgb(
        out_dir / f"{stem}_overlay.png",
        processor.apply_color_overlay(frame, combined, color, args.opacity),
    )
    logger.info(f"{len(result.masks)} mask(s) saved to: {out_dir}")


# ============================================================
# ENTRY POINT
# ============================================================

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Segment and recolour the surface under a tap point",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )

    parser.add_argument("image", type=str, help="Input image path")

    mode = parser.add_mutually_exclusive_group()
    mode.add_argument(
        "--tap",
        type=float,
        nargs=2,
        metavar=("X", "Y"),
        default=(0.5, 0.5),
        help="Normalized tap point in [0, 1] (default: 0.5 0.5)",
    )
    mode.add_argument(
        "--all",
        action="store_true",
        help="Write every detected mask instead of selecting one",
    )

    parser.add_argument("--config", "-c", type=str, default=None, help="Path to configuration file")
    parser.add_argument("--model", "-m", type=str, default=None, help="ONNX model path (overrides config)")
    parser.add_argument("--size", type=int, default=None, help="Model input size (overrides config)")
    parser.add_argument("--confidence", type=float, default=None, help="Confidence threshold")
    parser.add_argument("--iou", type=float, default=None, help="NMS IoU threshold")
    parser.add_argument("--mask-threshold", type=float, default=None, help="Sigmoid mask threshold")

    parser.add_argument(
        "--output", "-o",
        type=str,
        default=None,
        help="Output image (point mode) or directory (--all)",
    )
    parser.add_argument("--mask-output", type=str, default=None, help="Also save the raw mask PNG")
    parser.add_argument("--color", type=str, default="#87CEEB", help="Overlay colour (default: #87CEEB)")
    parser.add_argument("--opacity", type=float, default=0.5, help="Overlay opacity (default: 0.5)")

    parser.add_argument(
        "--log-level",
        type=str,
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: INFO)",
    )
    parser.add_argument("--log-file", type=str, default=None, help="Optional log file path")

    return parser


def main(argv=None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)

    setup_logging(args.log_level, args.log_file)

    try:
        color = parse_hex_color(args.color)
        config = load_config(
            args.config,
            model_path=args.model,
            model_input_size=args.size,
            confidence_threshold=args.confidence,
            iou_threshold=args.iou,
            mask_threshold=args.mask_threshold,
        )
        frame = load_image(args.image)
    except (ValueError, FileNotFoundError) as e:
        logger.error(str(e))
        return 1

    image_path = Path(args.image)
    if args.output is None:
        args.output = (
            str(image_path.parent / f"{image_path.stem}_masks")
            if args.all
            else str(image_path.with_name(f"{image_path.stem}_recolored.png"))
        )

    engine = SegmentationEngine(config)
    if not engine.initialize():
        logger.warning("Running in demo mode (no model loaded)")

    processor = MaskProcessor()
    try:
        if args.all:
            run_all_masks_query(engine, frame, args, processor, color, image_path.stem)
        else:
            run_point_query(engine, frame, args, processor, color)
    finally:
        engine.release()

    return 0


if __name__ == "__main__":
    sys.exit(main())
