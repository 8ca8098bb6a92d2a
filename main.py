"""
Vision Models CLI Entrypoint.

Responsibility:
    Parse command-line arguments, configure the application, wire
    together the model wrapper and I/O handlers, and run the main
    processing loop.

Usage:
    python main.py --source images/                          # FaceBoxes, JSON output
    python main.py --source face.jpg --model-type retinaface_pt \
        --model models/retinaface.onnx --output-mode save_image,save_json
    python main.py --source lowres.png --model-type super_resolution \
        --model models/sr.onnx --output-mode save_image
    python main.py --config my_config.yaml

This module is the executable entry point. It should not be imported
by other modules.
"""

import argparse
import dataclasses
import logging
import sys
import time

# Configure logging before importing local modules
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger("main")

from vision_models.config import SUPER_RESOLUTION, AppConfig, load_config, validate_config
from vision_models.detector import Detector
from vision_models.input_handler import iter_images, list_images
from vision_models.output_handler import OutputHandler
from vision_models.super_resolution import SuperResolutionModel


def parse_args() -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Vision model wrappers: face detection and super-resolution CLI",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )

    parser.add_argument("--source", type=str, help="Image file or directory of images.")
    parser.add_argument("--config", type=str, help="Path to YAML configuration file.")
    parser.add_argument(
        "--model-type",
        type=str,
        choices=["faceboxes", "retinaface_pt", SUPER_RESOLUTION],
        help="Model wrapper to use. Overrides config.",
    )
    parser.add_argument("--model", type=str, help="Path to the network file. Overrides config.")
    parser.add_argument(
        "--confidence",
        type=float,
        help="Detection confidence threshold (0.0 - 1.0). Overrides config.",
    )
    parser.add_argument(
        "--iou",
        type=float,
        help="NMS IoU threshold (0.0 - 1.0). Overrides config.",
    )
    parser.add_argument(
        "--backend",
        type=str,
        choices=["cpu", "cuda"],
        help="Compute backend preference. Overrides config.",
    )
    parser.add_argument(
        "--output-mode",
        type=str,
        help="Output mode(s), comma-separated: display, save_image, save_json, "
             "save_csv. Overrides config.",
    )
    parser.add_argument(
        "--output-path",
        type=str,
        help="Directory for output artifacts. Overrides config.",
    )

    return parser.parse_args()


def apply_cli_overrides(config: AppConfig, args: argparse.Namespace) -> AppConfig:
    """Return a copy of config with command-line values applied and re-validated."""
    model = config.model
    if args.model_type is not None:
        model = dataclasses.replace(model, model_type=args.model_type)
    if args.model is not None:
        model = dataclasses.replace(model, model_path=args.model)
    if args.backend is not None:
        model = dataclasses.replace(model, backend=args.backend)

    detection = config.detection
    if args.confidence is not None:
        detection = dataclasses.replace(detection, confidence_threshold=args.confidence)
    if args.iou is not None:
        detection = dataclasses.replace(detection, iou_threshold=args.iou)

    input_cfg = config.input
    if args.source is not None:
        input_cfg = dataclasses.replace(input_cfg, source=args.source)

    output = config.output
    if args.output_mode is not None:
        output = dataclasses.replace(output, mode=args.output_mode.lower())
    if args.output_path is not None:
        output = dataclasses.replace(output, save_path=args.output_path)

    config = dataclasses.replace(
        config, model=model, detection=detection, input=input_cfg, output=output,
    )
    validate_config(config)
    return config


def main() -> int:
    """Main execution loop."""
    args = parse_args()

    # 1. Load Configuration (CLI args > ENV > YAML > Defaults)
    try:
        config = apply_cli_overrides(load_config(args.config), args)
        logger.info("Configuration active for this run.")
    except (FileNotFoundError, ValueError) as e:
        logger.error("Configuration error: %s", e)
        return 1

    # 2. Initialize Components
    try:
        if config.model.model_type == SUPER_RESOLUTION:
            model = SuperResolutionModel(config)
        else:
            model = Detector(config)
        paths = list_images(config.input.source)
        output_handler = OutputHandler(config)

    except (FileNotFoundError, ValueError, RuntimeError) as e:
        logger.error("Initialization failed: %s", e)
        return 1

    # 3. Processing Loop
    image_count = 0
    start_time = time.perf_counter()

    try:
        for image_id, frame in iter_images(paths, config.input.resize_width):
            image_count += 1

            if isinstance(model, SuperResolutionModel):
                should_continue = output_handler.process_image(image_id, model.upscale(frame))
            else:
                detections = model.detect(frame)
                logger.info("%s: %d detection(s)", image_id, len(detections))
                should_continue = output_handler.process_detections(image_id, frame, detections)

            if not should_continue:
                logger.info("Stopping loop per user request.")
                break

    except KeyboardInterrupt:
        logger.info("Interrupted by user.")
    except Exception as e:
        logger.exception("Runtime error during processing: %s", e)
        return 1
    finally:
        # 4. Cleanup
        elapsed = time.perf_counter() - start_time
        output_handler.finalize()
        logger.info(
            "Processing finished. Total images: %d in %.2fs.",
            image_count, elapsed,
        )

    return 0


if __name__ == "__main__":
    sys.exit(main())
