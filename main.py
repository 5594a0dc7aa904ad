"""
YuNet Post-processing CLI Entrypoint.

Responsibility:
    Parse command-line arguments, configure the predictor, read raw
    model outputs saved by an inference run, and print the detected
    face boxes as JSON.

Usage:
    python main.py --tensors outputs.npz
    python main.py --tensors outputs.npz --min-score 0.7 --max-iou 0.3
    python main.py --tensors outputs.npz --image-size 1280x720
    python main.py --tensors outputs.npz --config my_config.yaml

The .npz archive holds the three model outputs under the keys
'offsets', 'confidences' and 'ious' (or positionally as arr_0..arr_2,
as written by numpy.savez without keywords).

This module is the executable entry point. It should not be imported
by other modules.
"""

import argparse
import json
import logging
import sys
from dataclasses import replace
from pathlib import Path
from typing import List, Optional, Tuple

import numpy as np
import yaml

# Configure logging before importing local modules
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%H:%M:%S",
    stream=sys.stderr,
)
logger = logging.getLogger("main")

from yunet.config import AppConfig, load_config, parse_size
from yunet.errors import YuNetError
from yunet.mapping import AspectMapper
from yunet.predictor import Predictor

_NAMED_KEYS = ("offsets", "confidences", "ious")
_POSITIONAL_KEYS = ("arr_0", "arr_1", "arr_2")


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="YuNet face detector post-processing",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )

    parser.add_argument(
        "--tensors",
        type=str,
        required=True,
        help="Path to an .npz archive with the offsets, confidences and ious outputs.",
    )
    parser.add_argument(
        "--config",
        type=str,
        help="Path to YAML configuration file.",
    )
    parser.add_argument(
        "--min-score",
        type=float,
        help="Minimum candidate score (0.0 - 1.0). Overrides config.",
    )
    parser.add_argument(
        "--max-iou",
        type=float,
        help="Maximum IoU between kept boxes (0.0 - 1.0). Overrides config.",
    )
    parser.add_argument(
        "--input-size",
        type=str,
        help="Model input size as WxH, e.g. 320x320. Overrides config.",
    )
    parser.add_argument(
        "--image-size",
        type=str,
        help="Original image size as WxH. When given, boxes are mapped "
             "back into the original image.",
    )
    parser.add_argument(
        "--aspect-mode",
        type=str,
        choices=["fit", "fill", "crop"],
        help="How the image was fit into the model input. Overrides config.",
    )

    return parser.parse_args(argv)


def apply_overrides(config: AppConfig, args: argparse.Namespace) -> AppConfig:
    """Return a copy of config with CLI arguments applied."""
    model = config.model
    detection = config.detection

    if args.input_size is not None:
        model = replace(model, input_size=parse_size(args.input_size))
    if args.aspect_mode is not None:
        model = replace(model, aspect_mode=args.aspect_mode)
    if args.min_score is not None:
        detection = replace(detection, min_score=args.min_score)
    if args.max_iou is not None:
        detection = replace(detection, max_iou=args.max_iou)

    return replace(config, model=model, detection=detection)


def load_tensors(path: str) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Read the three model outputs from an .npz archive.

    Raises:
        FileNotFoundError: If the archive does not exist.
        KeyError: If the archive lacks the expected arrays.
        ValueError: If the file is not an .npz archive.
    """
    resolved = Path(path)
    if not resolved.is_file():
        raise FileNotFoundError(f"Tensor archive not found: {resolved}")

    archive = np.load(resolved)
    if not isinstance(archive, np.lib.npyio.NpzFile):
        raise ValueError(f"{resolved} is not an .npz archive of model outputs.")

    with archive:
        names = set(archive.files)
        for keys in (_NAMED_KEYS, _POSITIONAL_KEYS):
            if names.issuperset(keys):
                offsets, confidences, ious = (archive[k] for k in keys)
                logger.info(
                    "Loaded tensors from %s (offsets=%s, confidences=%s, ious=%s)",
                    resolved, offsets.shape, confidences.shape, ious.shape,
                )
                return offsets, confidences, ious

    raise KeyError(
        f"{resolved} must contain arrays {_NAMED_KEYS} or {_POSITIONAL_KEYS}, "
        f"found {sorted(names)}."
    )


def main(argv: Optional[List[str]] = None) -> int:
    """Run post-processing once and print the result."""
    args = parse_args(argv)

    # 1. Load Configuration (CLI args > ENV > YAML > Defaults)
    try:
        config = apply_overrides(load_config(args.config), args)
        predictor = Predictor(config)

        mapper = None
        if args.image_size is not None:
            mapper = AspectMapper(
                image_size=parse_size(args.image_size),
                model_size=config.model.input_size,
                mode=config.model.aspect_mode,
            )
    except (FileNotFoundError, ValueError, yaml.YAMLError) as e:
        logger.error("Configuration error: %s", e)
        return 1

    # 2. Decode
    try:
        offsets, confidences, ious = load_tensors(args.tensors)
        candidates = predictor.predict_scored(offsets, confidences, ious, mapper)
    except (OSError, KeyError, ValueError, YuNetError) as e:
        logger.error("Post-processing failed: %s", e)
        return 1

    logger.info("Detected %d face(s).", len(candidates))

    payload = {
        "detections": [c.to_dict() for c in candidates],
        "count": len(candidates),
    }
    print(json.dumps(payload, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
