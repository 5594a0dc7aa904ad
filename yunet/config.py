"""
Configuration management for the YuNet post-processing core.

Provides a layered configuration system with the following precedence
(highest to lowest):

    CLI arguments > Environment variables > YAML config file > Defaults

Design constraints:
    - The system MUST run with zero configuration (safe defaults only).
    - Missing or invalid values fail early and loudly.
    - No decoding logic, tensor handling, or I/O beyond the YAML file
      belongs here.

Non-goals:
    - No dynamic reloading.
    - No database-backed or remote configuration.
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Tuple

import yaml

from yunet.anchors import AnchorGeometry
from yunet.errors import InvalidParameter
from yunet.mapping import ASPECT_MODES

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Project root resolution
# ---------------------------------------------------------------------------
# Resolved relative to this file's location: yunet/config.py → project root
_PROJECT_ROOT = Path(__file__).resolve().parent.parent


def get_project_root() -> Path:
    """Return the resolved project root directory."""
    return _PROJECT_ROOT


# ---------------------------------------------------------------------------
# Configuration dataclasses
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ModelConfig:
    """Model-related configuration.

    Attributes:
        input_size: Fixed model input (width, height) in pixels. The
                    anchor set is generated from it.
        aspect_mode: How arbitrary-aspect images are fit into the model
                     input upstream: 'fit', 'fill' or 'crop'.
    """

    input_size: Tuple[int, int] = (320, 320)
    aspect_mode: str = "fit"


@dataclass(frozen=True)
class DetectionConfig:
    """Detection thresholds.

    Attributes:
        min_score: Minimum combined score to keep a candidate.
        max_iou: Maximum IoU between kept boxes during suppression.
    """

    min_score: float = 0.5
    max_iou: float = 0.5


@dataclass(frozen=True)
class AppConfig:
    """Top-level configuration.

    Aggregates all sub-configurations into a single, frozen object.
    """

    model: ModelConfig = field(default_factory=ModelConfig)
    detection: DetectionConfig = field(default_factory=DetectionConfig)
    anchors: AnchorGeometry = field(default_factory=AnchorGeometry)


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------

def validate_thresholds(min_score: float, max_iou: float) -> None:
    """Raise InvalidParameter unless both thresholds are in [0.0, 1.0]."""
    if not (0.0 <= min_score <= 1.0):
        raise InvalidParameter(
            f"detection.min_score must be in [0.0, 1.0], got {min_score}."
        )

    if not (0.0 <= max_iou <= 1.0):
        raise InvalidParameter(
            f"detection.max_iou must be in [0.0, 1.0], got {max_iou}."
        )


def validate_config(config: AppConfig) -> None:
    """Validate configuration values. Raises InvalidParameter on invalid state."""

    validate_thresholds(config.detection.min_score, config.detection.max_iou)

    if len(config.model.input_size) != 2:
        raise InvalidParameter(
            f"model.input_size must be a (width, height) tuple, "
            f"got {config.model.input_size}."
        )

    if any(d <= 0 for d in config.model.input_size):
        raise InvalidParameter(
            f"model.input_size dimensions must be positive, "
            f"got {config.model.input_size}."
        )

    if config.model.aspect_mode not in ASPECT_MODES:
        raise InvalidParameter(
            f"Invalid model.aspect_mode: '{config.model.aspect_mode}'. "
            f"Must be one of {ASPECT_MODES}."
        )

    config.anchors.validate()


# ---------------------------------------------------------------------------
# YAML loading
# ---------------------------------------------------------------------------

def _parse_tuple(value, expected_len: int, cast_type=float):
    """Convert a YAML list into a tuple of the expected type and length."""
    if isinstance(value, (list, tuple)):
        if len(value) != expected_len:
            raise InvalidParameter(
                f"Expected {expected_len} values, got {len(value)}: {value}"
            )
        return tuple(cast_type(v) for v in value)
    raise InvalidParameter(
        f"Expected a list of {expected_len} values, got {value!r}."
    )


def parse_size(value) -> Tuple[int, int]:
    """Parse a (width, height) pair from a list or a 'WxH' string."""
    if isinstance(value, str):
        parts = value.lower().replace(",", "x").split("x")
        if len(parts) != 2:
            raise InvalidParameter(
                f"Expected a size like '320x320', got '{value}'."
            )
        try:
            return int(parts[0]), int(parts[1])
        except ValueError as e:
            raise InvalidParameter(
                f"Expected a size like '320x320', got '{value}'."
            ) from e
    return _parse_tuple(value, 2, int)


def _build_model_config(raw: dict) -> ModelConfig:
    """Build ModelConfig from a raw YAML dict."""
    kwargs = {}
    if "input_size" in raw:
        kwargs["input_size"] = parse_size(raw["input_size"])
    if "aspect_mode" in raw:
        kwargs["aspect_mode"] = str(raw["aspect_mode"]).lower()
    return ModelConfig(**kwargs)


def _build_detection_config(raw: dict) -> DetectionConfig:
    """Build DetectionConfig from a raw YAML dict."""
    kwargs = {}
    if "min_score" in raw:
        kwargs["min_score"] = float(raw["min_score"])
    if "max_iou" in raw:
        kwargs["max_iou"] = float(raw["max_iou"])
    return DetectionConfig(**kwargs)


def _build_anchor_geometry(raw: dict) -> AnchorGeometry:
    """Build AnchorGeometry from a raw YAML dict."""
    kwargs = {}
    if "min_sizes" in raw:
        kwargs["min_sizes"] = tuple(
            tuple(int(s) for s in stage) for stage in raw["min_sizes"]
        )
    if "strides" in raw:
        kwargs["strides"] = tuple(int(s) for s in raw["strides"])
    if "variance" in raw:
        kwargs["variance"] = _parse_tuple(raw["variance"], 2, float)
    return AnchorGeometry(**kwargs)


# ---------------------------------------------------------------------------
# Environment variable overrides
# ---------------------------------------------------------------------------

_ENV_PREFIX = "YUNET_"


def _apply_env_overrides(raw: dict) -> dict:
    """Apply environment variable overrides to the raw config dict.

    Environment variables follow the pattern:
        YUNET_DETECTION_MIN_SCORE=0.7
        YUNET_MODEL_INPUT_SIZE=640x480
    """
    env_map = {
        f"{_ENV_PREFIX}MODEL_INPUT_SIZE": ("model", "input_size"),
        f"{_ENV_PREFIX}MODEL_ASPECT_MODE": ("model", "aspect_mode"),
        f"{_ENV_PREFIX}DETECTION_MIN_SCORE": ("detection", "min_score"),
        f"{_ENV_PREFIX}DETECTION_MAX_IOU": ("detection", "max_iou"),
    }

    for env_var, (section, key) in env_map.items():
        value = os.environ.get(env_var)
        if value is not None:
            raw.setdefault(section, {})[key] = value
            logger.debug("Config override from env: %s=%s", env_var, value)

    return raw


# ---------------------------------------------------------------------------
# Public loader
# ---------------------------------------------------------------------------

def load_config(config_path: Optional[str] = None) -> AppConfig:
    """Load and validate configuration.

    Precedence (highest → lowest):
        Environment variables > YAML file > Hard-coded defaults

    Args:
        config_path: Path to a YAML configuration file. If None,
                     the system runs entirely on defaults.

    Returns:
        A validated, frozen AppConfig instance.

    Raises:
        FileNotFoundError: If config_path is provided but does not exist.
        InvalidParameter: If any configuration value is invalid.
        yaml.YAMLError: If the YAML file is malformed.
    """
    raw: dict = {}

    # --- Layer 1: YAML file ---
    if config_path is not None:
        resolved = Path(config_path)
        if not resolved.is_absolute():
            resolved = get_project_root() / resolved

        if not resolved.is_file():
            raise FileNotFoundError(
                f"Configuration file not found: {resolved}. "
                f"Provide a valid path or omit to use defaults."
            )

        logger.info("Loading config from: %s", resolved)
        with open(resolved, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}

        if not isinstance(raw, dict):
            raise InvalidParameter(
                f"Configuration file must hold a mapping of sections, got {type(raw).__name__}."
            )

    # --- Layer 2: Environment variable overrides ---
    raw = _apply_env_overrides(raw)

    # --- Build typed configs ---
    try:
        config = AppConfig(
            model=_build_model_config(raw.get("model") or {}),
            detection=_build_detection_config(raw.get("detection") or {}),
            anchors=_build_anchor_geometry(raw.get("anchors") or {}),
        )
    except InvalidParameter:
        raise
    except (TypeError, ValueError) as e:
        raise InvalidParameter(f"Malformed configuration value: {e}") from e

    # --- Validate ---
    validate_config(config)

    logger.debug("Configuration loaded: %s", config)
    return config
