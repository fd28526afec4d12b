"""Settings loading from YAML with environment overrides."""

import os
import logging
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

logger = logging.getLogger(__name__)

DEFAULTS_PATH = Path(__file__).parent / "defaults.yml"

# Environment variable -> (section, key)
ENV_OVERRIDES = {
    "GOOGLE_VISION_API_KEY": ("ocr", "api_key"),
    "RECEIPT_OCR_ENDPOINT": ("ocr", "endpoint"),
}


def _read_yaml(path: Path) -> Dict[str, Any]:
    with open(path, "r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def _merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    # shallow merge per section
    merged = {k: dict(v) if isinstance(v, dict) else v for k, v in base.items()}
    for k, v in override.items():
        if isinstance(v, dict) and isinstance(merged.get(k), dict):
            merged[k].update(v)
        else:
            merged[k] = v
    return merged


def load_config(path: Optional[Path] = None) -> Dict[str, Any]:
    """
    Load settings: packaged defaults, then the user file, then environment.

    Args:
        path: Optional YAML file with overrides. A missing file is ignored.

    Returns:
        Settings dictionary with ocr/upload/review/batch sections
    """
    config = _read_yaml(DEFAULTS_PATH)

    if path is not None:
        try:
            config = _merge(config, _read_yaml(Path(path)))
            logger.info(f"Loaded settings from {path}")
        except FileNotFoundError:
            logger.warning(f"Settings file {path} not found, using defaults")

    for env_var, (section, key) in ENV_OVERRIDES.items():
        value = os.environ.get(env_var)
        if value:
            config.setdefault(section, {})[key] = value

    return config
