"""
Configuration management for CropSight
"""

import yaml
import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Any, Optional, Union
import logging

from .core.models import MaskShape

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path(__file__).parent / "config.yaml"


def _expand_env_vars(obj: Union[Dict, Any]) -> Union[Dict, Any]:
    """
    Recursively expand environment variables in config values.
    Supports ${VAR_NAME} syntax.
    """
    if isinstance(obj, dict):
        return {key: _expand_env_vars(value) for key, value in obj.items()}
    elif isinstance(obj, list):
        return [_expand_env_vars(item) for item in obj]
    elif isinstance(obj, str):
        pattern = r'\$\{([^}]+)\}'
        def replace_var(match):
            var_name = match.group(1)
            return os.getenv(var_name, match.group(0))  # Keep original if not set
        return re.sub(pattern, replace_var, obj)
    else:
        return obj


def _merge(defaults: Dict[str, Any], overrides: Dict[str, Any]) -> Dict[str, Any]:
    """Deep-merge ``overrides`` onto a copy of ``defaults``."""
    merged = dict(defaults)
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_config(config_path: Optional[Union[str, Path]] = None) -> Dict[str, Any]:
    """
    Load configuration from YAML file

    Values from the file are merged over the defaults, so a partial file only
    needs the keys it changes.

    Args:
        config_path: Path to config file. If None, uses default config.yaml

    Returns:
        Configuration dictionary
    """
    config_path = Path(config_path) if config_path is not None else DEFAULT_CONFIG_PATH

    if not config_path.exists():
        logger.warning(f"Config file not found: {config_path}. Using defaults.")
        return get_default_config()

    try:
        with open(config_path, 'r') as f:
            config = yaml.safe_load(f) or {}
        logger.info(f"Loaded configuration from {config_path}")
        config = _expand_env_vars(config)
        return _merge(get_default_config(), config)
    except Exception as e:
        logger.error(f"Failed to load config from {config_path}: {e}")
        return get_default_config()


def get_default_config() -> Dict[str, Any]:
    """
    Get default configuration values

    Returns:
        Default configuration dictionary
    """
    return {
        'crop': {
            'max_magnification_scale': 4.0,
            'mask_radius': 130.0,
            'mask_shape': 'circle',
            'crop_image_circular': False,
            'rotate_image': False,
            'zoom_sensitivity': 1.0,
        },
        'processing': {
            'max_workers': 4,
            'image_extensions': ['.jpg', '.jpeg', '.png', '.tif', '.tiff', '.webp', '.bmp'],
        },
        'output': {
            'format': 'PNG',
            'suffix': '_crop',
        },
        'logging': {
            'level': 'INFO',
            'format': '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            'color': True,
        },
    }


def save_config(config: Dict[str, Any], config_path: Path) -> bool:
    """
    Save configuration to YAML file

    Args:
        config: Configuration dictionary to save
        config_path: Path where to save the config

    Returns:
        True if successful, False otherwise
    """
    try:
        with open(config_path, 'w') as f:
            yaml.dump(config, f, default_flow_style=False, indent=2)
        logger.info(f"Saved configuration to {config_path}")
        return True
    except Exception as e:
        logger.error(f"Failed to save config to {config_path}: {e}")
        return False


def get_config_value(config: Dict[str, Any], key_path: str, default: Any = None) -> Any:
    """
    Get a nested configuration value using dot notation

    Args:
        config: Configuration dictionary
        key_path: Dot-separated key path (e.g., 'crop.mask_radius')
        default: Default value if key not found

    Returns:
        Configuration value or default
    """
    keys = key_path.split('.')
    value = config

    try:
        for key in keys:
            value = value[key]
        return value
    except (KeyError, TypeError):
        return default


def update_config_value(config: Dict[str, Any], key_path: str, value: Any) -> None:
    """
    Update a nested configuration value using dot notation

    Args:
        config: Configuration dictionary to update
        key_path: Dot-separated key path (e.g., 'crop.rotate_image')
        value: New value to set
    """
    keys = key_path.split('.')
    current = config

    for key in keys[:-1]:
        if key not in current or not isinstance(current[key], dict):
            current[key] = {}
        current = current[key]

    current[keys[-1]] = value


@dataclass
class CropConfiguration:
    """User-tunable crop defaults."""
    max_magnification_scale: float = 4.0
    mask_radius: float = 130.0
    mask_shape: MaskShape = MaskShape.CIRCLE
    crop_image_circular: bool = False
    rotate_image: bool = False
    zoom_sensitivity: float = 1.0

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> 'CropConfiguration':
        """Build from the ``crop`` section of a configuration dictionary."""
        section = get_config_value(config, 'crop', {}) or {}
        defaults = cls()
        return cls(
            max_magnification_scale=float(section.get('max_magnification_scale', defaults.max_magnification_scale)),
            mask_radius=float(section.get('mask_radius', defaults.mask_radius)),
            mask_shape=MaskShape.parse(section.get('mask_shape', defaults.mask_shape)),
            crop_image_circular=bool(section.get('crop_image_circular', defaults.crop_image_circular)),
            rotate_image=bool(section.get('rotate_image', defaults.rotate_image)),
            zoom_sensitivity=float(section.get('zoom_sensitivity', defaults.zoom_sensitivity)),
        )

    @property
    def output_shape(self) -> MaskShape:
        """
        Shape of the produced image.

        A circular mask only yields a transparent circular image when
        ``crop_image_circular`` is set; otherwise the square under it is kept.
        """
        if self.mask_shape == MaskShape.CIRCLE and self.crop_image_circular:
            return MaskShape.CIRCLE
        return MaskShape.SQUARE
