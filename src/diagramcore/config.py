"""
Configuration management for the diagram core.

Loads YAML configuration with sensible defaults for every numeric budget:
integration tolerances, adaptive leaf size and the step limits of the
geometric searches.
"""

import os
from dataclasses import dataclass, field

import yaml

from diagramcore.models import Precision


@dataclass
class PrecisionConfig:
    """Default tolerances and sample budget for integration."""
    relative_error: float = 1e-10
    absolute_error: float = 1e-20
    min_sample_cnt: int = 5
    max_sample_cnt: int = 65537


@dataclass
class AdaptiveConfig:
    """Configuration for the adaptive Romberg tree."""
    max_leaf_size: int = 9  # must be 2^i + 1, at least 5


@dataclass
class DistanceConfig:
    """Configuration for nearest-point searches."""
    max_error: float = 1e-6
    max_steps: int = 1000


@dataclass
class IntersectionConfig:
    """Configuration for curve intersection searches."""
    max_error: float = 1e-5
    max_steps: int = 1000


@dataclass
class TracingConfig:
    """Configuration for runtime tracing."""
    enabled: bool = False
    level: str = "INFO"
    file_path: str = None
    json_output: bool = False


@dataclass
class CoreConfig:
    """Complete diagram core configuration."""
    precision: PrecisionConfig = field(default_factory=PrecisionConfig)
    adaptive: AdaptiveConfig = field(default_factory=AdaptiveConfig)
    distance: DistanceConfig = field(default_factory=DistanceConfig)
    intersection: IntersectionConfig = field(default_factory=IntersectionConfig)
    tracing: TracingConfig = field(default_factory=TracingConfig)

    def make_precision(self):
        """Build a validated Precision from the precision section."""
        p = self.precision
        return Precision(
            relative_error=p.relative_error,
            absolute_error=p.absolute_error,
            min_sample_cnt=p.min_sample_cnt,
            max_sample_cnt=p.max_sample_cnt,
        )


_SECTIONS = ("precision", "adaptive", "distance", "intersection", "tracing")


def load_config(config_path=None):
    """
    Load configuration from YAML file.

    Falls back to defaults for any missing values.
    """
    config = CoreConfig()

    if config_path and os.path.exists(config_path):
        with open(config_path, "r", encoding="utf-8") as f:
            yaml_data = yaml.safe_load(f) or {}

        config = _merge_config(config, yaml_data)

    return config


def _merge_config(config, yaml_data):
    """Merge YAML data into config dataclass. Unknown keys are ignored."""
    for section in _SECTIONS:
        if section in yaml_data:
            target = getattr(config, section)
            for key, value in (yaml_data[section] or {}).items():
                if hasattr(target, key):
                    setattr(target, key, value)

    return config


def save_default_config(path):
    """Save default configuration to YAML file for reference."""
    config = CoreConfig()

    yaml_data = {
        "precision": {
            "relative_error": config.precision.relative_error,
            "absolute_error": config.precision.absolute_error,
            "min_sample_cnt": config.precision.min_sample_cnt,
            "max_sample_cnt": config.precision.max_sample_cnt,
        },
        "adaptive": {
            "max_leaf_size": config.adaptive.max_leaf_size,
        },
        "distance": {
            "max_error": config.distance.max_error,
            "max_steps": config.distance.max_steps,
        },
        "intersection": {
            "max_error": config.intersection.max_error,
            "max_steps": config.intersection.max_steps,
        },
        "tracing": {
            "enabled": config.tracing.enabled,
            "level": config.tracing.level,
        },
    }

    with open(path, "w", encoding="utf-8") as f:
        yaml.dump(yaml_data, f, default_flow_style=False, sort_keys=False)
