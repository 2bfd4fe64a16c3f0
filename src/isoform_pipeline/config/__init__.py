from .loader import load_config, load_config_with_overrides
from .schema import (
    PipelineConfig,
    ReferenceConfig,
    ThresholdPair,
    SignificanceThresholds,
    EnrichmentConfig,
)

__all__ = [
    "load_config",
    "load_config_with_overrides",
    "PipelineConfig",
    "ReferenceConfig",
    "ThresholdPair",
    "SignificanceThresholds",
    "EnrichmentConfig",
]
