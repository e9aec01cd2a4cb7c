"""
Engine configuration model for the dynamic forms engine.

This module provides the data model holding the tunable settings of a
form controller, built from the loaded configuration dictionary.
"""

from dataclasses import dataclass
from typing import Dict, Any
import logging

from .field_definition import DEFAULT_MULTISELECT_DELIMITER
from .resource_manager import DEFAULT_IDLE_THRESHOLD
from .validation_engine import DEFAULT_PATTERN_CACHE_SIZE

logger = logging.getLogger(__name__)


@dataclass
class EngineConfig:
    """
    Engine configuration model.

    Attributes:
        idle_threshold_seconds: Sweep interval and minimum hidden time before
            a field's editing resource is reclaimed
        pattern_cache_size: Maximum number of compiled patterns kept process-wide
        multiselect_delimiter: Separator of multiselect id lists
    """
    idle_threshold_seconds: float = DEFAULT_IDLE_THRESHOLD
    pattern_cache_size: int = DEFAULT_PATTERN_CACHE_SIZE
    multiselect_delimiter: str = DEFAULT_MULTISELECT_DELIMITER

    @classmethod
    def from_config(cls, config: dict) -> 'EngineConfig':
        """
        Create EngineConfig from configuration dictionary.

        Args:
            config: Configuration dictionary containing an engine section

        Returns:
            EngineConfig instance with values from config or defaults

        Example:
            config = {'engine': {'idle_threshold_seconds': 30}}
            engine_config = EngineConfig.from_config(config)
        """
        engine = config.get('engine', {}) or {}

        return cls(
            idle_threshold_seconds=float(engine.get('idle_threshold_seconds', DEFAULT_IDLE_THRESHOLD)),
            pattern_cache_size=int(engine.get('pattern_cache_size', DEFAULT_PATTERN_CACHE_SIZE)),
            multiselect_delimiter=str(engine.get('multiselect_delimiter', DEFAULT_MULTISELECT_DELIMITER))
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert EngineConfig to a configuration section dictionary."""
        return {
            'idle_threshold_seconds': self.idle_threshold_seconds,
            'pattern_cache_size': self.pattern_cache_size,
            'multiselect_delimiter': self.multiselect_delimiter
        }

    def __str__(self) -> str:
        settings = [f"{name}: {value}" for name, value in self.to_dict().items()]
        return f"EngineConfig({', '.join(settings)})"
