"""Configuration for iterative matrix factorizations.

Defaults live here as named constants and are collected in the
`FactorizationConfig` pydantic model, which is passed explicitly to the
factorization core. Configurations can be loaded from and saved to YAML.
"""

import logging
import math
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .errors import InvalidConfiguration

logger = logging.getLogger(__name__)

DEFAULT_K = 15
DEFAULT_MAX_ITERATIONS = 15
# Negative thresholds switch off approximation error tracking entirely.
DEFAULT_STOP_THRESHOLD = -1.0
DEFAULT_ORDERED = False
DEFAULT_SEED = 0


class FactorizationConfig(BaseModel):
    """Settings of a single factorization run."""

    model_config = ConfigDict(extra="forbid", validate_assignment=True)

    k: int = Field(
        default=DEFAULT_K,
        ge=1,
        description="Number of base vectors (columns of U and V).",
    )
    max_iterations: int = Field(
        default=DEFAULT_MAX_ITERATIONS,
        ge=1,
        description="Hard upper bound on the number of update steps.",
    )
    stop_threshold: float = Field(
        default=DEFAULT_STOP_THRESHOLD,
        description=(
            "The run stops once the relative decrease of the approximation "
            "error falls below this value. Computing the error costs a full "
            "reconstruction per iteration, so a negative value disables it and "
            "the run always performs max_iterations steps."
        ),
    )
    ordered: bool = Field(
        default=DEFAULT_ORDERED,
        description="Reorder base vectors by descending activity after the run.",
    )
    seed: int = Field(
        default=DEFAULT_SEED,
        ge=0,
        description="Seed of the default random seeding strategy.",
    )

    @field_validator("stop_threshold")
    @classmethod
    def _check_finite_threshold(cls, value: float) -> float:
        if not math.isfinite(value):
            raise ValueError(f"stop_threshold must be finite, got {value}")
        return value

    @property
    def tracks_error(self) -> bool:
        return self.stop_threshold >= 0


def build_config(data: Optional[Dict[str, Any]] = None) -> FactorizationConfig:
    """Validate a mapping of settings into a `FactorizationConfig`.

    Raises:
        InvalidConfiguration: if any setting is unknown or out of range.
    """
    try:
        return FactorizationConfig.model_validate(data or {})
    except ValidationError as e:
        logger.error(f"Configuration validation failed:\n{e}")
        raise InvalidConfiguration(f"Invalid factorization settings: {e}") from e


def load_config(config_path: Optional[Path | str] = None) -> FactorizationConfig:
    """
    Load and validate a configuration from a YAML file.

    Args:
        config_path: path to a YAML mapping; None returns the defaults

    Returns:
        A validated FactorizationConfig

    Raises:
        FileNotFoundError: if config_path does not exist
        InvalidConfiguration: if the file is not a mapping or fails validation
    """
    if not config_path:
        logger.info("No configuration path provided. Using default settings.")
        return build_config({})

    config_path = Path(config_path)
    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found at: {config_path}")

    logger.info(f"Loading factorization configuration from: {config_path}")
    with open(config_path, "r") as f:
        data = yaml.safe_load(f) or {}

    if not isinstance(data, dict):
        raise InvalidConfiguration(
            f"Configuration file must contain a mapping, got {type(data).__name__}"
        )
    return build_config(data)


def save_config(config: FactorizationConfig, path: Path | str) -> None:
    """Write a configuration to a YAML file, creating parent directories."""
    if not isinstance(config, FactorizationConfig):
        raise TypeError("Input must be a FactorizationConfig instance to save.")

    output_path = Path(path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    logger.info(f"Saving configuration to: {output_path}")
    with open(output_path, "w") as f:
        yaml.safe_dump(config.model_dump(), f, default_flow_style=False, sort_keys=False)
