# Iterative matrix factorization package

from .config import FactorizationConfig, load_config, save_config
from .errors import FactorizationError, InvalidConfiguration, NumericInstability, SeedingFailure
from .iterative import FactorizationState, IterativeFactorization, factorize
from .seeding import (
    FixedSeedingStrategy,
    KMeansSeedingStrategy,
    RandomSeedingStrategy,
    SeedingStrategy,
)

__version__ = "0.1.0"

__all__ = [
    'FactorizationConfig',
    'FactorizationError',
    'FactorizationState',
    'FixedSeedingStrategy',
    'InvalidConfiguration',
    'IterativeFactorization',
    'KMeansSeedingStrategy',
    'NumericInstability',
    'RandomSeedingStrategy',
    'SeedingFailure',
    'SeedingStrategy',
    'factorize',
    'load_config',
    'save_config',
]
