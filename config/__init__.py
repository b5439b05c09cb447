from .config import (
    ShamirConfig,
    EciesConfig,
    PaillierConfig,
    VectorConfig,
    CompatConfig,
    DEFAULT_CONFIG,
    get_config
)

__all__ = [
    'ShamirConfig',
    'EciesConfig',
    'PaillierConfig',
    'VectorConfig',
    'CompatConfig',
    'DEFAULT_CONFIG',
    'get_config'
]
