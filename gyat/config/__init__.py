from .loader import load_config
from .models import GyatConfig, StoreConfig

__all__ = [
    "GyatConfig",
    "StoreConfig",
    "load_config",
]
