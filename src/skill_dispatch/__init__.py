"""Intent recognition and skill dispatch core."""

from .config import ChainConfig, DispatchConfig

__all__ = ["ChainConfig", "DispatchConfig"]
