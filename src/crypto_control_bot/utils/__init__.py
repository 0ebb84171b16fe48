# src/crypto_control_bot/utils/__init__.py

from .logging import get_logger  # noqa: F401

__all__ = ["get_logger"]
