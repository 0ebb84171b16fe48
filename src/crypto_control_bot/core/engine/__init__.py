from .base import IEngine  # noqa: F401
