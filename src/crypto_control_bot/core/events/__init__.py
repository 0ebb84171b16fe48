from .bus import AsyncEventBus  # noqa: F401
from .topics import Topics  # noqa: F401
