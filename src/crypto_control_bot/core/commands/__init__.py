from .grammar import OrderCommandParser  # noqa: F401
from .sizing import OrderSizer, resolve_order, submit_order  # noqa: F401
