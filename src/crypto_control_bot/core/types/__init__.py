from .trading import (  # noqa: F401
    Account,
    Balance,
    BotRunState,
    Denomination,
    Order,
    OrderRequest,
    OrderStatus,
    OrderType,
    ParsedOrderIntent,
    PositionSnapshot,
    RawCommand,
    Side,
    SizingMode,
)
