from __future__ import annotations


class Topics:
    """Event topic names."""
    COMMAND_RECEIVED = "command.received"
    ORDER_EVENT = "engine.order"
    ENGINE_ERROR = "engine.error"
