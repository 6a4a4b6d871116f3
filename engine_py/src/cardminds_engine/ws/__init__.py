"""
WebSocket server and event handling for CardMinds games.
"""

from .events import parse_inbound_event, EventType, ErrorCode
from .server import ConnectionManager, create_router

__all__ = ["parse_inbound_event", "EventType", "ErrorCode", "ConnectionManager", "create_router"]
