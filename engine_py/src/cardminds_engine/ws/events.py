"""
WebSocket event models and validation.
"""

import time
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field, ValidationError


class EventType(str, Enum):
    """Inbound event types."""
    START = "start"
    SET_MODE = "set_mode"
    SET_SPECIAL_CARDS = "set_special_cards"
    SUBMIT = "submit"
    PASS = "pass"
    PLAY_SPECIAL = "play_special"
    RESOLVE_SPECIAL = "resolve_special"
    END_SPECIAL = "end_special"
    DISCARD = "discard"
    NEXT_ROUND = "next_round"
    REQUEST_STATE = "request_state"


class OutboundEventType(str, Enum):
    """Outbound event types."""
    STATE_FULL = "state_full"
    ERROR = "error"


class ErrorCode(str, Enum):
    """Error codes for client events."""
    INVALID_EVENT = "INVALID_EVENT"
    NOT_FOUND = "NOT_FOUND"
    ALREADY_STARTED = "ALREADY_STARTED"
    GAME_FULL = "GAME_FULL"
    NAME_TAKEN = "NAME_TAKEN"
    WRONG_PHASE = "WRONG_PHASE"
    WRONG_COUNT = "WRONG_COUNT"
    CARD_NOT_IN_HAND = "CARD_NOT_IN_HAND"
    NOT_ENOUGH_PLAYERS = "NOT_ENOUGH_PLAYERS"
    INVALID_MODE = "INVALID_MODE"
    INVALID_SPECIAL_CARD = "INVALID_SPECIAL_CARD"
    INVALID_TARGET = "INVALID_TARGET"
    INVALID_ACTION = "INVALID_ACTION"
    EQUATION_MISMATCH = "EQUATION_MISMATCH"
    DECK_EMPTY = "DECK_EMPTY"
    STORE_UNAVAILABLE = "STORE_UNAVAILABLE"
    EMPTY_EQUATION = "EMPTY_EQUATION"
    INVALID_ALTERNATION = "INVALID_ALTERNATION"
    DIVISION_BY_ZERO = "DIVISION_BY_ZERO"
    MISMATCHED_PARENTHESES = "MISMATCHED_PARENTHESES"
    INVALID_SYNTAX = "INVALID_SYNTAX"
    INVALID_RESULT = "INVALID_RESULT"
    INTERNAL = "INTERNAL"

    @classmethod
    def from_code(cls, code: str) -> "ErrorCode":
        try:
            return cls(code)
        except ValueError:
            return cls.INTERNAL


EquationTerm = Union[int, float, str]


# Inbound event models
class BaseEvent(BaseModel):
    """Base event model."""
    type: EventType


class StartEvent(BaseEvent):
    """Start game event."""
    type: EventType = EventType.START


class SetModeEvent(BaseEvent):
    """Change game mode in the lobby."""
    type: EventType = EventType.SET_MODE
    mode: str = Field(..., min_length=1)


class SetSpecialCardsEvent(BaseEvent):
    """Choose which special cards are in the deck."""
    type: EventType = EventType.SET_SPECIAL_CARDS
    ranks: List[str] = Field(default_factory=list)


class SubmitEvent(BaseEvent):
    """Submit an equation."""
    type: EventType = EventType.SUBMIT
    equation: List[EquationTerm] = Field(..., min_length=1)
    cards_used: List[str] = Field(..., min_length=1)


class PassEvent(BaseEvent):
    """Pass turn event."""
    type: EventType = EventType.PASS


class PlaySpecialEvent(BaseEvent):
    """Play a special card."""
    type: EventType = EventType.PLAY_SPECIAL
    card_id: str = Field(..., min_length=1)


class ResolveSpecialEvent(BaseEvent):
    """Pick the target of a pending special card."""
    type: EventType = EventType.RESOLVE_SPECIAL
    card_id: Optional[str] = None
    target: Optional[Union[int, str]] = None


class EndSpecialEvent(BaseEvent):
    """Cancel a pending special card."""
    type: EventType = EventType.END_SPECIAL


class DiscardEvent(BaseEvent):
    """Discard selection event."""
    type: EventType = EventType.DISCARD
    cards: List[str] = Field(..., min_length=1, max_length=10)


class NextRoundEvent(BaseEvent):
    """Start the next round."""
    type: EventType = EventType.NEXT_ROUND


class RequestStateEvent(BaseEvent):
    """Request full state event."""
    type: EventType = EventType.REQUEST_STATE


# Union type for all inbound events
InboundEvent = Union[
    StartEvent,
    SetModeEvent,
    SetSpecialCardsEvent,
    SubmitEvent,
    PassEvent,
    PlaySpecialEvent,
    ResolveSpecialEvent,
    EndSpecialEvent,
    DiscardEvent,
    NextRoundEvent,
    RequestStateEvent,
]

EVENT_MAP = {
    EventType.START: StartEvent,
    EventType.SET_MODE: SetModeEvent,
    EventType.SET_SPECIAL_CARDS: SetSpecialCardsEvent,
    EventType.SUBMIT: SubmitEvent,
    EventType.PASS: PassEvent,
    EventType.PLAY_SPECIAL: PlaySpecialEvent,
    EventType.RESOLVE_SPECIAL: ResolveSpecialEvent,
    EventType.END_SPECIAL: EndSpecialEvent,
    EventType.DISCARD: DiscardEvent,
    EventType.NEXT_ROUND: NextRoundEvent,
    EventType.REQUEST_STATE: RequestStateEvent,
}


# Outbound event models
class StateFullEvent(BaseModel):
    """Full state event."""
    type: OutboundEventType = OutboundEventType.STATE_FULL
    state: Dict[str, Any]
    timestamp: float


class ErrorEvent(BaseModel):
    """Error event."""
    type: OutboundEventType = OutboundEventType.ERROR
    code: ErrorCode
    message: str
    timestamp: float


def parse_inbound_event(data: Dict[str, Any]) -> InboundEvent:
    """
    Parse raw event data into appropriate event model.

    Args:
        data: Raw event data from WebSocket

    Returns:
        Parsed event model

    Raises:
        ValueError: If event type is invalid or data is malformed
    """
    event_type = data.get("type")

    if not event_type:
        raise ValueError("Missing event type")

    try:
        event_type = EventType(event_type)
    except ValueError:
        raise ValueError(f"Invalid event type: {event_type}")

    try:
        return EVENT_MAP[event_type](**data)
    except ValidationError as e:
        raise ValueError(f"Invalid event data: {e}")


def create_error_event(code: ErrorCode, message: str) -> ErrorEvent:
    """Create an error event."""
    return ErrorEvent(
        code=code,
        message=message,
        timestamp=time.time()
    )


def create_state_full_event(state: Dict[str, Any]) -> StateFullEvent:
    """Create a full state event."""
    return StateFullEvent(
        state=state,
        timestamp=time.time()
    )
