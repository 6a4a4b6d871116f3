# engine_py/src/cardminds_engine/errors.py

class GameError(Exception):
    """Base exception for game-related errors."""
    def __init__(self, code: str, message: str):
        self.code = code
        self.message = message
        super().__init__(f"[{code}] {message}")


class EquationError(GameError):
    """Raised by the evaluator when an equation cannot be computed."""


# Specific error codes
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

# Evaluator error codes
EMPTY_EQUATION = "EMPTY_EQUATION"
INVALID_ALTERNATION = "INVALID_ALTERNATION"
DIVISION_BY_ZERO = "DIVISION_BY_ZERO"
MISMATCHED_PARENTHESES = "MISMATCHED_PARENTHESES"
INVALID_SYNTAX = "INVALID_SYNTAX"
INVALID_RESULT = "INVALID_RESULT"
