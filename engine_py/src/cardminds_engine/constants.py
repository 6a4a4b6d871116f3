"""Game constants and utilities"""

from typing import Dict

SUITS = ['Spades', 'Hearts', 'Diamonds', 'Clubs']
SPECIAL_SUIT = 'Special'
RANKS = ['A', '2', '3', '4', '5', '6', '7', '8', '9', '10', 'J', 'Q', 'K']

# Special ranks
RANK_CLONE = 'CL'
RANK_SABOTAGE = 'SB'
RANK_SHUFFLE = 'SH'
RANK_DESTINY = 'DE'
RANK_GAMBLE = 'GA'
SPECIAL_RANKS = [RANK_CLONE, RANK_SABOTAGE, RANK_SHUFFLE, RANK_DESTINY, RANK_GAMBLE]

# Special actions (rank value of a special card)
ACTION_CLONE = 'clone'
ACTION_SABOTAGE = 'sabotage'
ACTION_SHUFFLE = 'shuffle'
ACTION_DESTINY = 'destiny'
ACTION_GAMBLE = 'gamble'
SPECIAL_ACTIONS: Dict[str, str] = {
    RANK_CLONE: ACTION_CLONE,
    RANK_SABOTAGE: ACTION_SABOTAGE,
    RANK_SHUFFLE: ACTION_SHUFFLE,
    RANK_DESTINY: ACTION_DESTINY,
    RANK_GAMBLE: ACTION_GAMBLE,
}

# Special cards that end the acting player's turn once resolved
TURN_ENDING_SPECIALS = {RANK_SABOTAGE, RANK_DESTINY}

# Game modes
MODE_EASY = 'easy'
MODE_PRO = 'pro'
MODE_SPECIAL = 'special'
GAME_MODES = [MODE_EASY, MODE_PRO, MODE_SPECIAL]

# Phases
PHASE_LOBBY = 'lobby'
PHASE_PLAYER_TURN = 'playerTurn'
PHASE_SPECIAL_ACTION = 'specialAction'
PHASE_DISCARDING = 'discarding'
PHASE_ROUND_OVER = 'roundOver'
PHASE_GAME_OVER = 'gameOver'

# Player actions
ACTION_SUBMIT = 'submit'
ACTION_PASS = 'pass'

# Equation tokens
OP_ADD = '+'
OP_SUB = '-'
OP_MUL = '*'
OP_DIV = '/'
OP_POWER = '**'
PAREN_OPEN = '('
PAREN_CLOSE = ')'
BINARY_OPERATORS = [OP_ADD, OP_SUB, OP_MUL, OP_DIV]
PRECEDENCE: Dict[str, int] = {OP_ADD: 1, OP_SUB: 1, OP_MUL: 2, OP_DIV: 2}

# Operators the easy target generator may draw
TARGET_OPERATORS = [OP_ADD, OP_SUB]

# Round/score sentinels
UNBOUNDED_ROUNDS = 0

# Characters used for short game ids
GAME_ID_ALPHABET = 'ABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789'
GAME_ID_LENGTH = 6


def is_special_rank(rank: str) -> bool:
    return rank in SPECIAL_ACTIONS
