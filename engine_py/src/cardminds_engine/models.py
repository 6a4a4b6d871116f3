"""Game models and data structures"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Union

from .constants import PHASE_LOBBY, MODE_EASY, SPECIAL_RANKS

# Raw equation term as sent by clients: 5, '+', '(', '**'
RawTerm = Union[int, float, str]


@dataclass(frozen=True)
class Card:
    id: str
    suit: str  # Spades|Hearts|Diamonds|Clubs|Special
    rank: str  # A, 2..10, J, Q, K, CL, SB, SH, DE, GA


# Equation terms
@dataclass(frozen=True)
class Number:
    value: float


@dataclass(frozen=True)
class Operator:
    symbol: str  # + - * /


@dataclass(frozen=True)
class Paren:
    symbol: str  # ( or )

    @property
    def is_open(self) -> bool:
        return self.symbol == '('


@dataclass(frozen=True)
class Power:
    """Postfix squaring marker."""


Term = Union[Number, Operator, Paren, Power]


@dataclass
class Player:
    id: str
    name: str
    hand: List[Card] = field(default_factory=list)
    round_score: int = 0
    total_score: int = 0
    passed: bool = False
    final_result: float = 0
    equation: List[RawTerm] = field(default_factory=list)
    cards_used: List[Card] = field(default_factory=list)

    def find_card(self, card_id: str) -> Optional[Card]:
        return next((c for c in self.hand if c.id == card_id), None)

    def reset_round(self):
        self.round_score = 0
        self.passed = False
        self.final_result = 0
        self.equation = []
        self.cards_used = []


@dataclass
class SpecialAction:
    player_id: str
    card_rank: str
    card_id: str


@dataclass
class SpecialCardPlay:
    """Public record of the last special card played."""
    card_rank: str
    player_name: str
    timestamp: float
    target_player_name: Optional[str] = None
    note: Optional[str] = None


@dataclass
class Game:
    id: str
    creator_id: str
    game_state: str = PHASE_LOBBY  # lobby|playerTurn|specialAction|discarding|roundOver|gameOver
    game_mode: str = MODE_EASY
    players: List[str] = field(default_factory=list)  # join order, defines rotation
    max_players: int = 8
    deck: List[Card] = field(default_factory=list)
    discard_pile: List[Card] = field(default_factory=list)
    target_number: float = 0
    target_cards: List[Card] = field(default_factory=list)
    current_player_id: Optional[str] = None
    current_round: int = 1
    total_rounds: int = 3
    target_score: int = 0
    round_winner_ids: List[str] = field(default_factory=list)
    special_action: Optional[SpecialAction] = None
    discarding_player_id: Optional[str] = None
    allowed_special_cards: List[str] = field(default_factory=lambda: list(SPECIAL_RANKS))
    next_game_id: Optional[str] = None
    last_special_card_play: Optional[SpecialCardPlay] = None


@dataclass
class GameSnapshot:
    """The Game record plus its Player records; the unit of every transaction."""
    game: Game
    players: Dict[str, Player] = field(default_factory=dict)

    def ordered_players(self) -> List[Player]:
        return [self.players[pid] for pid in self.game.players if pid in self.players]

    def all_cards(self) -> List[Card]:
        cards = []
        for player in self.ordered_players():
            cards.extend(player.hand)
        cards.extend(self.game.deck)
        cards.extend(self.game.discard_pile)
        cards.extend(self.game.target_cards)
        return cards
