"""
Card values, deck construction, shuffling and dealing utilities.
"""

import random
from collections import Counter
from typing import Dict, Iterable, List, Optional, Sequence, Tuple, Union

from .constants import (
    SUITS, RANKS, SPECIAL_SUIT, SPECIAL_ACTIONS, GAME_MODES,
    MODE_EASY, MODE_PRO, MODE_SPECIAL, OP_ADD, OP_SUB, OP_MUL, OP_DIV, OP_POWER,
)
from .errors import GameError, INVALID_MODE
from .models import Card, GameSnapshot
from .rules import RuleConfig, default_rules

RankValue = Union[int, str]

CLONE_MARKER = '-clone-'

_KING_VALUES = {
    MODE_EASY: OP_MUL,
    MODE_PRO: OP_DIV,
    MODE_SPECIAL: OP_POWER,
}


def build_rank_values(mode: str) -> Dict[str, RankValue]:
    """
    Map every rank to its meaning in the given mode.

    Numbers map to themselves (A is 1), J/Q are + and -, K depends on the
    mode and special ranks map to their action names.
    """
    if mode not in GAME_MODES:
        raise GameError(INVALID_MODE, f"Unknown game mode: {mode}")

    values: Dict[str, RankValue] = {'A': 1}
    for n in range(2, 11):
        values[str(n)] = n
    values['J'] = OP_ADD
    values['Q'] = OP_SUB
    values['K'] = _KING_VALUES[mode]
    values.update(SPECIAL_ACTIONS)
    return values


def card_value(card: Card, mode: str) -> RankValue:
    return build_rank_values(mode)[card.rank]


def is_number_card(card: Card) -> bool:
    return card.suit != SPECIAL_SUIT and card.rank not in ('J', 'Q', 'K')


def is_special_card(card: Card) -> bool:
    return card.suit == SPECIAL_SUIT


def create_deck(
    mode: str,
    player_count: int,
    allowed_special_ranks: Optional[Iterable[str]] = None,
    rules: RuleConfig = default_rules,
) -> List[Card]:
    """
    Create the unshuffled deck for a match.

    Args:
        mode: Game mode
        player_count: Number of players; at or above the double deck
            threshold two 52-card sets are used
        allowed_special_ranks: Special ranks to include (special mode only)

    Returns:
        List of cards with unique ids of the form ``deck-suit-rank``
    """
    if mode not in GAME_MODES:
        raise GameError(INVALID_MODE, f"Unknown game mode: {mode}")

    specials = list(allowed_special_ranks or []) if mode == MODE_SPECIAL else []
    deck = []
    for deck_index in range(rules.deck_count(player_count)):
        for suit in SUITS:
            for rank in RANKS:
                deck.append(Card(id=f"{deck_index}-{suit}-{rank}", suit=suit, rank=rank))
        for rank in specials:
            for copy_index in range(2):
                deck.append(Card(
                    id=f"{deck_index}-{SPECIAL_SUIT}-{rank}-{copy_index}",
                    suit=SPECIAL_SUIT,
                    rank=rank,
                ))
    return deck


def shuffle_deck(deck: Sequence[Card], rng: Optional[random.Random] = None) -> List[Card]:
    """
    Shuffle a copy of the deck with Fisher-Yates.

    Args:
        deck: Cards to shuffle
        rng: Optional random source for deterministic shuffling

    Returns:
        Shuffled copy of the deck
    """
    rng = rng or random
    shuffled = list(deck)
    for i in range(len(shuffled) - 1, 0, -1):
        j = rng.randint(0, i)
        shuffled[i], shuffled[j] = shuffled[j], shuffled[i]
    return shuffled


def draw_cards(deck: Sequence[Card], count: int) -> Tuple[List[Card], List[Card]]:
    """Take up to ``count`` cards from the front. Returns (drawn, remaining)."""
    count = max(0, min(count, len(deck)))
    return list(deck[:count]), list(deck[count:])


def remove_cards(deck: Sequence[Card], card_ids: Iterable[str]) -> List[Card]:
    """Return a copy of the deck without the given card ids."""
    ids = set(card_ids)
    return [card for card in deck if card.id not in ids]


def clone_card(source: Card, existing_ids: Iterable[str]) -> Card:
    """Mint a duplicate of ``source`` whose id is derived from the source id."""
    taken = set(existing_ids)
    n = 1
    while f"{source.id}{CLONE_MARKER}{n}" in taken:
        n += 1
    return Card(id=f"{source.id}{CLONE_MARKER}{n}", suit=source.suit, rank=source.rank)


def clone_source_id(card_id: str) -> str:
    """Strip clone suffixes to get the id of the originally minted card."""
    return card_id.split(CLONE_MARKER, 1)[0]


def validate_card_conservation(state: GameSnapshot, rules: RuleConfig = default_rules) -> bool:
    """
    Validate that all minted cards are accounted for exactly once.

    Clone cards are allowed on top of the minted set as long as their id
    traces back to a minted card.
    """
    game = state.game
    minted = {
        card.id for card in create_deck(
            game.game_mode, len(game.players), game.allowed_special_cards, rules
        )
    }
    counts = Counter(card.id for card in state.all_cards())

    if any(n > 1 for n in counts.values()):
        return False

    originals = {card_id for card_id in counts if CLONE_MARKER not in card_id}
    clones = set(counts) - originals
    return originals == minted and all(clone_source_id(c) in minted for c in clones)
