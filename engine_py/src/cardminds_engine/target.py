"""
Target number generation.
"""

import logging
import random
from dataclasses import dataclass
from typing import List, Optional, Sequence

from .constants import MODE_EASY, OP_SUB, TARGET_OPERATORS
from .errors import EquationError
from .evaluator import evaluate
from .models import Card
from .rules import RuleConfig, default_rules
from .shuffle import build_rank_values, is_number_card, remove_cards, shuffle_deck

logger = logging.getLogger(__name__)


@dataclass
class TargetResult:
    target: int
    cards_used: List[Card]
    deck: List[Card]
    fallback: bool = False


def fallback_target(deck: Sequence[Card], rules: RuleConfig = default_rules) -> TargetResult:
    """Safe default target; consumes no cards."""
    return TargetResult(target=rules.fallback_target, cards_used=[], deck=list(deck), fallback=True)


def _is_valid_easy_target(value: float, rules: RuleConfig) -> bool:
    return value.is_integer() and 0 < value <= rules.max_target


def generate_easy_target(
    deck: Sequence[Card],
    rng: Optional[random.Random] = None,
    rules: RuleConfig = default_rules,
) -> TargetResult:
    """
    Build ``number (+|-) number`` from deck cards until a valid target comes out.

    Subtractions are ordered larger minus smaller. Only the three cards of the
    accepted attempt are removed from the returned deck.
    """
    rng = rng or random
    values = build_rank_values(MODE_EASY)
    pool = shuffle_deck(deck, rng)
    number_cards = [c for c in pool if is_number_card(c)]
    operator_cards = [c for c in pool if values.get(c.rank) in TARGET_OPERATORS]

    if len(number_cards) < 2 or not operator_cards:
        logger.warning("Not enough cards for an easy target, using fallback")
        return fallback_target(deck, rules)

    for _ in range(rules.target_attempts):
        first, second = rng.sample(number_cards, 2)
        op_card = rng.choice(operator_cards)
        operator = values[op_card.rank]

        if operator == OP_SUB and values[first.rank] < values[second.rank]:
            first, second = second, first

        try:
            result = evaluate([values[first.rank], operator, values[second.rank]], MODE_EASY)
        except EquationError:
            continue

        if _is_valid_easy_target(result, rules):
            cards_used = [first, op_card, second]
            return TargetResult(
                target=int(result),
                cards_used=cards_used,
                deck=remove_cards(deck, [c.id for c in cards_used]),
            )

    logger.warning(f"No valid target after {rules.target_attempts} attempts, using fallback")
    return fallback_target(deck, rules)


def generate_concat_target(
    deck: Sequence[Card],
    rng: Optional[random.Random] = None,
    rules: RuleConfig = default_rules,
) -> TargetResult:
    """Concatenate the faces of two random number cards (2 and 5 give 25)."""
    rng = rng or random
    number_cards = [c for c in deck if is_number_card(c)]
    if len(number_cards) < 2:
        return generate_easy_target(deck, rng, rules)

    first, second = rng.sample(number_cards, 2)
    cards_used = [first, second]
    return TargetResult(
        target=concat_value(cards_used),
        cards_used=cards_used,
        deck=remove_cards(deck, [c.id for c in cards_used]),
    )


def concat_value(cards: Sequence[Card]) -> int:
    values = build_rank_values(MODE_EASY)
    return int(''.join(str(values[c.rank]) for c in cards))


def generate_target(
    deck: Sequence[Card],
    mode: str,
    rng: Optional[random.Random] = None,
    rules: RuleConfig = default_rules,
) -> TargetResult:
    """
    Generate the round target for a mode.

    The caller's deck is never modified; the returned deck has exactly the
    target cards removed.
    """
    if mode == MODE_EASY:
        return generate_easy_target(deck, rng, rules)
    return generate_concat_target(deck, rng, rules)


def recompute_target(target_cards: Sequence[Card], fallback: float) -> float:
    """
    Recompute a target from its source cards after one of them changed.

    Two number cards are concatenated, a three card easy target is evaluated
    again (larger minus smaller for subtraction). Anything else keeps
    ``fallback``.
    """
    values = build_rank_values(MODE_EASY)
    if len(target_cards) == 2 and all(is_number_card(c) for c in target_cards):
        return concat_value(target_cards)

    if len(target_cards) == 3:
        first, op_card, second = target_cards
        a, operator, b = values[first.rank], values[op_card.rank], values[second.rank]
        if operator == OP_SUB and a < b:
            a, b = b, a
        try:
            return evaluate([a, operator, b], MODE_EASY)
        except EquationError:
            return fallback

    return fallback
