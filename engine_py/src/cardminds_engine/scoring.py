# engine_py/src/cardminds_engine/scoring.py

import math
from typing import Iterable, List

from .models import Player

EXACT_BASE = 1000
NEAR_BASE = 500
DIFFERENCE_PENALTY = 10
CARD_PENALTY = 20


def calculate_score(result: float, target: float, cards_used: int) -> int:
    """
    Score a submission.

    Passing (no result, no cards) scores 0. An exact match scores 1000 minus
    20 per card; anything else loses 10 per point of distance as well and
    never goes below 0.
    """
    if result == 0 and cards_used == 0:
        return 0  # Score for passing

    difference = abs(result - target)
    if difference == 0 and cards_used > 0:
        return EXACT_BASE - cards_used * CARD_PENALTY

    score = max(0, NEAR_BASE - difference * DIFFERENCE_PENALTY - cards_used * CARD_PENALTY)
    return int(math.floor(score + 0.5))


def round_winners(players: Iterable[Player]) -> List[str]:
    """
    Ids of the players with the highest round score.

    Nobody wins a round where the best score is 0.
    """
    players = list(players)
    if not players:
        return []
    highest = max(p.round_score for p in players)
    if highest <= 0:
        return []
    return [p.id for p in players if p.round_score == highest]
