"""
Tests for round scoring.
"""

from cardminds_engine.models import Player
from cardminds_engine.scoring import calculate_score, round_winners


def test_exact_match():
    assert calculate_score(10, 10, 3) == 940
    assert calculate_score(25, 25, 1) == 980


def test_pass_scores_zero():
    assert calculate_score(0, 10, 0) == 0


def test_near_miss():
    """Test distance and card penalties."""
    assert calculate_score(8, 10, 3) == 420
    assert calculate_score(12, 10, 3) == 420


def test_zero_result_with_cards_is_scored():
    assert calculate_score(0, 10, 3) == 340


def test_score_never_negative():
    assert calculate_score(100, 10, 2) == 0


def test_fractional_scores_round_half_up():
    assert calculate_score(9.5, 10, 1) == 475
    assert calculate_score(10.25, 10, 1) == 478


def test_round_winners_ties():
    players = [
        Player(id="a", name="A", round_score=940),
        Player(id="b", name="B", round_score=420),
        Player(id="c", name="C", round_score=940),
    ]
    assert round_winners(players) == ["a", "c"]


def test_no_winner_when_everyone_scores_zero():
    players = [Player(id="a", name="A"), Player(id="b", name="B")]
    assert round_winners(players) == []
    assert round_winners([]) == []


def test_distance_from_larger_target():
    assert calculate_score(50, 50, 3) == 940
    assert calculate_score(45, 50, 3) == 390
