"""
Tests for target number generation.
"""

import random

from cardminds_engine.constants import MODE_EASY, MODE_PRO, MODE_SPECIAL
from cardminds_engine.evaluator import evaluate
from cardminds_engine.models import Card
from cardminds_engine.shuffle import build_rank_values, create_deck
from cardminds_engine.target import (
    generate_concat_target, generate_easy_target, generate_target, recompute_target,
)


def card(rank, suit='Diamonds'):
    return Card(id=f"0-{suit}-{rank}", suit=suit, rank=rank)


def test_easy_target_from_full_deck():
    """Test that an easy target is built from exactly three deck cards."""
    deck = create_deck(MODE_EASY, 2)
    original = list(deck)
    result = generate_easy_target(deck, random.Random(11))

    assert deck == original
    assert not result.fallback
    assert 0 < result.target <= 100
    assert len(result.cards_used) == 3
    assert len(result.deck) == len(deck) - 3

    used_ids = {c.id for c in result.cards_used}
    assert not used_ids & {c.id for c in result.deck}

    values = build_rank_values(MODE_EASY)
    first, op_card, second = result.cards_used
    assert values[op_card.rank] in ('+', '-')
    assert evaluate([values[first.rank], values[op_card.rank], values[second.rank]], MODE_EASY) == result.target


def test_easy_target_is_never_negative():
    deck = create_deck(MODE_EASY, 2)
    for seed in range(50):
        assert generate_easy_target(deck, random.Random(seed)).target > 0


def test_fallback_without_operator_cards():
    deck = [card('3'), card('4'), card('5')]
    result = generate_easy_target(deck, random.Random(1))
    assert result.fallback
    assert result.target == 10
    assert result.cards_used == []
    assert result.deck == deck


def test_fallback_does_not_leak_cards():
    """Failed attempts must leave every card in the deck."""
    deck = [card('5'), card('5', 'Hearts'), card('Q')]
    result = generate_easy_target(deck, random.Random(2))
    assert result.fallback
    assert result.target == 10
    assert sorted(c.id for c in result.deck) == sorted(c.id for c in deck)


def test_concat_target():
    deck = create_deck(MODE_PRO, 2)
    result = generate_concat_target(deck, random.Random(4))

    values = build_rank_values(MODE_PRO)
    first, second = result.cards_used
    assert result.target == int(f"{values[first.rank]}{values[second.rank]}")
    assert len(result.deck) == len(deck) - 2


def test_concat_target_falls_back_to_easy():
    deck = [card('7'), card('J')]
    result = generate_concat_target(deck, random.Random(1))
    assert result.fallback
    assert result.target == 10


def test_generate_target_by_mode():
    deck = create_deck(MODE_SPECIAL, 2, ['CL'])
    assert len(generate_target(deck, MODE_SPECIAL, random.Random(1)).cards_used) == 2
    assert len(generate_target(deck, MODE_EASY, random.Random(1)).cards_used) == 3


def test_recompute_target():
    assert recompute_target([card('2'), card('5')], 0) == 25
    assert recompute_target([card('10'), card('A')], 0) == 101
    assert recompute_target([card('3'), card('Q'), card('8')], 0) == 5
    assert recompute_target([card('A'), card('J'), card('10')], 0) == 11
    assert recompute_target([], 10) == 10
