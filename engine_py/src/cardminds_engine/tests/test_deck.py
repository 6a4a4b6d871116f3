"""
Tests for card values, deck construction and shuffling.
"""

import random
from collections import Counter
from itertools import permutations

from cardminds_engine.constants import MODE_EASY, MODE_PRO, MODE_SPECIAL, SPECIAL_RANKS
from cardminds_engine.engine import create_game, join_game, set_game_mode, start_game
from cardminds_engine.models import Card
from cardminds_engine.shuffle import (
    build_rank_values, clone_card, clone_source_id, create_deck, draw_cards,
    shuffle_deck, validate_card_conservation,
)


def test_rank_values_per_mode():
    """Test that K changes meaning with the mode."""
    assert build_rank_values(MODE_EASY)['K'] == '*'
    assert build_rank_values(MODE_PRO)['K'] == '/'
    assert build_rank_values(MODE_SPECIAL)['K'] == '**'

    values = build_rank_values(MODE_EASY)
    assert values['A'] == 1
    assert values['10'] == 10
    assert values['J'] == '+'
    assert values['Q'] == '-'
    assert values['CL'] == 'clone'


def test_single_deck():
    deck = create_deck(MODE_EASY, 2)
    assert len(deck) == 52
    assert len({card.id for card in deck}) == 52


def test_double_deck_from_four_players():
    assert len(create_deck(MODE_EASY, 3)) == 52
    deck = create_deck(MODE_EASY, 4)
    assert len(deck) == 104
    assert len({card.id for card in deck}) == 104


def test_special_cards_only_in_special_mode():
    """Test that special cards are added in special mode only."""
    assert not any(c.suit == 'Special' for c in create_deck(MODE_EASY, 2, SPECIAL_RANKS))

    deck = create_deck(MODE_SPECIAL, 2, SPECIAL_RANKS)
    specials = [c for c in deck if c.suit == 'Special']
    assert len(deck) == 62
    assert Counter(c.rank for c in specials) == {rank: 2 for rank in SPECIAL_RANKS}

    deck = create_deck(MODE_SPECIAL, 2, ['SB'])
    assert len(deck) == 54


def test_shuffle_keeps_cards_and_input():
    deck = create_deck(MODE_EASY, 2)
    original = list(deck)
    shuffled = shuffle_deck(deck, random.Random(1))

    assert deck == original
    assert sorted(c.id for c in shuffled) == sorted(c.id for c in deck)
    assert shuffled != deck


def test_shuffle_is_deterministic_with_seed():
    deck = create_deck(MODE_EASY, 2)
    assert shuffle_deck(deck, random.Random(5)) == shuffle_deck(deck, random.Random(5))


def test_shuffle_is_uniform():
    """Every ordering of a small deck should come up about equally often."""
    rng = random.Random(1234)
    deck = ['a', 'b', 'c']
    trials = 6000
    counts = Counter(tuple(shuffle_deck(deck, rng)) for _ in range(trials))

    assert set(counts) == set(permutations(deck))
    expected = trials / 6
    for count in counts.values():
        assert abs(count - expected) < expected * 0.15


def test_draw_cards():
    deck = create_deck(MODE_EASY, 2)
    drawn, remaining = draw_cards(deck, 5)
    assert drawn == deck[:5]
    assert remaining == deck[5:]

    drawn, remaining = draw_cards(deck[:2], 5)
    assert len(drawn) == 2
    assert remaining == []


def test_clone_ids():
    source = Card(id="0-Hearts-7", suit="Hearts", rank="7")
    first = clone_card(source, ["0-Hearts-7"])
    assert first.id == "0-Hearts-7-clone-1"
    assert first.rank == "7"

    second = clone_card(source, ["0-Hearts-7", first.id])
    assert second.id == "0-Hearts-7-clone-2"
    assert clone_source_id(second.id) == "0-Hearts-7"


def test_conservation_after_start():
    state = create_game("GAME01", "p0", "Alice")
    for i, name in enumerate(["Bob", "Cara", "Dan"], start=1):
        state = join_game(state, f"p{i}", name)
    state = set_game_mode(state, MODE_SPECIAL)
    state = start_game(state, random.Random(3))

    assert validate_card_conservation(state)
    assert len(state.all_cards()) == 124


def test_conservation_detects_duplicates():
    state = start_game(create_game("GAME01", "p0", "Alice"), random.Random(3))
    player = state.players["p0"]
    player.hand.append(player.hand[0])
    assert not validate_card_conservation(state)


def test_conservation_detects_missing_cards():
    state = start_game(create_game("GAME01", "p0", "Alice"), random.Random(3))
    state.game.deck.pop()
    assert not validate_card_conservation(state)
