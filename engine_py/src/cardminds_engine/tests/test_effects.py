"""
Tests for special card effects.
"""

import random

import pytest

from cardminds_engine.constants import (
    MODE_EASY, MODE_SPECIAL, PHASE_PLAYER_TURN, PHASE_SPECIAL_ACTION,
)
from cardminds_engine.effects import end_special_action, play_special_card, resolve_special_card
from cardminds_engine.engine import create_game, join_game, set_game_mode, start_game
from cardminds_engine.errors import (
    GameError, CARD_NOT_IN_HAND, DECK_EMPTY, INVALID_SPECIAL_CARD, INVALID_TARGET,
)
from cardminds_engine.models import Card
from cardminds_engine.shuffle import validate_card_conservation


def card(rank, suit='Spades'):
    return Card(id=f"0-{suit}-{rank}", suit=suit, rank=rank)


def special(rank):
    return Card(id=f"0-Special-{rank}-0", suit="Special", rank=rank)


def special_game(p0_hand, p1_hand=(), deck=None, discard=(), mode=MODE_SPECIAL):
    """Two players in special mode, p0 to act, target built from 2 and 5."""
    state = create_game("GAME01", "p0", "Alice")
    state = join_game(state, "p1", "Bob")
    game = state.game
    game.game_mode = mode
    game.game_state = PHASE_PLAYER_TURN
    game.target_cards = [card('2', 'Diamonds'), card('5', 'Diamonds')]
    game.target_number = 25
    game.deck = list(deck) if deck is not None else [card(r, 'Clubs') for r in ('4', '5', '6')]
    game.discard_pile = list(discard)
    state.players["p0"].hand = list(p0_hand)
    state.players["p1"].hand = list(p1_hand)
    return state


def hand_ids(state, player_id):
    return [c.id for c in state.players[player_id].hand]


def test_special_cards_need_special_mode():
    state = special_game([special('SH'), card('3')], mode=MODE_EASY)
    with pytest.raises(GameError) as exc:
        play_special_card(state, "p0", "0-Special-SH-0")
    assert exc.value.code == INVALID_SPECIAL_CARD


def test_play_rejections():
    state = special_game([special('SH'), card('3')], [special('CL')])
    assert play_special_card(state, "p1", "0-Special-CL-0") is None

    with pytest.raises(GameError) as exc:
        play_special_card(state, "p0", "0-Spades-3")
    assert exc.value.code == INVALID_SPECIAL_CARD

    with pytest.raises(GameError) as exc:
        play_special_card(state, "p0", "0-Special-CL-0")
    assert exc.value.code == CARD_NOT_IN_HAND

    state.game.allowed_special_cards = ['CL']
    with pytest.raises(GameError) as exc:
        play_special_card(state, "p0", "0-Special-SH-0")
    assert exc.value.code == INVALID_SPECIAL_CARD


def test_shuffle_resolves_immediately():
    hand = [special('SH'), card('3'), card('4'), card('5')]
    state = special_game(hand)
    new_state = play_special_card(state, "p0", "0-Special-SH-0", random.Random(1))

    assert new_state.game.game_state == PHASE_PLAYER_TURN
    assert new_state.game.current_player_id == "p0"
    assert sorted(hand_ids(new_state, "p0")) == ["0-Spades-3", "0-Spades-4", "0-Spades-5"]
    assert [c.id for c in new_state.game.discard_pile] == ["0-Special-SH-0"]
    assert new_state.game.last_special_card_play.card_rank == 'SH'
    assert new_state.game.last_special_card_play.player_name == "Alice"
    assert len(state.players["p0"].hand) == 4


def test_clone():
    """Test cloning a discard pile card into the hand."""
    state = special_game([special('CL'), card('3')], discard=[card('7', 'Hearts')])
    state = play_special_card(state, "p0", "0-Special-CL-0")
    assert state.game.game_state == PHASE_SPECIAL_ACTION
    assert state.game.special_action.card_rank == 'CL'
    assert "0-Special-CL-0" in hand_ids(state, "p0")

    state = resolve_special_card(state, "p0", card_id="0-Hearts-7")
    assert state.game.game_state == PHASE_PLAYER_TURN
    assert state.game.special_action is None
    assert state.game.current_player_id == "p0"
    assert hand_ids(state, "p0") == ["0-Spades-3", "0-Hearts-7-clone-1"]
    assert [c.id for c in state.game.discard_pile] == ["0-Hearts-7", "0-Special-CL-0"]
    assert state.players["p0"].hand[1].rank == '7'


def test_clone_rejections():
    discard = [card('7', 'Hearts'), special('GA')]
    state = play_special_card(special_game([special('CL')], discard=discard), "p0", "0-Special-CL-0")

    with pytest.raises(GameError) as exc:
        resolve_special_card(state, "p0", card_id="0-Special-GA-0")
    assert exc.value.code == INVALID_TARGET

    with pytest.raises(GameError) as exc:
        resolve_special_card(state, "p0", card_id="0-Clubs-9")
    assert exc.value.code == INVALID_TARGET

    assert resolve_special_card(state, "p1", card_id="0-Hearts-7") is None


def test_sabotage_steals_and_ends_turn():
    state = special_game([special('SB'), card('3')], [card('9', 'Hearts')])
    state = play_special_card(state, "p0", "0-Special-SB-0")
    state = resolve_special_card(state, "p0", target="p1", rng=random.Random(1))

    assert hand_ids(state, "p0") == ["0-Spades-3", "0-Hearts-9"]
    assert state.game.current_player_id == "p1"
    assert hand_ids(state, "p1") == ["0-Clubs-4"]
    assert state.game.last_special_card_play.target_player_name == "Bob"
    assert state.game.last_special_card_play.card_rank == 'SB'


def test_sabotage_empty_hand():
    state = special_game([special('SB')], [])
    state = play_special_card(state, "p0", "0-Special-SB-0")
    state = resolve_special_card(state, "p0", target="p1")

    assert hand_ids(state, "p0") == []
    assert state.game.current_player_id == "p1"
    assert state.game.last_special_card_play.note


def test_sabotage_needs_another_player():
    state = play_special_card(special_game([special('SB')], []), "p0", "0-Special-SB-0")
    for target in ("p0", "nobody", None):
        with pytest.raises(GameError) as exc:
            resolve_special_card(state, "p0", target=target)
        assert exc.value.code == INVALID_TARGET


def test_destiny_replaces_target_card():
    """Test that destiny swaps in the first number card from the deck."""
    deck = [card('K', 'Clubs'), card('8', 'Clubs'), card('4', 'Clubs')]
    state = special_game([special('DE')], [], deck=deck)
    state = play_special_card(state, "p0", "0-Special-DE-0")
    state = resolve_special_card(state, "p0", target=0)

    assert [c.id for c in state.game.target_cards] == ["0-Clubs-8", "0-Diamonds-5"]
    assert state.game.target_number == 85
    assert "0-Diamonds-2" in [c.id for c in state.game.discard_pile]
    assert "0-Special-DE-0" in [c.id for c in state.game.discard_pile]
    assert state.game.current_player_id == "p1"
    assert hand_ids(state, "p1") == ["0-Clubs-K"]
    assert [c.id for c in state.game.deck] == ["0-Clubs-4"]


def test_destiny_rejections():
    state = play_special_card(special_game([special('DE')], deck=[card('K', 'Clubs')]), "p0", "0-Special-DE-0")

    for target in (5, -1, "0", None, True):
        with pytest.raises(GameError) as exc:
            resolve_special_card(state, "p0", target=target)
        assert exc.value.code == INVALID_TARGET

    with pytest.raises(GameError) as exc:
        resolve_special_card(state, "p0", target=1)
    assert exc.value.code == DECK_EMPTY


def test_gamble_is_a_free_action():
    state = special_game([special('GA'), card('3')])
    state = play_special_card(state, "p0", "0-Special-GA-0")
    state = resolve_special_card(state, "p0", card_id="0-Spades-3")

    assert hand_ids(state, "p0") == ["0-Clubs-4", "0-Clubs-5"]
    assert [c.id for c in state.game.discard_pile] == ["0-Special-GA-0", "0-Spades-3"]
    assert [c.id for c in state.game.deck] == ["0-Clubs-6"]
    assert state.game.current_player_id == "p0"
    assert state.game.game_state == PHASE_PLAYER_TURN


def test_gamble_needs_hand_card():
    state = play_special_card(special_game([special('GA')]), "p0", "0-Special-GA-0")
    with pytest.raises(GameError) as exc:
        resolve_special_card(state, "p0", card_id="0-Special-GA-0")
    assert exc.value.code == CARD_NOT_IN_HAND


def test_end_special_action_keeps_card():
    state = play_special_card(special_game([special('CL')]), "p0", "0-Special-CL-0")
    assert end_special_action(state, "p1") is None

    state = end_special_action(state, "p0")
    assert state.game.game_state == PHASE_PLAYER_TURN
    assert state.game.special_action is None
    assert hand_ids(state, "p0") == ["0-Special-CL-0"]
    assert state.game.discard_pile == []


def test_effects_conserve_cards():
    state = create_game("GAME01", "p0", "Alice")
    state = join_game(state, "p1", "Bob")
    state = start_game(set_game_mode(state, MODE_SPECIAL), random.Random(5))
    game = state.game

    clone = next(c for c in state.all_cards() if c.rank == 'CL')
    source = next(c for c in game.deck if c.suit != 'Special' and c.rank not in ('J', 'Q', 'K'))
    game.deck = [c for c in game.deck if c.id not in (clone.id, source.id)]
    for player in state.players.values():
        player.hand = [c for c in player.hand if c.id != clone.id]
    state.players["p0"].hand.append(clone)
    game.discard_pile.append(source)
    assert validate_card_conservation(state)

    state = play_special_card(state, "p0", clone.id)
    state = resolve_special_card(state, "p0", card_id=source.id)
    assert validate_card_conservation(state)
    assert f"{source.id}-clone-1" in hand_ids(state, "p0")
