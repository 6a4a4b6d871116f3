"""
Special card effects implementation.

Shuffle resolves as soon as it is played. Clone, Sabotage, Destiny and
Gamble first move the game to the specialAction phase and wait for the
acting player to pick a target. The special card stays in the hand until
the effect resolves, then goes to the discard pile.
"""

import copy
import logging
import random
import time
from typing import Optional, Union

from .constants import (
    PHASE_PLAYER_TURN, PHASE_SPECIAL_ACTION, MODE_SPECIAL, TURN_ENDING_SPECIALS,
    RANK_CLONE, RANK_SABOTAGE, RANK_SHUFFLE, RANK_DESTINY, RANK_GAMBLE,
)
from .engine import advance_turn_in_place
from .errors import (
    GameError, CARD_NOT_IN_HAND, INVALID_SPECIAL_CARD, INVALID_TARGET, DECK_EMPTY,
)
from .models import GameSnapshot, Player, SpecialAction, SpecialCardPlay
from .shuffle import clone_card, draw_cards, is_number_card, is_special_card, shuffle_deck
from .target import recompute_target

logger = logging.getLogger(__name__)

GAMBLE_DRAW = 2

SpecialTarget = Union[str, int, None]


def play_special_card(
    state: GameSnapshot,
    player_id: str,
    card_id: str,
    rng: Optional[random.Random] = None,
) -> Optional[GameSnapshot]:
    """
    Play a special card from the hand.

    Args:
        state: Current game snapshot
        player_id: Player playing the card
        card_id: Id of the special card in their hand
        rng: Optional random source (Shuffle)

    Returns:
        Updated snapshot, or None if it is not the caller's turn
    """
    game = state.game
    if game.game_state != PHASE_PLAYER_TURN or game.current_player_id != player_id:
        logger.warning(f"Ignoring special card from {player_id} in game {game.id}: not their turn")
        return None
    if game.game_mode != MODE_SPECIAL:
        raise GameError(INVALID_SPECIAL_CARD, "Special cards are only played in special mode.")

    player = state.players[player_id]
    card = player.find_card(card_id)
    if card is None:
        raise GameError(CARD_NOT_IN_HAND, f"You don't have card {card_id}")
    if not is_special_card(card):
        raise GameError(INVALID_SPECIAL_CARD, "That is not a special card.")
    if card.rank not in game.allowed_special_cards:
        raise GameError(INVALID_SPECIAL_CARD, f"{card.rank} is not allowed in this game.")

    new_state = copy.deepcopy(state)
    player = new_state.players[player_id]

    if card.rank == RANK_SHUFFLE:
        _spend_card(new_state, player, card_id)
        player.hand = shuffle_deck(player.hand, rng)
        _record_play(new_state, player, card.rank)
        logger.info(f"{player.name} shuffled their hand")
        return new_state

    new_state.game.game_state = PHASE_SPECIAL_ACTION
    new_state.game.special_action = SpecialAction(player_id=player_id, card_rank=card.rank, card_id=card_id)
    logger.info(f"{player.name} played {card.rank}, waiting for a target")
    return new_state


def resolve_special_card(
    state: GameSnapshot,
    player_id: str,
    card_id: Optional[str] = None,
    target: SpecialTarget = None,
    rng: Optional[random.Random] = None,
) -> Optional[GameSnapshot]:
    """
    Apply the pending special card.

    Args:
        state: Current game snapshot
        player_id: Player who played the special card
        card_id: Discard pile card to clone, or hand card to gamble away
        target: Player id to sabotage, or target card slot for destiny
        rng: Optional random source (Sabotage)

    Returns:
        Updated snapshot, or None if no special action of this player is pending
    """
    pending = state.game.special_action
    if state.game.game_state != PHASE_SPECIAL_ACTION or pending is None or pending.player_id != player_id:
        logger.warning(f"Ignoring special card resolution from {player_id} in game {state.game.id}")
        return None

    new_state = copy.deepcopy(state)
    player = new_state.players[player_id]
    _spend_card(new_state, player, pending.card_id)

    if pending.card_rank == RANK_CLONE:
        _apply_clone(new_state, player, card_id)
    elif pending.card_rank == RANK_SABOTAGE:
        _apply_sabotage(new_state, player, target, rng)
    elif pending.card_rank == RANK_DESTINY:
        _apply_destiny(new_state, player, target)
    elif pending.card_rank == RANK_GAMBLE:
        _apply_gamble(new_state, player, card_id)
    else:
        raise GameError(INVALID_SPECIAL_CARD, f"{pending.card_rank} has nothing to resolve.")

    new_state.game.special_action = None
    new_state.game.game_state = PHASE_PLAYER_TURN
    if pending.card_rank in TURN_ENDING_SPECIALS:
        advance_turn_in_place(new_state)
    return new_state


def end_special_action(state: GameSnapshot, player_id: str) -> Optional[GameSnapshot]:
    """Cancel a pending special card; it stays in the hand unused."""
    pending = state.game.special_action
    if state.game.game_state != PHASE_SPECIAL_ACTION or pending is None or pending.player_id != player_id:
        return None

    new_state = copy.deepcopy(state)
    new_state.game.special_action = None
    new_state.game.game_state = PHASE_PLAYER_TURN
    logger.info(f"{new_state.players[player_id].name} cancelled {pending.card_rank}")
    return new_state


def _spend_card(state: GameSnapshot, player: Player, card_id: str):
    card = player.find_card(card_id)
    if card is None:
        raise GameError(CARD_NOT_IN_HAND, f"You don't have card {card_id}")
    player.hand = [c for c in player.hand if c.id != card_id]
    state.game.discard_pile.append(card)


def _apply_clone(state: GameSnapshot, player: Player, card_id: Optional[str]):
    """Duplicate a discard pile card into the acting player's hand."""
    source = next((c for c in state.game.discard_pile if c.id == card_id), None)
    if source is None:
        raise GameError(INVALID_TARGET, "Choose a card from the discard pile to clone.")
    if is_special_card(source):
        raise GameError(INVALID_TARGET, "Special cards cannot be cloned.")

    clone = clone_card(source, (c.id for c in state.all_cards()))
    player.hand.append(clone)
    _record_play(state, player, RANK_CLONE)
    logger.info(f"{player.name} cloned {source.id} as {clone.id}")


def _apply_sabotage(state: GameSnapshot, player: Player, target: SpecialTarget,
                    rng: Optional[random.Random]):
    """Steal a random card from another player's hand."""
    victim = state.players.get(target) if isinstance(target, str) else None
    if victim is None or victim.id == player.id:
        raise GameError(INVALID_TARGET, "Choose another player to sabotage.")

    if not victim.hand:
        _record_play(state, player, RANK_SABOTAGE, victim.name, f"{victim.name} had no cards to steal")
        logger.info(f"{player.name} sabotaged {victim.name}, who had no cards")
        return

    stolen = (rng or random).choice(victim.hand)
    victim.hand = [c for c in victim.hand if c.id != stolen.id]
    player.hand.append(stolen)
    _record_play(state, player, RANK_SABOTAGE, victim.name)
    logger.info(f"{player.name} stole a card from {victim.name}")


def _apply_destiny(state: GameSnapshot, player: Player, target: SpecialTarget):
    """Swap one number card of the target for the first number card in the deck."""
    game = state.game
    if isinstance(target, bool) or not isinstance(target, int) or not 0 <= target < len(game.target_cards):
        raise GameError(INVALID_TARGET, "Choose one of the target cards.")
    if not is_number_card(game.target_cards[target]):
        raise GameError(INVALID_TARGET, "Only number cards of the target can be replaced.")

    replacement = next((c for c in game.deck if is_number_card(c)), None)
    if replacement is None:
        raise GameError(DECK_EMPTY, "There are no number cards left in the deck.")

    replaced = game.target_cards[target]
    game.deck = [c for c in game.deck if c.id != replacement.id]
    game.discard_pile.append(replaced)
    game.target_cards[target] = replacement
    game.target_number = recompute_target(game.target_cards, game.target_number)
    _record_play(state, player, RANK_DESTINY)
    logger.info(f"{player.name} changed the target to {game.target_number}")


def _apply_gamble(state: GameSnapshot, player: Player, card_id: Optional[str]):
    """Discard one hand card and draw two."""
    card = player.find_card(card_id) if card_id else None
    if card is None:
        raise GameError(CARD_NOT_IN_HAND, "Choose a card from your hand to gamble.")

    player.hand = [c for c in player.hand if c.id != card.id]
    state.game.discard_pile.append(card)
    drawn, state.game.deck = draw_cards(state.game.deck, GAMBLE_DRAW)
    player.hand.extend(drawn)
    _record_play(state, player, RANK_GAMBLE)
    logger.info(f"{player.name} gambled {card.id} and drew {len(drawn)} cards")


def _record_play(state: GameSnapshot, player: Player, rank: str,
                 target_player_name: Optional[str] = None, note: Optional[str] = None):
    state.game.last_special_card_play = SpecialCardPlay(
        card_rank=rank,
        player_name=player.name,
        timestamp=time.time(),
        target_player_name=target_player_name,
        note=note,
    )
