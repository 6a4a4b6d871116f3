"""
Game state machine.

Every operation takes a GameSnapshot and returns a new one; the input is
never modified. Operations that are ignored (stale or out-of-turn calls)
return None so the caller can skip the commit. Invalid moves raise
GameError before anything is changed.
"""

import copy
import logging
import random
from typing import List, Optional, Sequence

from .constants import (
    PHASE_LOBBY, PHASE_PLAYER_TURN, PHASE_ROUND_OVER, PHASE_GAME_OVER, PHASE_DISCARDING,
    MODE_SPECIAL, GAME_MODES, UNBOUNDED_ROUNDS, ACTION_SUBMIT, ACTION_PASS, is_special_rank,
)
from .errors import (
    GameError, ALREADY_STARTED, GAME_FULL, NAME_TAKEN, WRONG_PHASE, WRONG_COUNT,
    CARD_NOT_IN_HAND, NOT_ENOUGH_PLAYERS, INVALID_MODE, INVALID_SPECIAL_CARD,
    INVALID_ACTION, EQUATION_MISMATCH,
)
from .evaluator import evaluate, parse_term, parse_terms, term_to_raw
from .models import Card, Game, GameSnapshot, Paren, Player, RawTerm
from .rules import RuleConfig, default_rules
from .scoring import calculate_score, round_winners
from .shuffle import card_value, create_deck, draw_cards, is_special_card, shuffle_deck
from .target import generate_target

logger = logging.getLogger(__name__)


def create_game(game_id: str, creator_id: str, creator_name: str,
                rules: RuleConfig = default_rules) -> GameSnapshot:
    """Create a lobby with the creator as its only player."""
    name = _clean_name(creator_name)
    game = Game(
        id=game_id,
        creator_id=creator_id,
        players=[creator_id],
        max_players=rules.max_players,
        current_player_id=creator_id,
        total_rounds=rules.total_rounds,
    )
    return GameSnapshot(game=game, players={creator_id: Player(id=creator_id, name=name)})


def join_game(state: GameSnapshot, player_id: str, player_name: str) -> GameSnapshot:
    game = state.game
    name = _clean_name(player_name)
    if game.game_state != PHASE_LOBBY:
        raise GameError(ALREADY_STARTED, "Game has already started.")
    if len(game.players) >= game.max_players:
        raise GameError(GAME_FULL, "Game is full.")
    if any(p.name == name for p in state.players.values()):
        raise GameError(NAME_TAKEN, "A player with this name is already in the game.")

    new_state = copy.deepcopy(state)
    new_state.players[player_id] = Player(id=player_id, name=name)
    new_state.game.players.append(player_id)
    return new_state


def set_game_mode(state: GameSnapshot, mode: str, rules: RuleConfig = default_rules) -> GameSnapshot:
    """
    Change the mode while in the lobby.

    Special mode plays an unbounded number of rounds until someone reaches
    the target score.
    """
    _require_lobby(state)
    if mode not in GAME_MODES:
        raise GameError(INVALID_MODE, f"Unknown game mode: {mode}")

    new_state = copy.deepcopy(state)
    game = new_state.game
    game.game_mode = mode
    if mode == MODE_SPECIAL:
        game.total_rounds = UNBOUNDED_ROUNDS
        game.target_score = rules.special_target_score
    else:
        game.total_rounds = rules.total_rounds
        game.target_score = 0
    return new_state


def set_allowed_special_cards(state: GameSnapshot, ranks: Sequence[str]) -> GameSnapshot:
    _require_lobby(state)
    unknown = [r for r in ranks if not is_special_rank(r)]
    if unknown:
        raise GameError(INVALID_SPECIAL_CARD, f"Unknown special cards: {', '.join(unknown)}")

    new_state = copy.deepcopy(state)
    new_state.game.allowed_special_cards = list(dict.fromkeys(ranks))
    return new_state


def start_game(state: GameSnapshot, rng: Optional[random.Random] = None,
               rules: RuleConfig = default_rules) -> GameSnapshot:
    """Build and shuffle the deck, generate the target and deal the first round."""
    if state.game.game_state != PHASE_LOBBY:
        raise GameError(ALREADY_STARTED, "Game has already started.")
    if not rules.validate_player_count(len(state.game.players)):
        raise GameError(NOT_ENOUGH_PLAYERS, f"Need {rules.min_players} to {rules.max_players} players")

    new_state = copy.deepcopy(state)
    game = new_state.game
    deck = create_deck(game.game_mode, len(game.players), game.allowed_special_cards, rules)
    for player in new_state.players.values():
        player.total_score = 0
    game.current_round = 1
    _deal_fresh_round(new_state, shuffle_deck(deck, rng), rng, rules)
    logger.info(f"Game {game.id} started in {game.game_mode} mode, target {game.target_number}")
    return new_state


def player_action(
    state: GameSnapshot,
    player_id: str,
    action: str,
    equation: Optional[Sequence[RawTerm]] = None,
    cards_used: Optional[Sequence[str]] = None,
    rules: RuleConfig = default_rules,
) -> Optional[GameSnapshot]:
    """
    Submit an equation or pass.

    Returns None when it is not the caller's turn, so stale clients cannot
    change anything.
    """
    game = state.game
    if game.game_state != PHASE_PLAYER_TURN or game.current_player_id != player_id:
        logger.warning(f"Ignoring {action} from {player_id} in game {game.id}: not their turn")
        return None
    if action not in (ACTION_SUBMIT, ACTION_PASS):
        raise GameError(INVALID_ACTION, f"Unknown action: {action}")

    new_state = copy.deepcopy(state)
    player = new_state.players[player_id]

    if action == ACTION_SUBMIT:
        mode = new_state.game.game_mode
        result = evaluate(equation or [], mode, rules)
        if not cards_used:
            raise GameError(INVALID_ACTION, "Submit requires the cards used.")

        cards = _cards_from_hand(player, cards_used)
        if any(is_special_card(c) for c in cards):
            raise GameError(INVALID_ACTION, "Special cards cannot be part of an equation.")
        _check_equation_matches_cards(equation, cards, mode)

        used_ids = {c.id for c in cards}
        player.hand = [c for c in player.hand if c.id not in used_ids]
        player.round_score = calculate_score(result, new_state.game.target_number, len(cards))
        player.final_result = result
        player.equation = [term_to_raw(t) for t in parse_terms(equation)]
        player.cards_used = cards
        player.passed = True
        new_state.game.discard_pile.extend(cards)
        logger.info(f"{player.name} submitted {player.equation} = {result}, score {player.round_score}")
    else:
        player.passed = True
        player.equation = []
        player.final_result = 0
        player.round_score = 0
        player.cards_used = []
        logger.info(f"{player.name} passed")

    advance_turn_in_place(new_state)
    return new_state


def advance_turn(state: GameSnapshot) -> GameSnapshot:
    """Copying form of advance_turn_in_place."""
    new_state = copy.deepcopy(state)
    advance_turn_in_place(new_state)
    return new_state


def next_round(state: GameSnapshot, rng: Optional[random.Random] = None,
               rules: RuleConfig = default_rules) -> Optional[GameSnapshot]:
    """
    Start the next round, or end the game if its end condition is met.

    Returns None unless the game is waiting between rounds.
    """
    if state.game.game_state != PHASE_ROUND_OVER:
        logger.warning(f"Ignoring next round for game {state.game.id} in {state.game.game_state}")
        return None

    new_state = copy.deepcopy(state)
    game = new_state.game

    if _game_is_over(new_state):
        game.game_state = PHASE_GAME_OVER
        logger.info(f"Game {game.id} over after round {game.current_round}")
        return new_state

    game.current_round += 1
    if game.game_mode == MODE_SPECIAL:
        _deal_special_round(new_state, rng, rules)
    else:
        collected = list(game.deck) + list(game.discard_pile) + list(game.target_cards)
        for player in new_state.ordered_players():
            collected.extend(player.hand)
            player.hand = []
        _deal_fresh_round(new_state, shuffle_deck(collected, rng), rng, rules)

    logger.info(f"Game {game.id} round {game.current_round} started, target {game.target_number}")
    return new_state


def discard_cards(state: GameSnapshot, player_id: str, card_ids: Sequence[str],
                  rules: RuleConfig = default_rules) -> GameSnapshot:
    """Remove exactly ``rules.discard_count`` cards from an over-limit hand."""
    game = state.game
    if game.game_state != PHASE_DISCARDING:
        raise GameError(WRONG_PHASE, "No discard is pending.")
    if game.discarding_player_id != player_id:
        raise GameError(WRONG_PHASE, "It is not your turn to discard.")
    if len(card_ids) != rules.discard_count or len(set(card_ids)) != len(card_ids):
        raise GameError(WRONG_COUNT, f"You must discard exactly {rules.discard_count} cards.")

    new_state = copy.deepcopy(state)
    player = new_state.players[player_id]
    cards = _cards_from_hand(player, card_ids)
    ids = set(card_ids)
    player.hand = [c for c in player.hand if c.id not in ids]
    new_state.game.discard_pile.extend(cards)

    order = new_state.game.players
    later = order[order.index(player_id) + 1:]
    _open_discard_gate(new_state, later, rules)
    return new_state


def rematch(state: GameSnapshot, new_game_id: str) -> GameSnapshot:
    """A fresh lobby with the same roster and configuration."""
    old = state.game
    game = Game(
        id=new_game_id,
        creator_id=old.creator_id,
        game_mode=old.game_mode,
        players=list(old.players),
        max_players=old.max_players,
        current_player_id=old.creator_id,
        total_rounds=old.total_rounds,
        target_score=old.target_score,
        allowed_special_cards=list(old.allowed_special_cards),
    )
    players = {
        pid: Player(id=pid, name=state.players[pid].name)
        for pid in old.players if pid in state.players
    }
    return GameSnapshot(game=game, players=players)


# Internal helpers

def _clean_name(name: str) -> str:
    name = (name or '').strip()
    if not name:
        raise GameError(INVALID_ACTION, "Player name is required.")
    return name


def _require_lobby(state: GameSnapshot):
    if state.game.game_state != PHASE_LOBBY:
        raise GameError(WRONG_PHASE, "Game settings can only be changed in the lobby.")


def _cards_from_hand(player: Player, card_ids: Sequence[str]) -> List[Card]:
    if len(set(card_ids)) != len(card_ids):
        raise GameError(INVALID_ACTION, "A card can only be used once.")
    cards = []
    for card_id in card_ids:
        card = player.find_card(card_id)
        if card is None:
            raise GameError(CARD_NOT_IN_HAND, f"You don't have card {card_id}")
        cards.append(card)
    return cards


def _check_equation_matches_cards(equation: Sequence[RawTerm], cards: Sequence[Card], mode: str):
    """Every non-parenthesis term must come from the cards used, in order."""
    card_terms = [parse_term(card_value(c, mode)) for c in cards]
    equation_terms = [t for t in parse_terms(equation) if not isinstance(t, Paren)]
    if card_terms != equation_terms:
        raise GameError(EQUATION_MISMATCH, "The equation does not match the cards used.")


def _deal_fresh_round(state: GameSnapshot, deck: List[Card], rng: Optional[random.Random],
                      rules: RuleConfig):
    """Generate a target from ``deck``, deal new hands and give the first player the starter card."""
    game = state.game
    target = generate_target(deck, game.game_mode, rng, rules)
    deck = target.deck

    for player in state.ordered_players():
        player.hand, deck = draw_cards(deck, rules.hand_size)
        player.reset_round()

    first = state.players[game.players[0]]
    starter, deck = draw_cards(deck, 1)
    first.hand.extend(starter)

    game.deck = deck
    game.discard_pile = []
    game.target_number = target.target
    game.target_cards = target.cards_used
    game.current_player_id = first.id
    game.round_winner_ids = []
    game.special_action = None
    game.discarding_player_id = None
    game.game_state = PHASE_PLAYER_TURN


def _deal_special_round(state: GameSnapshot, rng: Optional[random.Random], rules: RuleConfig):
    """
    Special mode keeps hands: everyone draws extra cards, the first player
    draws the starter card, then over-limit hands go through the discard gate.
    """
    game = state.game
    collected = list(game.deck) + list(game.discard_pile) + list(game.target_cards)
    target = generate_target(shuffle_deck(collected, rng), game.game_mode, rng, rules)
    deck = target.deck

    for player in state.ordered_players():
        drawn, deck = draw_cards(deck, rules.special_round_draw)
        player.hand.extend(drawn)
        player.reset_round()

    first = state.players[game.players[0]]
    starter, deck = draw_cards(deck, 1)
    first.hand.extend(starter)

    game.deck = deck
    game.discard_pile = []
    game.target_number = target.target
    game.target_cards = target.cards_used
    game.current_player_id = first.id
    game.round_winner_ids = []
    game.special_action = None
    _open_discard_gate(state, game.players, rules)


def _open_discard_gate(state: GameSnapshot, candidates: Sequence[str], rules: RuleConfig):
    """Send the first over-limit player among ``candidates`` to discard, else resume play."""
    game = state.game
    for pid in candidates:
        if len(state.players[pid].hand) > rules.hand_limit:
            game.discarding_player_id = pid
            game.game_state = PHASE_DISCARDING
            logger.info(f"{state.players[pid].name} is over the hand limit and must discard")
            return
    game.discarding_player_id = None
    game.game_state = PHASE_PLAYER_TURN


def advance_turn_in_place(state: GameSnapshot):
    """
    End the round once everyone has acted, otherwise hand the turn to the
    next player in join order who has not acted and let them draw a card.
    Mutates ``state``.
    """
    game = state.game
    players = state.ordered_players()

    if all(p.passed for p in players):
        _end_round(state)
        return

    order = game.players
    idx = order.index(game.current_player_id) if game.current_player_id in order else -1
    n = len(order)
    for i in range(1, n + 1):
        candidate = state.players[order[(idx + i) % n]]
        if not candidate.passed:
            game.current_player_id = candidate.id
            drawn, game.deck = draw_cards(game.deck, 1)
            candidate.hand.extend(drawn)
            return


def _end_round(state: GameSnapshot):
    game = state.game
    players = state.ordered_players()
    for player in players:
        player.total_score += player.round_score

    game.round_winner_ids = round_winners(players)
    game.game_state = PHASE_ROUND_OVER
    logger.info(f"Game {game.id} round {game.current_round} over, winners {game.round_winner_ids}")

    if game.game_mode == MODE_SPECIAL and _game_is_over(state):
        game.game_state = PHASE_GAME_OVER
        logger.info(f"Game {game.id} over: target score {game.target_score} reached")


def _game_is_over(state: GameSnapshot) -> bool:
    game = state.game
    if game.game_mode == MODE_SPECIAL:
        return any(p.total_score >= game.target_score for p in state.players.values())
    return game.current_round >= game.total_rounds
