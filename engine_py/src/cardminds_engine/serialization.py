"""
State serialization and sanitization utilities.
"""

from dataclasses import asdict
from typing import Any, Dict, List, Optional

from .models import Card, GameSnapshot, Player


def serialize_cards(cards: List[Card]) -> List[Dict[str, str]]:
    return [asdict(card) for card in cards]


def sanitize_state(state: GameSnapshot, viewer_id: Optional[str] = None) -> Dict[str, Any]:
    """
    Sanitize a game snapshot for transmission to clients.

    Args:
        state: Game snapshot to sanitize
        viewer_id: ID of the player viewing the state (to show their cards)

    Returns:
        Sanitized state dictionary safe for JSON transmission
    """
    game = state.game
    sanitized = {
        "id": game.id,
        "creator_id": game.creator_id,
        "game_state": game.game_state,
        "game_mode": game.game_mode,
        "players": [],
        "max_players": game.max_players,
        "deck_count": len(game.deck),
        "discard_pile": serialize_cards(game.discard_pile),
        "target_number": game.target_number,
        "target_cards": serialize_cards(game.target_cards),
        "current_player_id": game.current_player_id,
        "current_round": game.current_round,
        "total_rounds": game.total_rounds,
        "target_score": game.target_score,
        "round_winner_ids": list(game.round_winner_ids),
        "special_action": asdict(game.special_action) if game.special_action else None,
        "discarding_player_id": game.discarding_player_id,
        "allowed_special_cards": list(game.allowed_special_cards),
        "next_game_id": game.next_game_id,
        "last_special_card_play": asdict(game.last_special_card_play) if game.last_special_card_play else None,
    }

    for player in state.ordered_players():
        sanitized["players"].append(_sanitize_player(player, player.id == viewer_id))

    return sanitized


def _sanitize_player(player: Player, is_viewer: bool) -> Dict[str, Any]:
    sanitized_player = {
        "id": player.id,
        "name": player.name,
        "hand_count": len(player.hand),
        "round_score": player.round_score,
        "total_score": player.total_score,
        "passed": player.passed,
        "final_result": player.final_result,
        "equation": list(player.equation),
        "cards_used": serialize_cards(player.cards_used),
    }

    # Show full hand only to the viewer
    if is_viewer:
        sanitized_player["hand"] = serialize_cards(player.hand)

    return sanitized_player


def get_public_game_info(state: GameSnapshot) -> Dict[str, Any]:
    """Get public information about a game for lobby listings."""
    return {
        "id": state.game.id,
        "game_state": state.game.game_state,
        "game_mode": state.game.game_mode,
        "player_count": len(state.game.players),
        "max_players": state.game.max_players,
        "players": [{"id": p.id, "name": p.name} for p in state.ordered_players()],
    }
