"""
Transactional game service.

Each public method is one atomic transaction against the store; the state
machine functions in ``engine`` and ``effects`` compute the new snapshot.
"""

import logging
import random
import uuid
from typing import List, Optional, Sequence

from . import effects, engine
from .constants import GAME_ID_ALPHABET, GAME_ID_LENGTH
from .errors import GameError
from .models import GameSnapshot, RawTerm
from .rules import RuleConfig, default_rules
from .store import GameStore, InMemoryGameStore

logger = logging.getLogger(__name__)


def generate_short_id(rng: Optional[random.Random] = None, length: int = GAME_ID_LENGTH) -> str:
    rng = rng or random
    return ''.join(rng.choice(GAME_ID_ALPHABET) for _ in range(length))


def generate_player_id() -> str:
    return str(uuid.uuid4())[:8]


class GameService:
    def __init__(self, store: Optional[GameStore] = None, rules: RuleConfig = default_rules,
                 rng: Optional[random.Random] = None):
        self.store = store if store is not None else InMemoryGameStore()
        self.rules = rules
        self.rng = rng or random.Random()

    def _new_game_id(self) -> str:
        game_id = generate_short_id(self.rng)
        while self.store.exists(game_id):
            game_id = generate_short_id(self.rng)
        return game_id

    def get_state(self, game_id: str) -> GameSnapshot:
        return self.store.get(game_id)

    def create_game(self, creator_name: str) -> str:
        game_id = self._new_game_id()
        state = engine.create_game(game_id, generate_player_id(), creator_name, self.rules)
        self.store.create(state)
        logger.info(f"Created game {game_id} for {state.players[state.game.creator_id].name}")
        return game_id

    def join_game(self, game_id: str, player_name: str) -> str:
        player_id = generate_player_id()
        self.store.transact(game_id, lambda s: engine.join_game(s, player_id, player_name))
        logger.info(f"Player {player_name} ({player_id}) joined game {game_id}")
        return player_id

    def set_game_mode(self, game_id: str, mode: str) -> GameSnapshot:
        return self.store.transact(game_id, lambda s: engine.set_game_mode(s, mode, self.rules))

    def set_allowed_special_cards(self, game_id: str, ranks: Sequence[str]) -> GameSnapshot:
        return self.store.transact(game_id, lambda s: engine.set_allowed_special_cards(s, ranks))

    def start_game(self, game_id: str) -> GameSnapshot:
        return self.store.transact(game_id, lambda s: engine.start_game(s, self.rng, self.rules))

    def player_action(self, game_id: str, player_id: str, action: str,
                      equation: Optional[Sequence[RawTerm]] = None,
                      cards_used: Optional[Sequence[str]] = None) -> GameSnapshot:
        return self.store.transact(
            game_id,
            lambda s: engine.player_action(s, player_id, action, equation, cards_used, self.rules),
        )

    def play_special_card(self, game_id: str, player_id: str, card_id: str) -> GameSnapshot:
        return self.store.transact(
            game_id, lambda s: effects.play_special_card(s, player_id, card_id, self.rng)
        )

    def resolve_special_card(self, game_id: str, player_id: str, card_id: Optional[str] = None,
                             target=None) -> GameSnapshot:
        return self.store.transact(
            game_id, lambda s: effects.resolve_special_card(s, player_id, card_id, target, self.rng)
        )

    def end_special_action(self, game_id: str, player_id: str) -> GameSnapshot:
        return self.store.transact(game_id, lambda s: effects.end_special_action(s, player_id))

    def discard_cards(self, game_id: str, player_id: str, card_ids: List[str]) -> GameSnapshot:
        return self.store.transact(
            game_id, lambda s: engine.discard_cards(s, player_id, card_ids, self.rules)
        )

    def next_round(self, game_id: str) -> GameSnapshot:
        return self.store.transact(game_id, lambda s: engine.next_round(s, self.rng, self.rules))

    def rematch(self, game_id: str) -> str:
        """
        Open a new lobby with the same roster and settings.

        The lobby is stored before the old game links to it, so a reader
        following ``next_game_id`` always finds it. Repeated calls return the
        lobby created by the first one.
        """
        current = self.store.get(game_id)
        if current.game.next_game_id:
            return current.game.next_game_id

        new_game_id = self._new_game_id()
        self.store.create(engine.rematch(current, new_game_id))

        def link(state: GameSnapshot) -> Optional[GameSnapshot]:
            if state.game.next_game_id:
                return None
            state.game.next_game_id = new_game_id
            return state

        try:
            committed = self.store.transact(game_id, link)
        except GameError:
            self.store.delete(new_game_id)
            raise

        if committed.game.next_game_id != new_game_id:
            # Another request linked its lobby first
            self.store.delete(new_game_id)
        else:
            logger.info(f"Rematch of game {game_id} created as {new_game_id}")
        return committed.game.next_game_id
