"""
Game storage with atomic read-modify-write transactions.

A store holds one snapshot (Game plus Players) per game id. All changes go
through ``transact``: the transaction function receives a private copy of
the current snapshot and returns the new one, which is committed only if
no other writer committed in between. Conflicts are retried.
"""

import copy
import logging
import threading
from abc import ABC, abstractmethod
from typing import Callable, Dict, List, Optional, Tuple

from .errors import GameError, NOT_FOUND, STORE_UNAVAILABLE
from .models import GameSnapshot

logger = logging.getLogger(__name__)

TransactionFn = Callable[[GameSnapshot], Optional[GameSnapshot]]
Listener = Callable[[GameSnapshot], None]

DEFAULT_MAX_RETRIES = 5


class GameStore(ABC):
    """Repository interface the game service is written against."""

    def __init__(self):
        self._listeners: List[Listener] = []

    @abstractmethod
    def create(self, state: GameSnapshot) -> None:
        """Persist a new game; fails if the id is taken."""

    @abstractmethod
    def delete(self, game_id: str) -> None:
        """Remove a game; raises NOT_FOUND if it does not exist."""

    @abstractmethod
    def exists(self, game_id: str) -> bool:
        pass

    @abstractmethod
    def get(self, game_id: str) -> GameSnapshot:
        """Return a copy of the committed snapshot or raise NOT_FOUND."""

    @abstractmethod
    def transact(self, game_id: str, fn: TransactionFn) -> GameSnapshot:
        """
        Apply ``fn`` atomically.

        Returns the committed snapshot, or the unchanged current one when
        ``fn`` returns None. Exceptions raised by ``fn`` abandon the
        transaction.
        """

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call ``listener`` after every commit. Returns an unsubscribe function."""
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, state: GameSnapshot):
        for listener in list(self._listeners):
            try:
                listener(copy.deepcopy(state))
            except Exception as e:
                logger.error(f"Store listener failed for game {state.game.id}: {e}")


class InMemoryGameStore(GameStore):
    """
    Process-local store with optimistic concurrency.

    Each game carries a version; a transaction commits only if the version
    it read is still current. The per-game lock is held for reads, commits
    and commit notifications, never while the transaction function runs, so
    listeners see one game's commits in version order.
    """

    def __init__(self, max_retries: int = DEFAULT_MAX_RETRIES):
        super().__init__()
        self.max_retries = max_retries
        self.games: Dict[str, Tuple[int, GameSnapshot]] = {}
        self.game_locks: Dict[str, threading.RLock] = {}
        self._create_lock = threading.RLock()

    def create(self, state: GameSnapshot) -> None:
        game_id = state.game.id
        with self._create_lock:
            if game_id in self.games:
                raise GameError(STORE_UNAVAILABLE, f"Game {game_id} already exists")
            lock = self.game_locks[game_id] = threading.RLock()
            with lock:
                self.games[game_id] = (0, copy.deepcopy(state))
                self._notify(state)

    def delete(self, game_id: str) -> None:
        with self._create_lock:
            lock = self._lock_for(game_id)
            with lock:
                del self.games[game_id]
                del self.game_locks[game_id]

    def exists(self, game_id: str) -> bool:
        return game_id in self.games

    def get(self, game_id: str) -> GameSnapshot:
        return self._read(game_id)[1]

    def version(self, game_id: str) -> int:
        return self._read(game_id)[0]

    def transact(self, game_id: str, fn: TransactionFn) -> GameSnapshot:
        for attempt in range(1, self.max_retries + 1):
            version, snapshot = self._read(game_id)
            new_state = fn(snapshot)
            if new_state is None:
                return self.get(game_id)

            if self._commit(game_id, version, new_state):
                return copy.deepcopy(new_state)

            logger.warning(f"Write conflict on game {game_id} (attempt {attempt}/{self.max_retries})")

        raise GameError(STORE_UNAVAILABLE, "The game is busy, please try again.")

    def _lock_for(self, game_id: str) -> threading.RLock:
        lock = self.game_locks.get(game_id)
        if lock is None:
            raise GameError(NOT_FOUND, "Game not found.")
        return lock

    def _read(self, game_id: str) -> Tuple[int, GameSnapshot]:
        with self._lock_for(game_id):
            entry = self.games.get(game_id)
            if entry is None:
                raise GameError(NOT_FOUND, "Game not found.")
            version, state = entry
            return version, copy.deepcopy(state)

    def _commit(self, game_id: str, expected_version: int, state: GameSnapshot) -> bool:
        with self._lock_for(game_id):
            entry = self.games.get(game_id)
            if entry is None:
                raise GameError(NOT_FOUND, "Game not found.")
            current_version, _ = entry
            if current_version != expected_version:
                return False
            self.games[game_id] = (current_version + 1, copy.deepcopy(state))
            self._notify(state)
            return True
