from __future__ import annotations

from abc import ABC, abstractmethod
import threading

from ..domain import Actor


class UserDirectory(ABC):
    @abstractmethod
    def get(self, user_id: str) -> Actor | None:
        raise NotImplementedError


class InMemoryUserDirectory(UserDirectory):
    """Directory fed by whoever knows the users (the API layer upserts token claims)."""

    def __init__(self, users: list[Actor] | None = None) -> None:
        self._lock = threading.Lock()
        self._users: dict[str, Actor] = {user.id: user for user in users or []}

    def get(self, user_id: str) -> Actor | None:
        with self._lock:
            return self._users.get(user_id)

    def upsert(self, user: Actor) -> None:
        with self._lock:
            self._users[user.id] = user
