from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional

from loguru import logger


@dataclass(frozen=True)
class User:
    id: int
    email: str


class AuthContext:
    """Holds the signed-in user and notifies subscribers when it changes."""

    def __init__(self, user: Optional[User] = None) -> None:
        self._user = user
        self._listeners: list[Callable[[Optional[User]], None]] = []

    @property
    def user(self) -> Optional[User]:
        return self._user

    def subscribe(self, callback: Callable[[Optional[User]], None]) -> Callable[[], None]:
        """Register ``callback`` and return a function that unregisters it."""
        self._listeners.append(callback)

        def unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    def sign_in(self, user: User) -> None:
        if user == self._user:
            return
        logger.info("Signed in user {}", user.id)
        self._set_user(user)

    def sign_out(self) -> None:
        if self._user is None:
            return
        logger.info("Signed out user {}", self._user.id)
        self._set_user(None)

    def _set_user(self, user: Optional[User]) -> None:
        self._user = user
        for callback in list(self._listeners):
            callback(user)
