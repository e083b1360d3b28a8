"""Workflow notifications.

Delivery is best-effort and at-most-once: callers hand a message to the
dispatcher and carry on. A failing channel is logged and never reaches the
caller, so it cannot roll back or block a pass transition.
"""

from __future__ import annotations

import logging
from concurrent.futures import Executor, Future
from typing import Iterable, Optional, Protocol

logger = logging.getLogger(__name__)


class NotificationDispatcher(Protocol):
    def notify(
        self,
        user_id: int,
        title: str,
        body: str,
        link: Optional[str] = None,
        related_id: Optional[int] = None,
    ) -> None:
        raise NotImplementedError


class BestEffortNotifier:
    """Wraps a dispatcher; submits to `executor` if given, else delivers inline."""

    def __init__(self, delegate: NotificationDispatcher, *, executor: Optional[Executor] = None):
        self._delegate = delegate
        self._executor = executor

    def notify(
        self,
        user_id: int,
        title: str,
        body: str,
        link: Optional[str] = None,
        related_id: Optional[int] = None,
    ) -> None:
        if self._executor is None:
            self._deliver(user_id, title, body, link, related_id)
            return
        try:
            future = self._executor.submit(self._delegate.notify, user_id, title, body, link, related_id)
        except RuntimeError:
            logger.exception("Notification queue unavailable; dropped %r for user %s", title, user_id)
            return
        future.add_done_callback(lambda f: self._log_failure(f, user_id, title))

    def notify_many(
        self,
        user_ids: Iterable[int],
        title: str,
        body: str,
        link: Optional[str] = None,
        related_id: Optional[int] = None,
    ) -> None:
        for user_id in user_ids:
            self.notify(user_id, title, body, link, related_id)

    def _deliver(self, user_id, title, body, link, related_id) -> None:
        try:
            self._delegate.notify(user_id, title, body, link, related_id)
        except Exception:
            logger.exception("Failed to deliver notification %r to user %s", title, user_id)

    @staticmethod
    def _log_failure(future: Future, user_id: int, title: str) -> None:
        exc = future.exception()
        if exc is not None:
            logger.error("Failed to deliver notification %r to user %s: %s", title, user_id, exc)
