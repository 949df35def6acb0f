"""In-process change notifications, scoped per principal."""

from __future__ import annotations

from collections import defaultdict
from typing import Callable, Optional

from ..logging_config import get_logger

logger = get_logger("events")

TRANSACTIONS = "transactions"
TASKS = "tasks"
SESSION = "session"

Listener = Callable[[Optional[int], str], None]


class ChangeFeed:
    """Fan out ``(owner_id, collection)`` notifications after commits.

    Listeners registered for an owner only hear that owner's changes; listeners
    registered with ``owner_id=None`` hear everything.
    """

    def __init__(self) -> None:
        self._listeners: dict[Optional[int], list[Listener]] = defaultdict(list)

    def subscribe(self, listener: Listener, *, owner_id: Optional[int] = None) -> Callable[[], None]:
        """Register a listener; returns a callable that detaches it."""

        self._listeners[owner_id].append(listener)

        def _unsubscribe() -> None:
            listeners = self._listeners.get(owner_id, [])
            if listener in listeners:
                listeners.remove(listener)

        return _unsubscribe

    def publish(self, owner_id: Optional[int], collection: str) -> None:
        targets = list(self._listeners.get(owner_id, [])) if owner_id is not None else []
        targets += list(self._listeners.get(None, []))
        logger.debug(
            "Publishing change",
            extra={"owner_id": owner_id, "collection": collection, "listeners": len(targets)},
        )
        for listener in targets:
            try:
                listener(owner_id, collection)
            except Exception:
                # Listeners run after the commit; their failures never reach the writer.
                logger.exception(
                    "Change listener failed",
                    extra={"owner_id": owner_id, "collection": collection},
                )
