"""
Change notification for stores.

Stores apply all field changes of one operation through `_commit`, which
notifies subscribers exactly once afterwards. Subscribers therefore never see
a half-applied operation.
"""

from typing import Any, Callable, List

from schooladmin.logging_config import logger


ChangeHandler = Callable[[Any], None]


class Observable:
    """Synchronous subscribe/notify"""

    def __init__(self):
        self._subscribers: List[ChangeHandler] = []

    def subscribe(self, handler: ChangeHandler) -> Callable[[], None]:
        """
        Register a handler called with the store after each committed change.

        Returns a function that removes the handler.
        """
        self._subscribers.append(handler)

        def unsubscribe() -> None:
            if handler in self._subscribers:
                self._subscribers.remove(handler)

        return unsubscribe

    def _notify(self) -> None:
        for handler in list(self._subscribers):
            try:
                handler(self)
            except Exception as e:
                # A broken view must not undo a committed change
                logger.error(f"[{type(self).__name__}] Subscriber error: {e}")

    def _commit(self, **changes: Any) -> None:
        """Apply attribute changes together, then notify once"""
        for name, value in changes.items():
            setattr(self, name, value)
        self._notify()
