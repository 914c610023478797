"""
Broadcast Event

Minimal multi-subscriber notification primitive used by slaves, groups
and the master.

RULES:
- Subscribers are called in registration order
- Firing is synchronous, on the caller's thread
- No unsubscribe
"""

from typing import Callable, Generic, List, Optional, TypeVar

T = TypeVar("T")

# Errors travel as data: None (or an empty list) means success.
ErrorList = Optional[List[str]]
CompletionHandler = Callable[[ErrorList], None]


class BroadcastEvent(Generic[T]):
    """
    Append-only list of subscribers fired with a single value.
    """

    def __init__(self):
        self._handlers: List[Callable[[T], None]] = []

    def subscribe(self, handler: Callable[[T], None]) -> None:
        """
        Subscribe a handler.

        Args:
            handler: Function to call when the event fires
        """
        self._handlers.append(handler)

    def fire(self, value: T) -> None:
        """
        Invoke every subscribed handler with value.

        Args:
            value: Payload handed to each handler
        """
        # Handlers subscribed while firing wait for the next fire.
        for handler in list(self._handlers):
            handler(value)

    def __len__(self) -> int:
        return len(self._handlers)
