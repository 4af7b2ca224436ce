"""
Browser History Primitive.

The flow controller only needs pushState/replaceState and a popstate
listener. HistoryAPI is that surface; InMemoryHistory is a faithful model of
a single tab's session history for the CLI walkthrough and for tests.
"""

import logging
from typing import Any, Callable, Protocol

logger = logging.getLogger(__name__)

PopStateHandler = Callable[[dict[str, Any] | None], Any]


class HistoryAPI(Protocol):
    """Subset of window.history used by the onboarding flow."""

    def push_state(self, state: dict[str, Any]) -> None: ...

    def replace_state(self, state: dict[str, Any]) -> None: ...

    def add_popstate_listener(self, handler: PopStateHandler) -> None: ...

    def remove_popstate_listener(self, handler: PopStateHandler) -> None: ...


class InMemoryHistory:
    """
    Session history of one tab.

    Starts with a single entry for the page load. back()/forward() move the
    cursor and fire popstate synchronously, as the browser does for
    same-document entries. Pushing from the middle of the stack drops the
    forward entries.
    """

    def __init__(self, initial_state: dict[str, Any] | None = None):
        self.entries: list[dict[str, Any] | None] = [initial_state]
        self.index = 0
        self.push_count = 0
        self._listeners: list[PopStateHandler] = []

    @property
    def length(self) -> int:
        return len(self.entries)

    @property
    def state(self) -> dict[str, Any] | None:
        return self.entries[self.index]

    @property
    def at_page_entry(self) -> bool:
        """True when the cursor sits on the entry that loaded the page."""
        return self.index == 0

    def push_state(self, state: dict[str, Any]) -> None:
        del self.entries[self.index + 1:]
        self.entries.append(dict(state))
        self.index += 1
        self.push_count += 1

    def replace_state(self, state: dict[str, Any]) -> None:
        self.entries[self.index] = dict(state)

    def add_popstate_listener(self, handler: PopStateHandler) -> None:
        if handler not in self._listeners:
            self._listeners.append(handler)

    def remove_popstate_listener(self, handler: PopStateHandler) -> None:
        if handler in self._listeners:
            self._listeners.remove(handler)

    def back(self) -> bool:
        """
        Go back one entry and fire popstate.

        Returns False when there is nothing to go back to inside the page
        (the browser would leave the document).
        """
        if self.index == 0:
            logger.debug("History back at page entry; browser would navigate away")
            return False
        self.index -= 1
        self._dispatch()
        return True

    def forward(self) -> bool:
        """Go forward one entry and fire popstate. False if at the end."""
        if self.index >= len(self.entries) - 1:
            return False
        self.index += 1
        self._dispatch()
        return True

    def _dispatch(self) -> None:
        state = self.entries[self.index]
        for handler in list(self._listeners):
            handler(state)
