from functools import partial
from typing import Any, Callable, List


class Journal:
    """
    Undo log for a single vault operation.

    Components record the inverse of each write before making it; on failure
    the vault replays the inverses newest-first. Cost is proportional to the
    entries an operation touches, never to the number of participants.
    """

    def __init__(self):
        self._undo: List[Callable[[], Any]] = []

    def record(self, fn: Callable[..., Any], *args: Any) -> None:
        self._undo.append(partial(fn, *args))

    def rollback(self) -> None:
        while self._undo:
            self._undo.pop()()

    def __len__(self) -> int:
        return len(self._undo)
