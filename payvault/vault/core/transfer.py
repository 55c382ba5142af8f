from typing import Dict, Optional, Protocol
import logging
import threading

logger = logging.getLogger(__name__)


class ValueTransfer(Protocol):
    """
    Token movement the vault depends on.

    pull moves `amount` from `source` into the vault's custody; push moves it
    out to `destination`. Both signal failure by returning False or raising.
    """

    def pull(self, source: str, amount: int) -> bool:
        ...

    def push(self, destination: str, amount: int) -> bool:
        ...


class InMemoryToken:
    """Balance-map token with a single custody account holding pooled funds."""

    def __init__(self, custody: str, balances: Optional[Dict[str, int]] = None):
        self.custody = custody
        self.balances: Dict[str, int] = dict(balances or {})
        self._lock = threading.Lock()

    def balance_of(self, account: str) -> int:
        return self.balances.get(account, 0)

    def mint(self, account: str, amount: int):
        with self._lock:
            self.balances[account] = self.balances.get(account, 0) + amount

    def _move(self, source: str, destination: str, amount: int) -> bool:
        with self._lock:
            if amount < 0 or self.balances.get(source, 0) < amount:
                logger.warning(f"Transfer of {amount} from {source} rejected: insufficient balance")
                return False
            self.balances[source] -= amount
            self.balances[destination] = self.balances.get(destination, 0) + amount
            return True

    def pull(self, source: str, amount: int) -> bool:
        return self._move(source, self.custody, amount)

    def push(self, destination: str, amount: int) -> bool:
        return self._move(self.custody, destination, amount)
