from .events import EventBus
from .transfer import InMemoryToken, ValueTransfer
from .vault import DepositReceipt, PayoutVault

__all__ = ["DepositReceipt", "EventBus", "InMemoryToken", "PayoutVault", "ValueTransfer"]
