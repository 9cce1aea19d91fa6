"""
Credit ledger: the purchasable generation budget of one profile.

The balance never goes below zero. A privileged ledger does not meter at all.
Generations reserve their cost with a hold before rendering; the hold is
settled (debited) on success and released on failure, so concurrent sessions
cannot spend the same credits twice and failed renders are never charged.
"""
import threading
import uuid
from dataclasses import dataclass, field
from typing import Dict, Optional, Union

from sociai.shared.logging_utils import info as log_info
from sociai.specs.common.enums import MediaType
from sociai.specs.common.errors import QuotaExceeded

CREDIT_COSTS: Dict[MediaType, int] = {
    MediaType.IMAGE: 5,
    MediaType.VIDEO: 25,
}
WEEKLY_STRATEGY_COST = 50
COPY_REWRITE_COST = 15

UNLIMITED_LABEL = "UNLIMITED"


def cost_of(media_type: Union[MediaType, str]) -> int:
    return CREDIT_COSTS[MediaType(media_type)]


@dataclass
class CreditHold:
    amount: int
    reason: str = ""
    id: str = field(default_factory=lambda: uuid.uuid4().hex)


class CreditLedger:
    def __init__(self, balance: int = 0, *, privileged: bool = False, trace_id: Optional[str] = None) -> None:
        if balance < 0:
            raise ValueError("balance must be >= 0")
        self._balance = balance
        self._holds: Dict[str, CreditHold] = {}
        self._lock = threading.Lock()
        self._privileged = privileged
        self._trace_id = trace_id

    @property
    def privileged(self) -> bool:
        return self._privileged

    @privileged.setter
    def privileged(self, value: bool) -> None:
        with self._lock:
            self._privileged = bool(value)

    def balance(self) -> int:
        return self._balance

    def held(self) -> int:
        return sum(h.amount for h in self._holds.values())

    def available(self) -> int:
        """Balance not reserved by open holds."""
        with self._lock:
            return max(self._balance - self.held(), 0)

    def display(self) -> str:
        return UNLIMITED_LABEL if self._privileged else str(self._balance)

    def debit(self, amount: int, reason: str = "") -> int:
        """Subtract ``amount``, clamping at zero. No-op for privileged ledgers."""
        if amount < 0:
            raise ValueError("amount must be >= 0")
        with self._lock:
            if self._privileged:
                return self._balance
            self._balance = max(self._balance - amount, 0)
            balance = self._balance
        log_info(self._trace_id, "ledger:debit", amount=amount, reason=reason, balance=balance)
        return balance

    def credit(self, amount: int, reason: str = "") -> int:
        if amount < 0:
            raise ValueError("amount must be >= 0")
        with self._lock:
            self._balance += amount
            balance = self._balance
        log_info(self._trace_id, "ledger:credit", amount=amount, reason=reason, balance=balance)
        return balance

    def ensure(self, amount: int) -> None:
        """Raise ``QuotaExceeded`` unless ``amount`` is available."""
        if self._privileged:
            return
        available = self.available()
        if available < amount:
            raise QuotaExceeded(required=amount, available=available)

    def hold(self, amount: int, reason: str = "") -> CreditHold:
        """Reserve ``amount`` for a pending operation or raise ``QuotaExceeded``."""
        if amount < 0:
            raise ValueError("amount must be >= 0")
        with self._lock:
            reserved = 0 if self._privileged else amount
            available = max(self._balance - self.held(), 0)
            if reserved > available:
                raise QuotaExceeded(required=amount, available=available)
            hold = CreditHold(amount=reserved, reason=reason)
            self._holds[hold.id] = hold
        return hold

    def settle(self, hold: CreditHold) -> int:
        """Turn a hold into a debit."""
        with self._lock:
            if self._holds.pop(hold.id, None) is None:
                return self._balance
        return self.debit(hold.amount, reason=hold.reason)

    def release(self, hold: CreditHold) -> None:
        with self._lock:
            self._holds.pop(hold.id, None)

    def rebase(self, balance: int) -> None:
        """Adopt ``balance`` as read back from the store; open holds are kept."""
        with self._lock:
            self._balance = max(balance, 0)

    def adjust(self, delta: int) -> int:
        """Shift the balance by a movement recorded elsewhere, clamping at zero."""
        with self._lock:
            self._balance = max(self._balance + delta, 0)
            balance = self._balance
        log_info(self._trace_id, "ledger:adjust", delta=delta, balance=balance)
        return balance
