import threading
from dataclasses import dataclass, field
from decimal import Context, Decimal, localcontext
from enum import Enum
from typing import Optional

# Amounts are bounded like a 96-bit mantissa with up to 28 fractional digits.
MAX_MANTISSA = 2**96 - 1
MAX_SCALE = 28

# Wide enough that sums of bounded amounts are never rounded.
BALANCE_CONTEXT = Context(prec=100)


class TransactionType(Enum):
    DEPOSIT = "deposit"
    WITHDRAW = "withdraw"
    DISPUTE = "dispute"
    RESOLVE = "resolve"
    CHARGEBACK = "chargeback"

    @property
    def carries_amount(self) -> bool:
        return self in (TransactionType.DEPOSIT, TransactionType.WITHDRAW)


class ProcessingResult(Enum):
    APPLIED = "applied"
    IGNORED = "ignored"


@dataclass(frozen=True)
class Transaction:
    transaction_type: TransactionType
    client_id: int
    transaction_id: int
    amount: Optional[Decimal] = None

    def __repr__(self) -> str:
        return f"Transaction({self.transaction_type.value}, client={self.client_id}, tx={self.transaction_id}, amount={self.amount})"


@dataclass
class ClientAccount:
    client_id: int
    available: Decimal = field(default_factory=lambda: Decimal("0.0"))
    held: Decimal = field(default_factory=lambda: Decimal("0.0"))
    locked: bool = False

    @property
    def total(self) -> Decimal:
        with localcontext(BALANCE_CONTEXT):
            return self.available + self.held

    def credit(self, amount: Decimal) -> None:
        self.available += amount

    def debit(self, amount: Decimal) -> None:
        self.available -= amount

    def hold(self, amount: Decimal) -> None:
        self.available -= amount
        self.held += amount

    def release_hold(self, amount: Decimal) -> None:
        self.held -= amount
        self.available += amount

    def lock(self) -> None:
        self.locked = True


class ProcessingStats:
    """Thread-safe counters for tracking processing statistics."""

    def __init__(self):
        self._lock = threading.Lock()
        self.applied = 0
        self.ignored = 0
        self.skipped_records = 0

    def record(self, result: ProcessingResult):
        with self._lock:
            if result == ProcessingResult.APPLIED:
                self.applied += 1
            else:
                self.ignored += 1

    def record_skipped(self, count: int = 1):
        with self._lock:
            self.skipped_records += count
