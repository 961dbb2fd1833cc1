from collections import Counter
from typing import Dict

from models import Transaction, TransactionType


class DisputeIndex:
    """
    Tracks open disputes for a single account.

    Counters are updated as transactions are appended to the account history,
    so lookups never rescan the history. A transaction id is disputed while
    it has seen more disputes than resolves.
    """

    def __init__(self):
        self._disputes: Dict[int, int] = Counter()
        self._resolves: Dict[int, int] = Counter()
        self._total_disputes = 0
        self._total_resolves = 0

    def record(self, transaction: Transaction) -> None:
        """Account for a transaction that was just appended to history."""
        match transaction.transaction_type:
            case TransactionType.DISPUTE:
                self._disputes[transaction.transaction_id] += 1
                self._total_disputes += 1
            case TransactionType.RESOLVE:
                self._resolves[transaction.transaction_id] += 1
                self._total_resolves += 1

    def is_disputed(self, transaction_id: int) -> bool:
        return self._disputes[transaction_id] > self._resolves[transaction_id]

    def is_transaction_disputed(self, transaction: Transaction) -> bool:
        """Dispute entries themselves are never the target of a dispute."""
        if transaction.transaction_type == TransactionType.DISPUTE:
            return False
        return self.is_disputed(transaction.transaction_id)

    def has_unresolved_disputes(self) -> bool:
        """
        Account-wide check: more disputes than resolves across all ids.

        This does not say which transaction is disputed.
        """
        return self._total_disputes > self._total_resolves
