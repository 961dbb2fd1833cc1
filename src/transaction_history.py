from typing import Dict, Iterator, List, Optional

from dispute_index import DisputeIndex
from models import Transaction


class TransactionHistory:
    """
    Ordered record of the transactions applied to one account.
    Only transactions that had an effect are ever appended.
    """

    def __init__(self):
        self._transactions: List[Transaction] = []
        self._first_by_id: Dict[int, Transaction] = {}
        self.disputes = DisputeIndex()

    def append(self, transaction: Transaction) -> None:
        self._transactions.append(transaction)
        self._first_by_id.setdefault(transaction.transaction_id, transaction)
        self.disputes.record(transaction)

    def get_transaction(self, transaction_id: int) -> Optional[Transaction]:
        """Return the earliest recorded transaction with this id."""
        return self._first_by_id.get(transaction_id)

    def __iter__(self) -> Iterator[Transaction]:
        return iter(self._transactions)

    def __len__(self) -> int:
        return len(self._transactions)

    def __getitem__(self, index: int) -> Transaction:
        return self._transactions[index]
