from dataclasses import dataclass, field
from itertools import groupby
from operator import attrgetter
from typing import Iterable, List

from models import Transaction


@dataclass
class TransactionSet:
    """Chronologically ordered transactions sharing one client id."""
    client_id: int
    transactions: List[Transaction] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.transactions)


def group_by_client(transactions: Iterable[Transaction]) -> List[TransactionSet]:
    """
    Partition transactions by client id, ascending.

    sorted() is stable, so each group keeps the input order of its transactions.
    """
    by_client = attrgetter("client_id")
    return [
        TransactionSet(client_id=client_id, transactions=list(group))
        for client_id, group in groupby(sorted(transactions, key=by_client), key=by_client)
    ]
