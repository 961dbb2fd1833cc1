import logging
from decimal import localcontext
from typing import Iterable, Optional

from models import BALANCE_CONTEXT, ClientAccount, ProcessingResult, ProcessingStats, Transaction, TransactionType
from transaction_history import TransactionHistory

logger = logging.getLogger(__name__)


class AccountEngine:
    """
    Applies one client's transactions to that client's account.

    Transactions that cannot be applied (insufficient funds, unknown reference,
    nothing to resolve, locked account) are ignored and never recorded.
    Callers must feed transactions in their original order.
    """

    def __init__(self, client_id: int, stats: Optional[ProcessingStats] = None):
        self.account = ClientAccount(client_id=client_id)
        self.history = TransactionHistory()
        self._stats = stats

    @classmethod
    def from_transactions(
        cls,
        client_id: int,
        transactions: Iterable[Transaction],
        stats: Optional[ProcessingStats] = None,
    ) -> "AccountEngine":
        engine = cls(client_id, stats)
        engine.replay(transactions)
        return engine

    def replay(self, transactions: Iterable[Transaction]) -> None:
        for transaction in transactions:
            self.apply(transaction)

    def apply(self, transaction: Transaction) -> None:
        with localcontext(BALANCE_CONTEXT):
            result = self._process_transaction(transaction)
        if result == ProcessingResult.IGNORED:
            logger.debug(f"Ignored {transaction} for client {self.account.client_id}")
        if self._stats is not None:
            self._stats.record(result)

    def snapshot(self) -> ClientAccount:
        """Copy of the current balances, detached from further updates."""
        return ClientAccount(
            client_id=self.account.client_id,
            available=self.account.available,
            held=self.account.held,
            locked=self.account.locked,
        )

    def _process_transaction(self, transaction: Transaction) -> ProcessingResult:
        if self.account.locked or transaction.client_id != self.account.client_id:
            return ProcessingResult.IGNORED

        match transaction.transaction_type:
            case TransactionType.DEPOSIT:
                return self._handle_deposit(transaction)
            case TransactionType.WITHDRAW:
                return self._handle_withdraw(transaction)
            case TransactionType.DISPUTE:
                return self._handle_dispute(transaction)
            case TransactionType.RESOLVE:
                return self._handle_resolve(transaction)
            case TransactionType.CHARGEBACK:
                return self._handle_chargeback(transaction)
            case _:
                return ProcessingResult.IGNORED

    def _handle_deposit(self, transaction: Transaction) -> ProcessingResult:
        if transaction.amount is None:
            return ProcessingResult.IGNORED
        self.account.credit(transaction.amount)
        self.history.append(transaction)
        return ProcessingResult.APPLIED

    def _handle_withdraw(self, transaction: Transaction) -> ProcessingResult:
        if transaction.amount is None or transaction.amount > self.account.available:
            return ProcessingResult.IGNORED
        self.account.debit(transaction.amount)
        self.history.append(transaction)
        return ProcessingResult.APPLIED

    def _handle_dispute(self, transaction: Transaction) -> ProcessingResult:
        original = self.history.get_transaction(transaction.transaction_id)
        if original is None:
            return ProcessingResult.IGNORED

        match original.transaction_type:
            case TransactionType.DEPOSIT:
                self.account.hold(original.amount)
            case TransactionType.WITHDRAW:
                self.account.release_hold(original.amount)
        self.history.append(transaction)
        return ProcessingResult.APPLIED

    def _handle_resolve(self, transaction: Transaction) -> ProcessingResult:
        original = self.history.get_transaction(transaction.transaction_id)
        if original is None or not self.history.disputes.is_transaction_disputed(original):
            return ProcessingResult.IGNORED

        self._reverse_dispute(original)
        self.history.append(transaction)
        return ProcessingResult.APPLIED

    def _handle_chargeback(self, transaction: Transaction) -> ProcessingResult:
        # The gate is account-wide; only the reversal looks at the referenced id.
        if not self.history.disputes.has_unresolved_disputes():
            return ProcessingResult.IGNORED

        original = self.history.get_transaction(transaction.transaction_id)
        if original is not None and self.history.disputes.is_transaction_disputed(original):
            self._reverse_dispute(original)
        elif original is None:
            logger.debug(f"Chargeback tx {transaction.transaction_id}: reference not found, locking anyway")

        self.history.append(transaction)
        self.account.lock()
        return ProcessingResult.APPLIED

    def _reverse_dispute(self, original: Transaction) -> None:
        match original.transaction_type:
            case TransactionType.DEPOSIT:
                self.account.release_hold(original.amount)
            case TransactionType.WITHDRAW:
                self.account.hold(original.amount)
