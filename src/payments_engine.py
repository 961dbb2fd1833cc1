import logging
import threading
from queue import Empty, Queue
from typing import Dict, Iterable, List, Tuple

from account_registry import AccountRegistry
from csv_io import read_transactions
from models import ClientAccount, ProcessingStats, Transaction
from transaction_set import TransactionSet, group_by_client

logger = logging.getLogger(__name__)


class ProcessingError(RuntimeError):
    """Raised when replaying a client's transactions fails unexpectedly."""

    def __init__(self, client_id: int, cause: BaseException):
        super().__init__(f"Replaying client {client_id} failed: {cause!r}")
        self.client_id = client_id


class PaymentsEngine:
    """
    Batch driver: groups transactions by client and replays each client's
    history on its own AccountEngine using a publisher-consumer pattern.

    Clients share no state, so consumers run in parallel. A client's set is
    only ever handled by one consumer, which keeps its order intact.
    """

    CONSUME_TIMEOUT = 0.1

    def __init__(self, num_consumers: int = 4):
        if num_consumers < 1:
            raise ValueError("num_consumers must be at least 1")
        self._num_consumers = num_consumers
        self._queue: Queue[TransactionSet] = Queue()
        self._published = threading.Event()
        self._stats = ProcessingStats()
        self._registry = AccountRegistry(self._stats)
        self._failures: List[Tuple[int, Exception]] = []
        self._failures_lock = threading.Lock()

    @property
    def stats(self) -> ProcessingStats:
        return self._stats

    def process_file(self, filepath: str) -> Dict[int, ClientAccount]:
        """Process CSV file and return final account states."""
        # Undecodable bytes become U+FFFD so only the affected record fails to parse.
        with open(filepath, "r", newline="", encoding="utf-8", errors="replace") as f:
            transactions = list(read_transactions(f, self._stats))
        return self.process_transactions(transactions)

    def process_transactions(self, transactions: Iterable[Transaction]) -> Dict[int, ClientAccount]:
        """
        Replay already-parsed transactions and return final account states.

        Raises ProcessingError if any client's replay raised.
        """
        transaction_sets = group_by_client(transactions)

        logger.info(f"Replaying {len(transaction_sets)} clients on {self._num_consumers} consumers")

        publisher_thread = threading.Thread(target=self._publish_transaction_sets, args=(transaction_sets,))
        publisher_thread.start()

        consumer_threads = []
        for _ in range(self._num_consumers):
            consumer_thread = threading.Thread(target=self._consume_transaction_sets)
            consumer_thread.start()
            consumer_threads.append(consumer_thread)

        publisher_thread.join()
        self._published.set()
        for consumer_thread in consumer_threads:
            consumer_thread.join()

        if self._failures:
            client_id, cause = min(self._failures, key=lambda failure: failure[0])
            logger.error(f"{len(self._failures)} client(s) failed to replay")
            raise ProcessingError(client_id, cause) from cause

        accounts = self._registry.get_all_accounts()
        logger.info(
            f"Applied: {self._stats.applied}, "
            f"Ignored: {self._stats.ignored}, "
            f"Skipped records: {self._stats.skipped_records}, "
            f"Clients: {len(accounts)}"
        )
        return accounts

    def _publish_transaction_sets(self, transaction_sets: List[TransactionSet]) -> None:
        for transaction_set in transaction_sets:
            self._queue.put(transaction_set)

    def _consume_transaction_sets(self) -> None:
        """Consumer loop: pull a client's set and replay it in order."""
        while True:
            try:
                transaction_set = self._queue.get(timeout=self.CONSUME_TIMEOUT)
            except Empty:
                if self._published.is_set() and self._queue.empty():
                    break
                continue

            engine = self._registry.get_or_create_engine(transaction_set.client_id)
            try:
                engine.replay(transaction_set.transactions)
            except Exception as e:
                # Keep draining; the failure is raised once all consumers have stopped.
                with self._failures_lock:
                    self._failures.append((transaction_set.client_id, e))
