import threading
from typing import Dict, Optional

from account_engine import AccountEngine
from models import ClientAccount, ProcessingStats


class AccountRegistry:
    """
    Client id -> AccountEngine mapping for a single batch run.
    Creation is guarded by a lock; each engine is then driven by one worker only.
    """

    def __init__(self, stats: Optional[ProcessingStats] = None):
        self._engines: Dict[int, AccountEngine] = {}
        self._stats = stats
        self._lock = threading.Lock()

    def get_or_create_engine(self, client_id: int) -> AccountEngine:
        """Get existing engine or create one with an empty account."""
        with self._lock:
            if client_id not in self._engines:
                self._engines[client_id] = AccountEngine(client_id, self._stats)
            return self._engines[client_id]

    def __len__(self) -> int:
        with self._lock:
            return len(self._engines)

    def get_all_accounts(self) -> Dict[int, ClientAccount]:
        """Snapshot every account (for final output)."""
        with self._lock:
            return {client_id: engine.snapshot() for client_id, engine in self._engines.items()}
