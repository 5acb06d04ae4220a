"""
Registry state: every table, the id counters and the atomic operation scope.

All mutations happen inside ``RegistryState.transaction()``. The scope holds
the registry lock and keeps an undo journal: before an operation first changes
a record it calls ``keep(table, key)``, which saves a copy of that one record.
If the operation raises, the journal puts the saved records and the counters
back, so a failed call never leaves partial changes behind.
"""
import copy
import logging
import threading
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Set, Tuple

from .models import LandDraft, Official, Owner, Role, Title, TransferRequest, Witness

logger = logging.getLogger(__name__)

_COUNTERS = ("next_official_id", "next_draft_id", "next_title_id", "next_transfer_id")

# Marks a key that was absent before the operation touched it
_MISSING = object()


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RegistryState:
    """In-memory tables of the registry."""

    def __init__(self, clock: Optional[Callable[[], datetime]] = None):
        self.clock = clock or utcnow

        # identity -> capabilities
        self.roles: Dict[str, Set[Role]] = {}
        # identities registered as Owner, Official or Witness
        self.registered: Set[str] = set()

        self.officials: Dict[int, Official] = {}
        self.official_ids: Dict[str, int] = {}
        self.owners: Dict[str, Owner] = {}
        self.witnesses: Dict[str, Witness] = {}

        self.drafts: Dict[int, LandDraft] = {}
        self.parcel_ids: Dict[str, int] = {}
        self.titles: Dict[int, Title] = {}

        self.transfers: Dict[int, TransferRequest] = {}
        # transfer id -> witness identity -> approved
        self.witness_approvals: Dict[int, Dict[str, bool]] = {}
        # title id -> id of the transfer currently open for it
        self.live_transfers: Dict[int, int] = {}

        self.next_official_id = 1
        self.next_draft_id = 0
        self.next_title_id = 0
        self.next_transfer_id = 0

        # (name, actor, data, reason) raised by the running operation
        self.pending_events: List[Tuple[str, str, Dict[str, Any], Optional[str]]] = []

        # Held by transaction(); callers that must order work after commit hold it too
        self.lock = threading.RLock()
        self._depth = 0
        self._undo: List[Tuple[str, Any, Any]] = []
        self._kept: Set[Tuple[str, Any]] = set()
        self._counters: Dict[str, int] = {}

    def now(self) -> datetime:
        return self.clock()

    # ------------------------------------------------------------------
    # Counters
    # ------------------------------------------------------------------

    def allocate_official_id(self) -> int:
        official_id = self.next_official_id
        self.next_official_id += 1
        return official_id

    def allocate_draft_id(self) -> int:
        draft_id = self.next_draft_id
        self.next_draft_id += 1
        return draft_id

    def allocate_title_id(self) -> int:
        title_id = self.next_title_id
        self.next_title_id += 1
        return title_id

    def allocate_transfer_id(self) -> int:
        transfer_id = self.next_transfer_id
        self.next_transfer_id += 1
        return transfer_id

    # ------------------------------------------------------------------
    # Notifications
    # ------------------------------------------------------------------

    def emit(self, name: str, actor: str, reason: Optional[str] = None, **data: Any) -> None:
        """Queue an event; it is published only if the operation commits."""
        self.pending_events.append((name, actor, data, reason))

    # ------------------------------------------------------------------
    # Undo journal
    # ------------------------------------------------------------------

    def keep(self, table: str, key: Any) -> None:
        """
        Save table[key] as it was before the running operation first touched it.
        Does nothing outside a transaction or when the key is already saved.
        """
        if not self._depth or (table, key) in self._kept:
            return
        self._kept.add((table, key))
        container = getattr(self, table)
        if isinstance(container, set):
            before = key in container
        else:
            value = container.get(key, _MISSING)
            before = value if value is _MISSING else copy.deepcopy(value)
        self._undo.append((table, key, before))

    def _rollback(self) -> None:
        for table, key, before in reversed(self._undo):
            container = getattr(self, table)
            if isinstance(container, set):
                if before:
                    container.add(key)
                else:
                    container.discard(key)
            elif before is _MISSING:
                container.pop(key, None)
            else:
                container[key] = before
        for name, value in self._counters.items():
            setattr(self, name, value)

    def _reset_journal(self) -> None:
        self._undo = []
        self._kept = set()
        self._counters = {}

    # ------------------------------------------------------------------
    # Atomic scope
    # ------------------------------------------------------------------

    @contextmanager
    def transaction(self):
        """
        Run one operation atomically.
        Yields the list that receives the events committed by the operation.
        Nested scopes join the outermost one.
        """
        with self.lock:
            if self._depth:
                self._depth += 1
                try:
                    yield self.pending_events
                finally:
                    self._depth -= 1
                return

            self._reset_journal()
            self._counters = {name: getattr(self, name) for name in _COUNTERS}
            self.pending_events = []
            self._depth = 1
            try:
                yield self.pending_events
            except BaseException:
                self._rollback()
                self.pending_events = []
                raise
            finally:
                self._depth = 0
                self._reset_journal()
