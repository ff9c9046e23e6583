"""
Application shell: owns the FinTrack state and wires the adapters together.

Every mutation of history / tags / banks / endpoint is followed by an explicit
save to the local store. Failures land in ``state.error`` (one message slot,
cleared by the next attempt) and are re-raised for the caller.
"""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass, field
import threading
from typing import Any, Callable, Dict, List, Optional

from fintrack.data.store import LocalStore
from fintrack.domain.errors import FinTrackError, OperationInProgress
from fintrack.domain.models import ALL, Status, Transaction
from fintrack.logging_setup import get_logger
from fintrack.services.analytics import Dashboard, build_dashboard
from fintrack.services.review import ReviewList
from fintrack.tools.pdf_statement import extract_transactions_from_pdf, read_statement_pdf
from fintrack.tools.sheets_sync import SheetsClient, SyncReceipt, validate_endpoint

logger = get_logger(__name__)

TABS = ("upload", "dashboard")

NOTHING_SELECTED = "Please select transactions using the checkboxes first."

# (pdf bytes, filename) -> pending transactions
Extractor = Callable[..., List[Transaction]]


@dataclass
class AppState:
    history: List[Transaction] = field(default_factory=list)
    tags: List[str] = field(default_factory=list)
    banks: List[str] = field(default_factory=list)
    script_url: str = ""
    working: ReviewList = field(default_factory=ReviewList)
    active_tab: str = "upload"
    error: Optional[str] = None
    notice: Optional[str] = None
    is_processing: bool = False
    is_syncing: bool = False


def _add_name(names: List[str], name: str) -> List[str]:
    name = (name or "").strip()
    if not name or name in names:
        return names
    return names + [name]


class FinTrackApp:
    def __init__(
        self,
        store: LocalStore,
        extract: Extractor = extract_transactions_from_pdf,
        sheets: Optional[SheetsClient] = None,
        state: Optional[AppState] = None,
    ):
        self.store = store
        self.extract = extract
        self.sheets = sheets or SheetsClient()
        self.state = state or AppState()
        # One upload and one sheet round-trip at a time (API routes run in a threadpool)
        self._upload_lock = threading.Lock()
        self._sync_lock = threading.Lock()

    @classmethod
    def from_store(cls, store: LocalStore, **kwargs) -> "FinTrackApp":
        state = AppState(
            history=store.load_history(),
            tags=store.load_tags(),
            banks=store.load_banks(),
            script_url=store.load_script_url(),
        )
        return cls(store, state=state, **kwargs)

    def _record_error(self, err: Exception):
        self.state.error = str(err)
        logger.warning("%s: %s", type(err).__name__, err)

    def _begin(self):
        self.state.error = None
        self.state.notice = None

    @contextmanager
    def _exclusive(self, lock: threading.Lock, message: str):
        if not lock.acquire(blocking=False):
            raise OperationInProgress(message)
        try:
            yield
        finally:
            lock.release()

    # --- Upload + extraction ----------------------------------------------------
    def upload_statement(self, data: bytes, filename: str, content_type: Optional[str] = None) -> List[Transaction]:
        with self._exclusive(self._upload_lock, "A statement is already being processed."):
            return self._upload_statement(data, filename, content_type)

    def _upload_statement(self, data: bytes, filename: str, content_type: Optional[str]) -> List[Transaction]:
        self._begin()

        try:
            read_statement_pdf(data, filename, content_type)
        except FinTrackError as e:
            self._record_error(e)
            raise

        self.state.is_processing = True
        try:
            extracted = self.extract(data, filename=filename)
        except FinTrackError as e:
            self._record_error(e)
            raise
        finally:
            self.state.is_processing = False

        self.state.working.load(extracted)
        logger.info("Working set now holds %d extracted transactions", len(self.state.working))
        return self.state.working.items

    # --- Working set edits ------------------------------------------------------
    def update_transaction(self, tx_id: str, **changes) -> Transaction:
        return self.state.working.update(tx_id, **changes)

    def delete_transaction(self, tx_id: str) -> bool:
        return self.state.working.delete(tx_id)

    def toggle_transaction(self, tx_id: str) -> Transaction:
        return self.state.working.toggle(tx_id)

    def toggle_all(self):
        self.state.working.toggle_all()

    # --- Sync ---------------------------------------------------------------------
    def sync_approved(self) -> Optional[SyncReceipt]:
        """Send approved rows and move them into history.

        History is updated as soon as the send completes; the sheet never
        confirms receipt, so a remote-side rejection goes unnoticed.
        """
        with self._exclusive(self._sync_lock, "A sync is already running."):
            return self._sync_approved()

    def _sync_approved(self) -> Optional[SyncReceipt]:
        self._begin()

        approved = self.state.working.approved()
        if not approved:
            self.state.error = NOTHING_SELECTED
            return None

        try:
            url = validate_endpoint(self.state.script_url)
        except FinTrackError as e:
            self._record_error(e)
            raise

        self.state.is_syncing = True
        try:
            receipt = self.sheets.push_transactions(approved, url)
        except FinTrackError as e:
            self._record_error(e)
            raise
        finally:
            self.state.is_syncing = False

        synced_everything = len(self.state.working) == len(approved)

        self.state.history = self.state.history + [t.with_status(Status.APPROVED) for t in approved]
        self.store.save_history(self.state.history)
        self.state.working.remove_approved()

        self.state.notice = f"Successfully synced {receipt.sent} items to your Sheet!"
        if synced_everything:
            self.state.active_tab = "dashboard"
        return receipt

    def reload_from_remote(self) -> int:
        """Replace local history (and config, if present) with the sheet's copy."""
        with self._exclusive(self._sync_lock, "A sync is already running."):
            return self._reload_from_remote()

    def _reload_from_remote(self) -> int:
        self._begin()

        self.state.is_syncing = True
        try:
            snapshot = self.sheets.fetch_remote(self.state.script_url)
        except FinTrackError as e:
            self._record_error(e)
            raise
        finally:
            self.state.is_syncing = False

        self.state.history = snapshot.transactions
        self.store.save_history(self.state.history)
        if snapshot.tags:
            self.state.tags = snapshot.tags
            self.store.save_tags(self.state.tags)
        if snapshot.banks:
            self.state.banks = snapshot.banks
            self.store.save_banks(self.state.banks)

        self.state.notice = f"Loaded {len(snapshot.transactions)} transactions from your Sheet."
        return len(snapshot.transactions)

    def push_config(self) -> SyncReceipt:
        self._begin()
        try:
            receipt = self.sheets.push_config(self.state.tags, self.state.banks, self.state.script_url)
        except FinTrackError as e:
            self._record_error(e)
            raise
        self.state.notice = "Tags and banks sent to your Sheet."
        return receipt

    # --- Configuration ------------------------------------------------------------
    def set_endpoint(self, url: str) -> str:
        self._begin()
        try:
            url = validate_endpoint(url)
        except FinTrackError as e:
            self._record_error(e)
            raise
        self.state.script_url = url
        self.store.save_script_url(url)
        return url

    def add_tag(self, name: str) -> List[str]:
        self.state.tags = _add_name(self.state.tags, name)
        self.store.save_tags(self.state.tags)
        return self.state.tags

    def remove_tag(self, name: str) -> List[str]:
        self.state.tags = [t for t in self.state.tags if t != name]
        self.store.save_tags(self.state.tags)
        return self.state.tags

    def add_bank(self, name: str) -> List[str]:
        self.state.banks = _add_name(self.state.banks, name)
        self.store.save_banks(self.state.banks)
        return self.state.banks

    def remove_bank(self, name: str) -> List[str]:
        self.state.banks = [b for b in self.state.banks if b != name]
        self.store.save_banks(self.state.banks)
        return self.state.banks

    def set_tab(self, tab: str):
        if tab not in TABS:
            raise ValueError(f"Unknown tab: {tab}")
        self.state.active_tab = tab

    # --- Read side ----------------------------------------------------------------
    def dashboard(self, month: str = ALL, bank: str = ALL) -> Dashboard:
        return build_dashboard(self.state.history, month=month, bank=bank)

    def snapshot(self) -> Dict[str, Any]:
        s = self.state
        return {
            "activeTab": s.active_tab,
            "error": s.error,
            "notice": s.notice,
            "isProcessing": s.is_processing,
            "isSyncing": s.is_syncing,
            "scriptUrl": s.script_url,
            "tags": list(s.tags),
            "banks": list(s.banks),
            "working": [t.to_dict() for t in s.working],
            "approvedCount": s.working.approved_count,
            "allApproved": s.working.all_approved,
            "historyCount": len(s.history),
        }
