"""
Spreadsheet sync via a Google Apps Script web app.

POSTs are fire-and-forget: the Apps Script endpoint only answers opaque
(``no-cors``) responses to the browser, so we never read the reply. A send
result only says how many rows went out, never that the sheet stored them.
The GET side is readable and returns the sheet's current contents.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import json
from typing import Any, List, Optional, Sequence
from urllib.parse import urlparse

import requests

from fintrack.domain.errors import InvalidEndpointError, RemoteLoadError, SyncTransportError
from fintrack.domain.models import Status, Transaction
from fintrack.logging_setup import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class SyncReceipt:
    """Outcome of a one-way send: how many rows went out, never whether they landed."""

    sent: int


@dataclass
class RemoteSnapshot:
    transactions: List[Transaction] = field(default_factory=list)
    tags: List[str] = field(default_factory=list)
    banks: List[str] = field(default_factory=list)


def validate_endpoint(url: str) -> str:
    url = (url or "").strip()
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise InvalidEndpointError("Invalid Script URL: expected an http(s) address.")
    return url


def _names(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    return [str(v).strip() for v in value if str(v).strip()]


def parse_remote_payload(data: Any) -> RemoteSnapshot:
    """Accept ``{transactions, config: {tags, banks}}`` or a bare array."""

    if isinstance(data, list):
        items, cfg = data, {}
    elif isinstance(data, dict) and isinstance(data.get("transactions"), list):
        # Apps Script error replies are objects without "transactions"
        items = data["transactions"]
        cfg = data.get("config") or {}
    else:
        raise RemoteLoadError("Unexpected data shape returned by the sheet.")

    if not isinstance(cfg, dict):
        cfg = {}

    txs: List[Transaction] = []
    for item in items:
        if not isinstance(item, dict):
            continue
        try:
            # Remote rows get a fresh id; their sheet row has none.
            tx = Transaction.from_dict({**item, "id": None, "status": Status.APPROVED.value})
        except (TypeError, ValueError):
            logger.warning("Skipping unreadable sheet row: %r", item)
            continue
        txs.append(tx)

    return RemoteSnapshot(transactions=txs, tags=_names(cfg.get("tags")), banks=_names(cfg.get("banks")))


class SheetsClient:
    def __init__(self, session: Optional[requests.Session] = None):
        self.session = session or requests.Session()

    def _post(self, url: str, payload: Any):
        url = validate_endpoint(url)
        try:
            # text/plain keeps Apps Script from requiring a CORS preflight
            self.session.post(
                url,
                data=json.dumps(payload),
                headers={"Content-Type": "text/plain"},
            )
        except requests.RequestException as e:
            logger.error("Sync POST to %s failed: %s", url, e)
            raise SyncTransportError("Sync failed. Please verify your Script URL and Deployment settings.") from e

    def push_transactions(self, records: Sequence[Transaction], url: str) -> SyncReceipt:
        if not records:
            raise ValueError("push_transactions needs at least one record")
        self._post(url, [t.to_sync_row() for t in records])
        logger.info("Sent %d rows to sheet", len(records))
        return SyncReceipt(sent=len(records))

    def push_config(self, tags: Sequence[str], banks: Sequence[str], url: str) -> SyncReceipt:
        self._post(url, {"isConfigUpdate": True, "tags": list(tags), "banks": list(banks)})
        logger.info("Sent config update (%d tags, %d banks)", len(tags), len(banks))
        return SyncReceipt(sent=1)

    def fetch_remote(self, url: str) -> RemoteSnapshot:
        url = validate_endpoint(url)
        try:
            r = self.session.get(url)
            r.raise_for_status()
        except requests.RequestException as e:
            logger.error("Sheet reload from %s failed: %s", url, e)
            raise SyncTransportError(f"Could not reach the sheet: {e}") from e

        try:
            data = r.json()
        except ValueError as e:
            raise RemoteLoadError("The sheet did not return JSON. Check the Apps Script deployment.") from e

        snapshot = parse_remote_payload(data)
        logger.info("Loaded %d transactions from sheet", len(snapshot.transactions))
        return snapshot
