# fintrack/interfaces/api.py
# FastAPI backend for FinTrack
# - statement PDF upload -> AI extraction -> working set
# - working set review (edit / toggle / delete)
# - sync approved rows to the Google Sheet, reload history from it
# - tags / banks / endpoint configuration
# - dashboard aggregates

from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import FastAPI, File, HTTPException, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from fintrack import config
from fintrack.data.store import LocalStore
from fintrack.domain.errors import (
    ExtractionError,
    FileReadError,
    FileRejectedError,
    FinTrackError,
    InvalidEndpointError,
    OperationInProgress,
    RemoteLoadError,
    SyncTransportError,
)
from fintrack.domain.models import ALL
from fintrack.logging_setup import configure_logging, get_logger
from fintrack.services.shell import FinTrackApp

configure_logging()
logger = get_logger(__name__)

app = FastAPI(title="FinTrack API", version="0.1.0")

# Allow local Streamlit dev server(s)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:8501", "http://127.0.0.1:8501"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

_shell: Optional[FinTrackApp] = None


def get_shell() -> FinTrackApp:
    global _shell
    if _shell is None:
        _shell = FinTrackApp.from_store(LocalStore(config.DB_PATH))
    return _shell


def set_shell(shell: Optional[FinTrackApp]):
    """Swap the process-wide shell (used by tests)."""
    global _shell
    _shell = shell


_STATUS_BY_ERROR = [
    (FileRejectedError, 415),
    (FileReadError, 400),
    (ExtractionError, 502),
    (SyncTransportError, 502),
    (RemoteLoadError, 502),
    (InvalidEndpointError, 422),
    (OperationInProgress, 409),
]


def _http_error(e: FinTrackError) -> HTTPException:
    logger.info("Request failed with %s: %s", type(e).__name__, e)
    for cls, code in _STATUS_BY_ERROR:
        if isinstance(e, cls):
            return HTTPException(status_code=code, detail=str(e))
    return HTTPException(status_code=500, detail=str(e))


# ----------------------------
# Pydantic models
# ----------------------------
class TransactionPatch(BaseModel):
    date: Optional[str] = Field(None, description="YYYY-MM-DD")
    bankName: Optional[str] = None
    description: Optional[str] = None
    amount: Optional[float] = Field(None, ge=0)
    direction: Optional[str] = None
    type: Optional[str] = None
    tag: Optional[str] = None
    status: Optional[str] = None


class EndpointIn(BaseModel):
    url: str


class NameIn(BaseModel):
    name: str


class TabIn(BaseModel):
    tab: str


def _patch_to_changes(patch: TransactionPatch) -> Dict[str, Any]:
    data = patch.model_dump(exclude_none=True)
    if "bankName" in data:
        data["bank_name"] = data.pop("bankName")
    return data


# ----------------------------
# Routes
# ----------------------------
@app.get("/health")
def health():
    return {"status": "ok"}


@app.get("/state")
def state():
    return get_shell().snapshot()


# Plain def: extraction blocks on the OpenAI call, so it runs in the threadpool
@app.post("/statements/parse")
def parse_statement(file: UploadFile = File(...)):
    shell = get_shell()
    data = file.file.read()
    try:
        extracted = shell.upload_statement(data, file.filename or "statement.pdf", file.content_type)
    except FinTrackError as e:
        raise _http_error(e)
    return [t.to_dict() for t in extracted]


@app.patch("/working/{tx_id}")
def update_working(tx_id: str, patch: TransactionPatch):
    try:
        tx = get_shell().update_transaction(tx_id, **_patch_to_changes(patch))
    except KeyError:
        raise HTTPException(status_code=404, detail=f"No transaction {tx_id} in the working set")
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return tx.to_dict()


@app.delete("/working/{tx_id}")
def delete_working(tx_id: str):
    if not get_shell().delete_transaction(tx_id):
        raise HTTPException(status_code=404, detail=f"No transaction {tx_id} in the working set")
    return {"ok": True}


@app.post("/working/{tx_id}/toggle")
def toggle_working(tx_id: str):
    try:
        tx = get_shell().toggle_transaction(tx_id)
    except KeyError:
        raise HTTPException(status_code=404, detail=f"No transaction {tx_id} in the working set")
    return tx.to_dict()


@app.post("/working/toggle-all")
def toggle_all():
    shell = get_shell()
    shell.toggle_all()
    return shell.snapshot()


@app.post("/sync")
def sync():
    shell = get_shell()
    try:
        receipt = shell.sync_approved()
    except FinTrackError as e:
        raise _http_error(e)
    return {"sent": receipt.sent if receipt else 0, "state": shell.snapshot()}


@app.post("/remote/reload")
def reload_remote():
    shell = get_shell()
    try:
        loaded = shell.reload_from_remote()
    except FinTrackError as e:
        raise _http_error(e)
    return {"loaded": loaded, "state": shell.snapshot()}


@app.post("/config/push")
def push_config():
    try:
        receipt = get_shell().push_config()
    except FinTrackError as e:
        raise _http_error(e)
    return {"sent": receipt.sent}


@app.put("/config/endpoint")
def set_endpoint(payload: EndpointIn):
    try:
        url = get_shell().set_endpoint(payload.url)
    except FinTrackError as e:
        raise _http_error(e)
    return {"scriptUrl": url}


@app.post("/tags")
def add_tag(payload: NameIn):
    return {"tags": get_shell().add_tag(payload.name)}


@app.delete("/tags/{name}")
def remove_tag(name: str):
    return {"tags": get_shell().remove_tag(name)}


@app.post("/banks")
def add_bank(payload: NameIn):
    return {"banks": get_shell().add_bank(payload.name)}


@app.delete("/banks/{name}")
def remove_bank(name: str):
    return {"banks": get_shell().remove_bank(name)}


@app.put("/tab")
def set_tab(payload: TabIn):
    try:
        get_shell().set_tab(payload.tab)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return {"activeTab": payload.tab}


@app.get("/dashboard")
def dashboard(month: str = ALL, bank: str = ALL):
    return get_shell().dashboard(month=month, bank=bank).to_dict()
