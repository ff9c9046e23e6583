"""fintrack.tools.pdf_statement

LLM-assisted extraction of transactions from bank statement PDFs.

What this module does
- Checks an upload really is a readable PDF (pdfplumber).
- Sends the whole PDF (base64) to the OpenAI Responses API together with a
  fixed instruction and a strict JSON schema.
- Maps the loosely-typed reply into ``Transaction`` records (status pending,
  tag "Uncategorized"), coercing direction/type to their defaults.

One attempt per upload; there is no retry.
"""

from __future__ import annotations

import base64
import io
import json
import re
from typing import Any, List, Optional

import pdfplumber
from openai import OpenAI, OpenAIError

from fintrack import config
from fintrack.domain.errors import (
    ExtractionError,
    ExtractionErrorKind,
    FileReadError,
    FileRejectedError,
)
from fintrack.domain.models import DEFAULT_TAG, Status, Transaction, coerce_amount, normalise_date
from fintrack.logging_setup import get_logger

logger = get_logger(__name__)

PDF_MIME = "application/pdf"

EXTRACTION_PROMPT = """
Analyze this financial statement and extract all transactions.
For each transaction, determine:
- date: YYYY-MM-DD
- bankName: The name of the bank or institution
- description: Merchant name or transaction detail
- amount: The numerical value (always positive)
- direction: "Spent" for withdrawals/purchases or "Received" for deposits/credits
- type: "Personal" or "Office" based on description (e.g., AWS, LinkedIn, Staples are Office; Starbucks, Rent, Grocery are Personal)

Return a JSON object with a "transactions" array.
""".strip()

_ITEM_FIELDS = ["date", "bankName", "description", "amount", "direction", "type"]

RESPONSE_SCHEMA = {
    "type": "object",
    "properties": {
        "transactions": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "date": {"type": "string"},
                    "bankName": {"type": "string"},
                    "description": {"type": "string"},
                    "amount": {"type": "number"},
                    "direction": {"type": "string"},
                    "type": {"type": "string"},
                },
                "required": _ITEM_FIELDS,
                "additionalProperties": False,
            },
        }
    },
    "required": ["transactions"],
    "additionalProperties": False,
}


# --- Upload validation --------------------------------------------------------
def read_statement_pdf(data: bytes, filename: str, content_type: Optional[str] = None) -> int:
    """Reject non-PDF uploads and make sure pdfplumber can open the file.

    Returns the page count.
    """

    looks_like_pdf = (content_type or "").lower() == PDF_MIME or filename.lower().endswith(".pdf")
    if not looks_like_pdf or not data.startswith(b"%PDF"):
        raise FileRejectedError("Please upload a valid PDF bank statement.")

    try:
        with pdfplumber.open(io.BytesIO(data)) as pdf:
            pages = len(pdf.pages)
    except Exception as e:
        raise FileReadError(f"File read failed: {e}") from e

    if pages == 0:
        raise FileReadError("File read failed: the PDF has no pages.")

    logger.info("Read %s (%d pages, %d bytes)", filename, pages, len(data))
    return pages


# --- Reply parsing ------------------------------------------------------------
def _safe_json_extract(text: str) -> Optional[object]:
    """Extract a JSON object/array from an LLM response safely."""

    text = text.strip()
    text = re.sub(r"^```(json)?", "", text, flags=re.IGNORECASE).strip()
    text = re.sub(r"```$", "", text).strip()

    try:
        return json.loads(text)
    except json.JSONDecodeError:
        pass

    # Locate the first JSON array/object
    m = re.search(r"(\[.*\]|\{.*\})", text, flags=re.DOTALL)
    if not m:
        return None

    try:
        return json.loads(m.group(1))
    except json.JSONDecodeError:
        return None


def _item_to_transaction(item: Any) -> Optional[Transaction]:
    if not isinstance(item, dict):
        return None

    try:
        amount = coerce_amount(item.get("amount"))
    except (TypeError, ValueError):
        return None

    return Transaction(
        date=normalise_date(item.get("date")),
        bank_name=str(item.get("bankName") or "").strip(),
        description=str(item.get("description") or "").strip(),
        amount=amount,
        direction=item.get("direction"),
        type=item.get("type"),
        tag=DEFAULT_TAG,
        status=Status.PENDING,
    )


def parse_extraction_reply(text: Optional[str]) -> List[Transaction]:
    """Turn the model's output text into pending transactions."""

    if not text or not text.strip():
        raise ExtractionError(ExtractionErrorKind.EMPTY_RESPONSE, "No text returned from the extraction service")

    parsed = _safe_json_extract(text)
    if isinstance(parsed, dict):
        parsed = parsed.get("transactions")
    if not isinstance(parsed, list):
        raise ExtractionError(
            ExtractionErrorKind.MALFORMED_JSON, "The extraction service did not return a JSON array of transactions"
        )

    txs: List[Transaction] = []
    for item in parsed:
        tx = _item_to_transaction(item)
        if tx is None:
            logger.warning("Skipping unusable extracted item: %r", item)
            continue
        txs.append(tx)
    return txs


# --- Public API ---------------------------------------------------------------
def extract_transactions_from_pdf(
    data: bytes,
    filename: str = "statement.pdf",
    client: Optional[Any] = None,
    model: Optional[str] = None,
) -> List[Transaction]:
    """Main entrypoint used by the app shell."""

    b64 = base64.b64encode(data).decode("ascii")

    try:
        if client is None:
            client = OpenAI(api_key=config.OPENAI_API_KEY)

        resp = client.responses.create(
            model=model or config.OPENAI_STATEMENT_MODEL,
            input=[
                {
                    "role": "user",
                    "content": [
                        {
                            "type": "input_file",
                            "filename": filename,
                            "file_data": f"data:{PDF_MIME};base64,{b64}",
                        },
                        {"type": "input_text", "text": EXTRACTION_PROMPT},
                    ],
                }
            ],
            text={
                "format": {
                    "type": "json_schema",
                    "name": "statement_transactions",
                    "schema": RESPONSE_SCHEMA,
                    "strict": True,
                }
            },
        )
    except OpenAIError as e:
        logger.error("Extraction request failed: %s", e)
        raise ExtractionError(ExtractionErrorKind.SERVICE_FAILURE, str(e) or "Failed to extract data from PDF") from e

    txs = parse_extraction_reply(getattr(resp, "output_text", None))
    logger.info("Extracted %d transactions from %s", len(txs), filename)
    return txs
