# core/ledger_client.py
import asyncio
from typing import Any, Dict, Protocol
import httpx
from config.settings import settings
from model.paper import PaperRecord
from util.constants import ExternalURIs
from util.errors import LedgerUnavailable
from util.timing import timed
import logging

logger = logging.getLogger(__name__)


class Ledger(Protocol):
    async def commit(self, record: PaperRecord) -> str: ...


def _payload(record: PaperRecord) -> Dict[str, Any]:
    """
    What goes on the ledger: identity and provenance only, never embeddings or text.
    """
    return {
        "id": record.id,
        "title": record.title,
        "author": record.author,
        "department": record.department,
        "institution": record.institution,
        "fileHash": record.fileHash,
        "uploadedBy": record.uploadedBy,
        "approvedBy": sorted(record.approvedBy),
        "submissionDate": record.submissionDate.isoformat() if record.submissionDate else None,
    }


class LedgerClient:
    """
    Append-only external ledger. commit() returns the transaction id or raises
    LedgerUnavailable; the caller decides whether to retry.
    """

    def __init__(
        self,
        base_url: str = settings.LEDGER_API_URL,
        timeout: float = settings.LEDGER_TIMEOUT_SECONDS,
    ) -> None:
        self._url = base_url.rstrip("/") + ExternalURIs.LEDGER_RECORDS
        self._timeout = float(timeout)

    async def _post(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        async with httpx.AsyncClient(timeout=self._timeout) as client:
            r = await client.post(self._url, json=payload)
            r.raise_for_status()
            return r.json()

    async def commit(self, record: PaperRecord) -> str:
        try:
            with timed(logger, "ledger.commit", record=record.id):
                data = await asyncio.wait_for(
                    self._post(_payload(record)), timeout=self._timeout
                )
        except (httpx.HTTPError, asyncio.TimeoutError, ValueError) as e:
            logger.warning(
                "ledger.commit.unavailable record=%s err=%s", record.id, type(e).__name__
            )
            raise LedgerUnavailable(str(e) or type(e).__name__) from e

        tx_id = str((data or {}).get("transactionId") or "").strip()
        if not tx_id:
            logger.warning("ledger.commit.no_tx record=%s", record.id)
            raise LedgerUnavailable("ledger response carried no transaction id")
        logger.info("ledger.commit.ok record=%s tx=%s", record.id, tx_id)
        return tx_id
