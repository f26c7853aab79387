from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from datetime import date
from typing import Any

from domain.errors import Conflict
from domain.models import TransactionRequest, new_id

logger = logging.getLogger(__name__)


class Ledger(ABC):
    """Books the transactions that projection runs ask for."""

    @abstractmethod
    def post(self, request: TransactionRequest) -> str:
        raise NotImplementedError

    @abstractmethod
    def transactions(self, owner_id: str | None = None) -> list[dict[str, Any]]:
        raise NotImplementedError


class InMemoryLedger(Ledger):
    def __init__(self) -> None:
        self._rows: dict[str, dict[str, Any]] = {}
        self._occurrences: dict[tuple[str, date], str] = {}
        self._lock = threading.Lock()

    def post(self, request: TransactionRequest) -> str:
        key = (request.projection_id, request.due_date)
        with self._lock:
            if key in self._occurrences:
                raise Conflict(
                    f"Occurrence {request.due_date.isoformat()} of projection {request.projection_id} "
                    f"was already booked as {self._occurrences[key]}"
                )
            transaction_id = new_id("txn")
            self._occurrences[key] = transaction_id
            self._rows[transaction_id] = self._serialize(transaction_id, request)
        logger.info(
            "Ledger booked transaction_id=%s projection_id=%s kind=%s amount=%s",
            transaction_id,
            request.projection_id,
            request.kind.value,
            request.amount,
        )
        return transaction_id

    def transactions(self, owner_id: str | None = None) -> list[dict[str, Any]]:
        with self._lock:
            rows = list(self._rows.values())
        if owner_id is None:
            return rows
        return [row for row in rows if row["owner_id"] == owner_id]

    def _serialize(self, transaction_id: str, request: TransactionRequest) -> dict[str, Any]:
        return {
            "id": transaction_id,
            "owner_id": request.owner_id,
            "posted_on": request.posted_on.isoformat(),
            "description": request.description,
            "category_id": request.category_id,
            "amount": request.amount,
            "kind": request.kind.value,
            "projection_id": request.projection_id,
            "due_date": request.due_date.isoformat(),
        }
