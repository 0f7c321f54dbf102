"""Destinations for expert corrections.

``process_expert_feedback`` hands each request's ordered corrections to a
``CorrectionSink``. Learning from them is out of scope; these sinks only
keep them for later use.

Example:
    >>> store = CorrectionStore("corrections.json")
    >>> asyncio.run(process_expert_feedback(feedback, sink=store))
    >>> store.field_counts()
    {'maker': 3, 'era': 1}
"""

from __future__ import annotations

import json
import logging
from collections import Counter
from datetime import datetime, timezone
from pathlib import Path
from typing import Protocol, runtime_checkable

from pydantic import BaseModel, Field

from vintagevision.escalation.requests import ExpertCorrection

logger = logging.getLogger(__name__)


@runtime_checkable
class CorrectionSink(Protocol):
    """Anything that accepts a request's ordered list of corrections."""

    def record(self, request_id: str, corrections: list[ExpertCorrection]) -> None: ...


class CorrectionRecord(BaseModel):
    """One stored correction tagged with its request."""

    request_id: str
    correction: ExpertCorrection
    recorded_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class InMemoryCorrectionSink:
    """Keeps corrections in a list, in arrival order."""

    def __init__(self) -> None:
        self.records: list[CorrectionRecord] = []

    def record(self, request_id: str, corrections: list[ExpertCorrection]) -> None:
        for correction in corrections:
            self.records.append(CorrectionRecord(request_id=request_id, correction=correction))

    @property
    def corrections(self) -> list[ExpertCorrection]:
        return [r.correction for r in self.records]


class CorrectionStore:
    """JSON file-based, append-only storage for expert corrections.

    Attributes:
        path: Path to the JSON storage file.
    """

    def __init__(self, path: str | Path = "corrections.json") -> None:
        """Initialize the store, creating the file if needed.

        Args:
            path: Path to JSON file for storage.
        """
        self.path = Path(path)
        self._ensure_file_exists()

    def _ensure_file_exists(self) -> None:
        if not self.path.exists():
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self._write_data({"corrections": []})
            logger.info(f"Created correction store at {self.path}")

    def _read_data(self, preserve_corrupt: bool = False) -> dict[str, list[dict[str, object]]]:
        """Load the store; an unreadable file reads as empty.

        Args:
            preserve_corrupt: Move an unreadable file aside before the caller
                overwrites it, so stored corrections can still be recovered.
        """
        try:
            with self.path.open("r") as f:
                data: dict[str, list[dict[str, object]]] = json.load(f)
                return data
        except FileNotFoundError:
            return {"corrections": []}
        except json.JSONDecodeError as e:
            logger.warning(
                f"Correction store {self.path} is not valid JSON ({e}); reading as empty"
            )
            if preserve_corrupt:
                backup = self.backup_path()
                self.path.replace(backup)
                logger.warning(f"Moved unreadable correction store to {backup}")
            return {"corrections": []}

    def backup_path(self) -> Path:
        """Where an unreadable store file is moved before it is rewritten."""
        stamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%S%f")
        return self.path.with_name(f"{self.path.name}.corrupt-{stamp}")

    def _write_data(self, data: dict[str, list[dict[str, object]]]) -> None:
        with self.path.open("w") as f:
            json.dump(data, f, indent=2, default=str)

    def record(self, request_id: str, corrections: list[ExpertCorrection]) -> None:
        """Append a request's corrections to the file.

        Args:
            request_id: Request the corrections belong to.
            corrections: Corrections in the expert's order.
        """
        if not corrections:
            return
        data = self._read_data(preserve_corrupt=True)
        for correction in corrections:
            record = CorrectionRecord(request_id=request_id, correction=correction)
            data.setdefault("corrections", []).append(record.model_dump(mode="json"))
        self._write_data(data)
        logger.debug(f"Stored {len(corrections)} corrections for request {request_id}")

    def get_all(self) -> list[CorrectionRecord]:
        """Get every stored correction, oldest first."""
        data = self._read_data()
        return [CorrectionRecord.model_validate(r) for r in data.get("corrections", [])]

    def get_by_request(self, request_id: str) -> list[CorrectionRecord]:
        """Get corrections recorded for one request."""
        return [r for r in self.get_all() if r.request_id == request_id]

    def field_counts(self) -> dict[str, int]:
        """Count corrections per analysis field, most corrected first."""
        counts = Counter(r.correction.field for r in self.get_all())
        return dict(counts.most_common())

    def count(self) -> int:
        return len(self._read_data().get("corrections", []))

    def clear(self) -> None:
        """Remove all stored corrections."""
        self._write_data({"corrections": []})
        logger.info(f"Cleared correction store at {self.path}")
