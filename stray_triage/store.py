from __future__ import annotations

import logging
import random
import string
import threading
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List

from pydantic import ValidationError

from .contracts import Coordinates, Report, TriageResult
from .io import read_json, write_json

logger = logging.getLogger(__name__)

_ID_ALPHABET = string.ascii_lowercase + string.digits

_LOCKS: Dict[Path, threading.RLock] = {}
_LOCKS_GUARD = threading.Lock()


def _lock_for(path: Path) -> threading.RLock:
    """One lock per resolved file path, shared by every store in the process."""
    key = path.resolve()
    with _LOCKS_GUARD:
        lock = _LOCKS.get(key)
        if lock is None:
            lock = _LOCKS[key] = threading.RLock()
        return lock


def new_report_id() -> str:
    suffix = "".join(random.choices(_ID_ALPHABET, k=9))
    return f"report-{int(time.time() * 1000)}-{suffix}"


class ReportStore:
    """
    Reports kept as one JSON array on disk.

    Every operation holds the lock for the file path, so there is one writer
    at a time per file across all stores in the process.
    A file that can't be read lists as empty; create/delete refuse to
    overwrite it.
    """

    def __init__(self, path: str):
        self.path = Path(path)
        self._lock = _lock_for(self.path)

    def _ensure(self) -> None:
        if not self.path.exists():
            write_json(str(self.path), [])

    def _load(self) -> List[Dict[str, Any]]:
        self._ensure()
        data = read_json(str(self.path))
        if not isinstance(data, list):
            raise ValueError(f"Expected a JSON array in {self.path}")
        return data

    def list_reports(self) -> List[Report]:
        with self._lock:
            try:
                return [Report.model_validate(r) for r in self._load()]
            except (OSError, ValueError, ValidationError) as e:
                logger.error("Error reading report store %s: %s", self.path, e)
                return []

    def list_by_priority(self) -> List[Report]:
        return sorted(self.list_reports(), key=lambda r: r.priorityScore, reverse=True)

    def create(self, triage: TriageResult, image_data: str, coordinates: Coordinates) -> Report:
        with self._lock:
            records = self._load()
            report = Report(
                id=new_report_id(),
                timestamp=datetime.now(timezone.utc).isoformat(),
                imageData=image_data,
                gpsCoordinates=coordinates,
                triageTags=list(triage.triageTags),
                priorityScore=triage.priorityScore,
                readableAddress=triage.readableAddress,
            )
            records.append(report.model_dump(mode="json"))
            write_json(str(self.path), records)
        logger.info("stored %s priority=%d", report.id, report.priorityScore)
        return report

    def delete(self, report_id: str) -> bool:
        with self._lock:
            records = self._load()
            kept = [r for r in records if r.get("id") != report_id]
            if len(kept) == len(records):
                return False
            write_json(str(self.path), kept)
        logger.info("deleted %s", report_id)
        return True
