"""
Named draft snapshots of an assignment state, scoped to a program.

DraftRepository is the only part of the engine that touches storage, and it
never lets an exception escape: every operation returns a DraftResult so the
caller can show a toast and carry on with its in-memory state.

Saving under a name that already exists in the same program overwrites that
draft (same id and created_at, new state and updated_at).

Storage is delegated to a DraftBackend. Two are provided:
  InMemoryDraftBackend   tests and throwaway sessions
  JsonFileDraftBackend   one JSON file, rewritten atomically via os.replace()
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Dict, List, Optional, Protocol

from referent_engine.io_json import state_from_dict, state_to_dict
from referent_engine.models import AssignmentState
from referent_engine.store import copy_state

logger = logging.getLogger(__name__)


class StorageFailure(RuntimeError):
    """Raised by a backend when the underlying store cannot be read or written."""


@dataclass(frozen=True)
class DraftRecord:
    id:         str
    program_id: str
    name:       str
    state:      AssignmentState
    created_at: datetime
    updated_at: datetime


@dataclass(frozen=True)
class DraftSummary:
    id:         str
    name:       str
    updated_at: datetime


@dataclass(frozen=True)
class DraftResult:
    success: bool
    draft:   Optional[DraftSummary]    = None
    state:   Optional[AssignmentState] = None
    error:   Optional[str]             = None
    # filled by list() only, newest first
    drafts:  List[DraftSummary]        = field(default_factory=list)


class DraftBackend(Protocol):
    def put(self, record: DraftRecord) -> None: ...
    def get(self, draft_id: str) -> Optional[DraftRecord]: ...
    def find(self, program_id: str) -> List[DraftRecord]: ...
    def remove(self, draft_id: str) -> bool: ...


class InMemoryDraftBackend:
    def __init__(self) -> None:
        self._records: Dict[str, DraftRecord] = {}

    def put(self, record: DraftRecord) -> None:
        self._records[record.id] = record

    def get(self, draft_id: str) -> Optional[DraftRecord]:
        return self._records.get(draft_id)

    def find(self, program_id: str) -> List[DraftRecord]:
        return [r for r in self._records.values() if r.program_id == program_id]

    def remove(self, draft_id: str) -> bool:
        return self._records.pop(draft_id, None) is not None


def _record_to_dict(record: DraftRecord) -> dict:
    return {
        "id":         record.id,
        "program_id": record.program_id,
        "name":       record.name,
        "state":      state_to_dict(record.state),
        "created_at": record.created_at.isoformat(),
        "updated_at": record.updated_at.isoformat(),
    }


def _record_from_dict(raw: dict) -> DraftRecord:
    return DraftRecord(
        id         = str(raw["id"]),
        program_id = str(raw["program_id"]),
        name       = str(raw["name"]),
        state      = state_from_dict(raw.get("state") or {}, f"drafts[{raw['id']}].state"),
        created_at = datetime.fromisoformat(raw["created_at"]),
        updated_at = datetime.fromisoformat(raw["updated_at"]),
    )


class JsonFileDraftBackend:
    """All drafts of all programs in one JSON file: {"drafts": [...]}."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def _read(self) -> Dict[str, DraftRecord]:
        if not self.path.exists():
            return {}
        try:
            with self.path.open("r", encoding="utf-8") as f:
                raw = json.load(f)
            return {r.id: r for r in map(_record_from_dict, raw.get("drafts", []))}
        except (OSError, ValueError, KeyError, TypeError, AttributeError) as e:
            raise StorageFailure(f"Could not read drafts from {self.path}: {e}") from e

    def _write(self, records: Dict[str, DraftRecord]) -> None:
        payload = {"drafts": [_record_to_dict(r) for r in records.values()]}
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            # write next to the target so os.replace() stays on one filesystem
            fd, tmp = tempfile.mkstemp(dir=self.path.parent, prefix=".drafts-", suffix=".json")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(payload, f, ensure_ascii=False, indent=2)
                os.replace(tmp, self.path)
            except BaseException:
                Path(tmp).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise StorageFailure(f"Could not write drafts to {self.path}: {e}") from e

    def put(self, record: DraftRecord) -> None:
        records = self._read()
        records[record.id] = record
        self._write(records)

    def get(self, draft_id: str) -> Optional[DraftRecord]:
        return self._read().get(draft_id)

    def find(self, program_id: str) -> List[DraftRecord]:
        return [r for r in self._read().values() if r.program_id == program_id]

    def remove(self, draft_id: str) -> bool:
        records = self._read()
        if records.pop(draft_id, None) is None:
            return False
        self._write(records)
        return True


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _summary(record: DraftRecord) -> DraftSummary:
    return DraftSummary(id=record.id, name=record.name, updated_at=record.updated_at)


class DraftRepository:
    def __init__(
        self,
        backend: DraftBackend,
        clock:   Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._backend = backend
        self._clock   = clock or _utcnow

    def save(self, name: str, state: AssignmentState, program_id: str) -> DraftResult:
        name = (name or "").strip()
        if not name:
            return DraftResult(success=False, error="Draft name must not be empty")
        try:
            now = self._clock()
            existing = next(
                (r for r in self._backend.find(program_id) if r.name == name), None
            )
            if existing is not None:
                record = replace(existing, state=copy_state(state), updated_at=now)
            else:
                record = DraftRecord(
                    id         = str(uuid.uuid4()),
                    program_id = program_id,
                    name       = name,
                    state      = copy_state(state),
                    created_at = now,
                    updated_at = now,
                )
            self._backend.put(record)
        except Exception as e:
            logger.exception(f"Saving draft '{name}' for program {program_id} failed")
            return DraftResult(success=False, error=str(e) or type(e).__name__)
        logger.info(
            f"{'Updated' if existing else 'Saved'} draft '{name}' ({record.id}) "
            f"for program {program_id}"
        )
        return DraftResult(success=True, draft=_summary(record))

    def list(self, program_id: str) -> DraftResult:
        """Drafts of one program in `drafts`, most recently updated first."""
        try:
            records = self._backend.find(program_id)
        except Exception as e:
            logger.exception(f"Listing drafts for program {program_id} failed")
            return DraftResult(success=False, error=str(e) or type(e).__name__)
        records = sorted(records, key=lambda r: (r.updated_at, r.id), reverse=True)
        return DraftResult(success=True, drafts=[_summary(r) for r in records])

    def load(self, draft_id: str) -> DraftResult:
        try:
            record = self._backend.get(draft_id)
        except Exception as e:
            logger.exception(f"Loading draft {draft_id} failed")
            return DraftResult(success=False, error=str(e) or type(e).__name__)
        if record is None:
            return DraftResult(success=False, error=f"Draft '{draft_id}' not found")
        return DraftResult(success=True, draft=_summary(record), state=copy_state(record.state))

    def delete(self, draft_id: str) -> DraftResult:
        try:
            removed = self._backend.remove(draft_id)
        except Exception as e:
            logger.exception(f"Deleting draft {draft_id} failed")
            return DraftResult(success=False, error=str(e) or type(e).__name__)
        if not removed:
            return DraftResult(success=False, error=f"Draft '{draft_id}' not found")
        logger.info(f"Deleted draft {draft_id}")
        return DraftResult(success=True)
