from __future__ import annotations

import json
import logging
import os
import tempfile
import uuid
from pathlib import Path
from typing import Dict, List

from .models import AssessmentSnapshot, SessionRecord, now_iso
from .table_io import TableImportError, dump_snapshot_json, load_snapshot_json


logger = logging.getLogger(__name__)


def _write_atomic(file_path: Path, text: str) -> None:
    """Write through a sibling temp file so readers never see a partial document."""
    file_path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=str(file_path.parent), prefix=f".{file_path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(text)
        os.replace(tmp_name, file_path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


class SessionStore:
    def __init__(self, sessions_root: Path) -> None:
        self.sessions_root = Path(sessions_root).expanduser().resolve()
        self.sessions_root.mkdir(parents=True, exist_ok=True)

    def _session_file(self, session_id: str) -> Path:
        return self.sessions_root / session_id / "session.json"

    def _snapshot_file(self, session_id: str) -> Path:
        return self.sessions_root / session_id / "snapshot.json"

    def session_paths(self, session_id: str) -> Dict[str, Path]:
        if not self._session_file(session_id).exists():
            raise FileNotFoundError(f"Session not found: {session_id}")
        session_root = self.sessions_root / session_id
        outputs_root = session_root / "outputs"
        paths = {
            "session_root": session_root,
            "outputs_root": outputs_root,
            "charts_root": outputs_root / "charts",
        }
        for path in paths.values():
            path.mkdir(parents=True, exist_ok=True)
        return paths

    def list_sessions(self, limit: int = 20) -> List[SessionRecord]:
        rows: List[SessionRecord] = []
        for child in sorted(self.sessions_root.iterdir(), key=lambda p: p.name, reverse=True):
            if not child.is_dir():
                continue
            file_path = child / "session.json"
            if not file_path.exists():
                continue
            try:
                payload = json.loads(file_path.read_text(encoding="utf-8"))
            except (OSError, ValueError):
                logger.warning("Skipping unreadable session file %s", file_path)
                continue
            rows.append(SessionRecord.from_dict(payload))
            if len(rows) >= max(1, int(limit)):
                break
        return rows

    def create_session(self, *, title: str, snapshot: AssessmentSnapshot, source: str = "") -> SessionRecord:
        session_id = f"s_{now_iso().replace(':', '').replace('-', '').replace('T', '_')}_{uuid.uuid4().hex[:8]}"
        record = SessionRecord(
            session_id=session_id,
            title=title.strip() or "Untitled assessment",
            created_at=now_iso(),
            updated_at=now_iso(),
            row_count=len(snapshot.rows),
            source=source,
        )
        (self.sessions_root / session_id).mkdir(parents=True, exist_ok=True)
        self.save_session(record)
        self.save_snapshot(session_id, snapshot)
        self.session_paths(session_id)
        return record

    def load_session(self, session_id: str) -> SessionRecord:
        file_path = self._session_file(session_id)
        if not file_path.exists():
            raise FileNotFoundError(f"Session not found: {session_id}")
        payload = json.loads(file_path.read_text(encoding="utf-8"))
        return SessionRecord.from_dict(payload)

    def save_session(self, record: SessionRecord) -> None:
        file_path = self._session_file(record.session_id)
        record.updated_at = now_iso()
        _write_atomic(file_path, json.dumps(record.to_dict(), ensure_ascii=False, indent=2))

    def update_session(self, session_id: str, **updates: object) -> SessionRecord:
        record = self.load_session(session_id)
        for key, value in updates.items():
            if hasattr(record, key):
                setattr(record, key, value)  # type: ignore[arg-type]
            else:
                record.notes[str(key)] = value
        self.save_session(record)
        return record

    def load_snapshot(self, session_id: str) -> AssessmentSnapshot:
        self.load_session(session_id)
        file_path = self._snapshot_file(session_id)
        if not file_path.exists():
            return AssessmentSnapshot()
        try:
            return load_snapshot_json(file_path.read_text(encoding="utf-8"))
        except TableImportError as exc:
            raise RuntimeError(f"Stored snapshot for {session_id} is corrupt: {exc}") from exc

    def save_snapshot(self, session_id: str, snapshot: AssessmentSnapshot) -> None:
        _write_atomic(self._snapshot_file(session_id), dump_snapshot_json(snapshot))

