# activity_recorder/workflow_store.py
import json
import logging
import os
import sqlite3
import time
from typing import List, Optional

from activity_recorder.emitter import SinkUnavailable
from activity_recorder.models import InteractionEvent, Workflow

logger = logging.getLogger(__name__)


class WorkflowStore:
    """Saved workflows in a sqlite file, one row per event; one connection per call."""

    def __init__(self, db_path: str):
        self.db_path = db_path

    def _connect(self):
        conn = sqlite3.connect(self.db_path)
        conn.execute("PRAGMA foreign_keys = ON")
        return conn

    def init_db(self):
        directory = os.path.dirname(self.db_path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        conn = self._connect()
        c = conn.cursor()
        c.execute("""
        CREATE TABLE IF NOT EXISTS workflows (
            id TEXT PRIMARY KEY,
            name TEXT,
            created_at INTEGER
        )
        """)
        c.execute("""
        CREATE TABLE IF NOT EXISTS workflow_events (
            seq INTEGER PRIMARY KEY AUTOINCREMENT,
            workflow_id TEXT NOT NULL REFERENCES workflows(id) ON DELETE CASCADE,
            event TEXT
        )
        """)
        c.execute("CREATE INDEX IF NOT EXISTS idx_workflow_events ON workflow_events (workflow_id, seq)")
        conn.commit()
        conn.close()

    # ---------------- Save ----------------
    def save_workflow(self, workflow: Workflow):
        """Insert or replace a workflow together with all of its events."""
        conn = self._connect()
        c = conn.cursor()
        c.execute("""
        INSERT INTO workflows (id, name, created_at) VALUES (?, ?, ?)
        ON CONFLICT(id) DO UPDATE SET name=excluded.name, created_at=excluded.created_at
        """, (workflow.id, workflow.name, workflow.created_at))
        c.execute("DELETE FROM workflow_events WHERE workflow_id=?", (workflow.id,))
        c.executemany(
            "INSERT INTO workflow_events (workflow_id, event) VALUES (?, ?)",
            [(workflow.id, _dump(e)) for e in workflow.events],
        )
        conn.commit()
        conn.close()

    def create_workflow(self, workflow: Workflow):
        """Insert a new workflow; ValueError when the id is already taken."""
        conn = self._connect()
        try:
            conn.execute("INSERT INTO workflows (id, name, created_at) VALUES (?, ?, ?)",
                         (workflow.id, workflow.name, workflow.created_at))
            conn.executemany(
                "INSERT INTO workflow_events (workflow_id, event) VALUES (?, ?)",
                [(workflow.id, _dump(e)) for e in workflow.events],
            )
            conn.commit()
        except sqlite3.IntegrityError as e:
            raise ValueError(f"Workflow {workflow.id} already exists") from e
        finally:
            conn.close()

    def append_event(self, workflow_id: str, event: InteractionEvent) -> bool:
        conn = self._connect()
        try:
            conn.execute("INSERT INTO workflow_events (workflow_id, event) VALUES (?, ?)",
                         (workflow_id, _dump(event)))
            conn.commit()
            return True
        except sqlite3.IntegrityError:
            return False
        finally:
            conn.close()

    # ---------------- Read ----------------
    def _events(self, c, workflow_id: str) -> List[InteractionEvent]:
        c.execute("SELECT event FROM workflow_events WHERE workflow_id=? ORDER BY seq", (workflow_id,))
        return [InteractionEvent.from_dict(json.loads(row[0])) for row in c.fetchall()]

    def get_workflow(self, workflow_id: str) -> Optional[Workflow]:
        conn = self._connect()
        c = conn.cursor()
        c.execute("SELECT id, name, created_at FROM workflows WHERE id=?", (workflow_id,))
        row = c.fetchone()
        workflow = _row_to_workflow(row, self._events(c, workflow_id)) if row else None
        conn.close()
        return workflow

    def list_workflows(self) -> List[Workflow]:
        """All workflows, newest first."""
        conn = self._connect()
        c = conn.cursor()
        c.execute("SELECT id, name, created_at FROM workflows ORDER BY created_at DESC, id DESC")
        rows = c.fetchall()
        workflows = [_row_to_workflow(r, self._events(c, r[0])) for r in rows]
        conn.close()
        return workflows

    def count_events(self, workflow_id: str) -> int:
        conn = self._connect()
        c = conn.cursor()
        c.execute("SELECT COUNT(*) FROM workflow_events WHERE workflow_id=?", (workflow_id,))
        count = c.fetchone()[0]
        conn.close()
        return count

    # ---------------- Delete ----------------
    def delete_workflow(self, workflow_id: str) -> bool:
        conn = self._connect()
        c = conn.cursor()
        c.execute("DELETE FROM workflows WHERE id=?", (workflow_id,))
        deleted = c.rowcount > 0
        conn.commit()
        conn.close()
        return deleted

    # ---------------- Sessions ----------------
    def open_session(self, name: str, created_at: Optional[int] = None) -> "RecordingSession":
        """
        Create an empty workflow and return a sink that appends to it.

        Raises ValueError when a workflow with the same id (same creation
        millisecond) already exists, rather than overwriting it.
        """
        created_at = created_at if created_at is not None else int(time.time() * 1000)
        workflow = Workflow.new(name, created_at)
        self.create_workflow(workflow)
        logger.info("Opened recording session %s (%s)", workflow.id, name)
        return RecordingSession(self, workflow.id)


class RecordingSession:
    """Sink that persists each event into one workflow."""

    def __init__(self, store: WorkflowStore, workflow_id: str):
        self.store = store
        self.workflow_id = workflow_id
        self.closed = False

    def send(self, event: InteractionEvent):
        if self.closed:
            raise SinkUnavailable(f"session {self.workflow_id} is closed")
        if not self.store.append_event(self.workflow_id, event):
            raise SinkUnavailable(f"workflow {self.workflow_id} no longer exists")

    def close(self):
        self.closed = True

    def workflow(self) -> Optional[Workflow]:
        return self.store.get_workflow(self.workflow_id)


def _dump(event: InteractionEvent) -> str:
    return json.dumps(event.to_dict(), ensure_ascii=False)


def _row_to_workflow(row, events: List[InteractionEvent]) -> Workflow:
    workflow_id, name, created_at = row
    return Workflow(id=workflow_id, name=name or "", created_at=created_at or 0, events=events)
