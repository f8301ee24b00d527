"""SQLite-backed store for quality score history and review state."""

from __future__ import annotations

import json
import sqlite3
from datetime import datetime
from pathlib import Path

from pydantic import BaseModel, Field

from manuscript_review.models.critique import CritiqueResult
from manuscript_review.models.passage import LockedPassage

DEFAULT_DB_PATH = Path.home() / ".manuscript-review" / "scores.db"


class QualityScoreRecord(BaseModel):
    """One stored critique of a subject at a given revision."""

    subject_id: str
    revision: int = 1
    timestamp: datetime = Field(default_factory=datetime.now)
    overall_score: float
    dimensions: dict[str, float] = {}
    strengths: list[str] = []
    weaknesses: list[str] = []
    suggestions: list[dict] = []
    market_comparison: str = ""

    @classmethod
    def from_critique(cls, critique: CritiqueResult, revision: int = 1) -> QualityScoreRecord:
        return cls(
            subject_id=critique.subject_id,
            revision=revision,
            timestamp=critique.generated_at,
            overall_score=critique.overall_score,
            dimensions={d.dimension_id: d.score for d in critique.dimensions},
            strengths=critique.strengths,
            weaknesses=critique.areas_for_improvement,
            suggestions=[
                {
                    "id": s.id,
                    "priority": {"high": 1, "medium": 2}.get(s.impact.value, 3),
                    "dimension": s.dimension_id,
                    "description": s.suggestion,
                    "status": s.status.value,
                }
                for s in critique.prioritized_suggestions
            ],
            market_comparison=critique.market_comparison,
        )


class QualityScoreStore:
    """Score history keyed by (subject_id, revision), with WAL mode."""

    def __init__(self, db_path: str | Path = DEFAULT_DB_PATH):
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self.db_path))
        conn.execute("PRAGMA journal_mode=WAL")
        return conn

    def _init_db(self) -> None:
        with self._connect() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS quality_scores (
                    subject_id TEXT NOT NULL,
                    revision INTEGER NOT NULL,
                    timestamp TEXT NOT NULL,
                    overall_score REAL NOT NULL,
                    record_json TEXT NOT NULL,
                    PRIMARY KEY (subject_id, revision)
                )
            """)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS review_state (
                    subject_id TEXT PRIMARY KEY,
                    locked_passages TEXT NOT NULL DEFAULT '[]',
                    suggestion_status TEXT NOT NULL DEFAULT '{}',
                    updated_at TEXT NOT NULL
                )
            """)

    def save_score(self, record: QualityScoreRecord) -> None:
        """Append a score, replacing any prior entry for the same subject and revision."""
        with self._connect() as conn:
            conn.execute(
                """INSERT OR REPLACE INTO quality_scores
                   (subject_id, revision, timestamp, overall_score, record_json)
                   VALUES (?, ?, ?, ?, ?)""",
                (
                    record.subject_id,
                    record.revision,
                    record.timestamp.isoformat(),
                    record.overall_score,
                    record.model_dump_json(),
                ),
            )

    def history(self, subject_id: str) -> list[QualityScoreRecord]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT record_json FROM quality_scores WHERE subject_id = ? ORDER BY revision",
                (subject_id,),
            ).fetchall()
        return [QualityScoreRecord.model_validate_json(row[0]) for row in rows]

    def latest(self, subject_id: str) -> QualityScoreRecord | None:
        with self._connect() as conn:
            row = conn.execute(
                """SELECT record_json FROM quality_scores WHERE subject_id = ?
                   ORDER BY revision DESC LIMIT 1""",
                (subject_id,),
            ).fetchone()
        return QualityScoreRecord.model_validate_json(row[0]) if row else None

    def save_state(
        self,
        subject_id: str,
        passages: list[LockedPassage],
        suggestion_status: dict[str, str],
    ) -> None:
        with self._connect() as conn:
            conn.execute(
                """INSERT OR REPLACE INTO review_state
                   (subject_id, locked_passages, suggestion_status, updated_at)
                   VALUES (?, ?, ?, ?)""",
                (
                    subject_id,
                    json.dumps([p.model_dump() for p in passages]),
                    json.dumps(suggestion_status),
                    datetime.now().isoformat(),
                ),
            )

    def load_state(self, subject_id: str) -> tuple[list[LockedPassage], dict[str, str]]:
        """Stored passages and suggestion statuses; empty when nothing is stored."""
        with self._connect() as conn:
            row = conn.execute(
                "SELECT locked_passages, suggestion_status FROM review_state WHERE subject_id = ?",
                (subject_id,),
            ).fetchone()
        if row is None:
            return [], {}
        passages = [LockedPassage(**p) for p in json.loads(row[0])]
        return passages, json.loads(row[1])

    def delete(self, subject_id: str) -> int:
        """Remove every row for ``subject_id``. Returns the number of score rows deleted."""
        with self._connect() as conn:
            cursor = conn.execute("DELETE FROM quality_scores WHERE subject_id = ?", (subject_id,))
            conn.execute("DELETE FROM review_state WHERE subject_id = ?", (subject_id,))
            return cursor.rowcount
