"""
SQLite-backed scan history.

One connection per operation; rows come back through sqlite3.Row and are
converted to the camelCase records the web app and reports consume.
"""

import json
import logging
import sqlite3
from contextlib import closing
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List

from risk_engine import RiskAssessment

logger = logging.getLogger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS users (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    username TEXT NOT NULL UNIQUE,
    password_hash TEXT NOT NULL,
    role TEXT NOT NULL DEFAULT 'user'
);
CREATE TABLE IF NOT EXISTS scans (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id INTEGER NOT NULL REFERENCES users(id),
    url TEXT NOT NULL,
    risk_score INTEGER NOT NULL,
    is_phishing INTEGER NOT NULL,
    created_at TEXT NOT NULL,
    features TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_scans_user ON scans(user_id);
CREATE INDEX IF NOT EXISTS idx_scans_url ON scans(url);
"""


class DuplicateUserError(ValueError):
    pass


class ScanStore:
    def __init__(self, db_path: str | Path):
        self.db_path = str(db_path)

    def _connect(self) -> sqlite3.Connection:
        if self.db_path != ":memory:":
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def init_db(self):
        with closing(self._connect()) as conn:
            conn.executescript(SCHEMA)
            conn.commit()
        logger.debug("Scan store ready at %s", self.db_path)

    # Users

    def create_user(self, username: str, password_hash: str, role: str = "user") -> Dict:
        with closing(self._connect()) as conn:
            try:
                cur = conn.execute(
                    "INSERT INTO users (username, password_hash, role) VALUES (?, ?, ?)",
                    (username, password_hash, role),
                )
                conn.commit()
            except sqlite3.IntegrityError as error:
                raise DuplicateUserError(f"Username already exists: {username}") from error
            user_id = cur.lastrowid
        logger.info("Created user %s (id=%s)", username, user_id)
        return {"id": user_id, "username": username, "password_hash": password_hash, "role": role}

    def get_user(self, user_id: int) -> Dict | None:
        with closing(self._connect()) as conn:
            row = conn.execute("SELECT * FROM users WHERE id = ?", (user_id,)).fetchone()
        return dict(row) if row else None

    def get_user_by_username(self, username: str) -> Dict | None:
        with closing(self._connect()) as conn:
            row = conn.execute("SELECT * FROM users WHERE username = ?", (username,)).fetchone()
        return dict(row) if row else None

    # Scans

    def create_scan(self, user_id: int, url: str, assessment: RiskAssessment) -> Dict:
        created_at = datetime.now(timezone.utc).isoformat()
        with closing(self._connect()) as conn:
            cur = conn.execute(
                """
                INSERT INTO scans (user_id, url, risk_score, is_phishing, created_at, features)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    user_id,
                    url,
                    assessment.risk_score,
                    int(assessment.is_phishing),
                    created_at,
                    assessment.features_json(),
                ),
            )
            conn.commit()
            scan_id = cur.lastrowid
        logger.info("Stored scan %s for user %s: %s", scan_id, user_id, url)
        return self.get_scan(scan_id)

    def get_user_scans(self, user_id: int) -> List[Dict]:
        with closing(self._connect()) as conn:
            rows = conn.execute(
                "SELECT * FROM scans WHERE user_id = ? ORDER BY id DESC",
                (user_id,),
            ).fetchall()
        return [scan_row_to_record(row) for row in rows]

    def get_scan(self, scan_id: int) -> Dict | None:
        with closing(self._connect()) as conn:
            row = conn.execute("SELECT * FROM scans WHERE id = ?", (scan_id,)).fetchone()
        return scan_row_to_record(row) if row else None

    def get_latest_scan_by_url(self, url: str) -> Dict | None:
        with closing(self._connect()) as conn:
            row = conn.execute(
                "SELECT * FROM scans WHERE url = ? ORDER BY id DESC LIMIT 1",
                (url,),
            ).fetchone()
        return scan_row_to_record(row) if row else None


def scan_row_to_record(row: sqlite3.Row) -> Dict:
    return {
        "id": row["id"],
        "userId": row["user_id"],
        "url": row["url"],
        "riskScore": row["risk_score"],
        "isPhishing": bool(row["is_phishing"]),
        "createdAt": row["created_at"],
        "features": json.loads(row["features"]),
    }
