"""
Camera Database - CCTV camera records and dashboard sessions
"""
import os
import sqlite3
import uuid
from datetime import datetime, timezone
from threading import Lock
from typing import Any, Dict, List, Optional

CAMERA_STATUSES = ("ONLINE", "OFFLINE", "MAINTENANCE")

CAMERA_COLUMNS = {
    "name": "name",
    "description": "description",
    "location": "location",
    "stream_url": "url_camera",
    "status": "status",
    "project_id": "project_id",
    "sort_order": "sort_order",
}


def _utcnow() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S")


class CameraDatabase:
    """SQLite store for cameras (read by the stream proxy) and sessions"""

    def __init__(self, db_file="data/navisight.db"):
        self.db_file = db_file
        self.lock = Lock()

        # Create directory if not exists
        directory = os.path.dirname(db_file)
        if directory:
            os.makedirs(directory, exist_ok=True)

        self._init_db()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_file)
        conn.row_factory = sqlite3.Row
        return conn

    def _init_db(self):
        """Initialize database tables"""
        with self.lock:
            conn = self._connect()
            try:
                cursor = conn.cursor()

                # Table: cameras (url_camera is the playback source of truth)
                cursor.execute("""
                    CREATE TABLE IF NOT EXISTS cameras (
                        id TEXT PRIMARY KEY,
                        name TEXT,
                        description TEXT,
                        location TEXT,
                        url_camera TEXT,
                        status TEXT DEFAULT 'OFFLINE',
                        project_id TEXT NOT NULL,
                        sort_order INTEGER DEFAULT 0,
                        created_at TEXT DEFAULT CURRENT_TIMESTAMP,
                        updated_at TEXT DEFAULT CURRENT_TIMESTAMP
                    )
                """)

                cursor.execute("""
                    CREATE INDEX IF NOT EXISTS idx_cameras_project_id
                    ON cameras(project_id)
                """)

                # Table: sessions (written by the dashboard login service)
                cursor.execute("""
                    CREATE TABLE IF NOT EXISTS sessions (
                        token TEXT PRIMARY KEY,
                        user_id TEXT NOT NULL,
                        email TEXT,
                        name TEXT,
                        role TEXT,
                        expires_at TEXT,
                        created_at TEXT DEFAULT CURRENT_TIMESTAMP
                    )
                """)

                conn.commit()
            finally:
                conn.close()

    # Cameras

    @staticmethod
    def _camera_row_to_dict(row: sqlite3.Row) -> Dict[str, Any]:
        return {
            "id": row["id"],
            "name": row["name"],
            "description": row["description"],
            "location": row["location"],
            "stream_url": row["url_camera"],
            "status": row["status"],
            "project_id": row["project_id"],
            "sort_order": row["sort_order"],
            "created_at": row["created_at"],
            "updated_at": row["updated_at"],
        }

    def get_cameras(self) -> List[Dict[str, Any]]:
        """All cameras, manual order first then newest"""
        with self.lock:
            conn = self._connect()
            try:
                rows = conn.execute("""
                    SELECT * FROM cameras
                    ORDER BY sort_order ASC, created_at DESC, rowid DESC
                """).fetchall()
                return [self._camera_row_to_dict(r) for r in rows]
            finally:
                conn.close()

    def get_camera(self, camera_id: str) -> Optional[Dict[str, Any]]:
        with self.lock:
            conn = self._connect()
            try:
                row = conn.execute("SELECT * FROM cameras WHERE id = ?", (camera_id,)).fetchone()
                return self._camera_row_to_dict(row) if row else None
            finally:
                conn.close()

    def get_camera_stream_url(self, camera_id: str) -> Optional[str]:
        """Stored stream URL of a camera, None if the camera or URL is missing"""
        with self.lock:
            conn = self._connect()
            try:
                row = conn.execute("SELECT url_camera FROM cameras WHERE id = ?", (camera_id,)).fetchone()
                return (row["url_camera"] or None) if row else None
            finally:
                conn.close()

    def create_camera(self, name: str, stream_url: str, project_id: str,
                      status: str = "OFFLINE", description: Optional[str] = None,
                      location: Optional[str] = None, camera_id: Optional[str] = None) -> Dict[str, Any]:
        camera_id = camera_id or str(uuid.uuid4())
        now = _utcnow()

        with self.lock:
            conn = self._connect()
            try:
                conn.execute("""
                    INSERT INTO cameras (id, name, description, location, url_camera,
                                         status, project_id, created_at, updated_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """, (camera_id, name, description, location, stream_url,
                      status, project_id, now, now))
                conn.commit()
            finally:
                conn.close()

        return self.get_camera(camera_id)

    def upsert_camera(self, camera_id: str, name: str, stream_url: str, project_id: str,
                      status: str = "OFFLINE", description: Optional[str] = None,
                      location: Optional[str] = None) -> Dict[str, Any]:
        """Insert or replace the editable fields of a camera (used by the YAML seed)"""
        if self.get_camera(camera_id) is None:
            return self.create_camera(name, stream_url, project_id, status=status,
                                      description=description, location=location,
                                      camera_id=camera_id)

        return self.update_camera(camera_id, {
            "name": name,
            "stream_url": stream_url,
            "project_id": project_id,
            "status": status,
            "description": description,
            "location": location,
        })

    def update_camera(self, camera_id: str, fields: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """
        Update selected fields of a camera.

        Args:
            camera_id: camera to update
            fields: subset of CAMERA_COLUMNS keys (snake_case) and new values

        Returns:
            Updated camera dict, or None when the camera does not exist
        """
        assignments = []
        values = []
        for key, value in fields.items():
            column = CAMERA_COLUMNS.get(key)
            if column is None:
                raise ValueError(f"Unknown camera field: {key}")
            assignments.append(f"{column} = ?")
            values.append(value)

        if assignments:
            assignments.append("updated_at = ?")
            values.append(_utcnow())

            with self.lock:
                conn = self._connect()
                try:
                    conn.execute(
                        f"UPDATE cameras SET {', '.join(assignments)} WHERE id = ?",
                        (*values, camera_id),
                    )
                    conn.commit()
                finally:
                    conn.close()

        return self.get_camera(camera_id)

    def delete_camera(self, camera_id: str) -> bool:
        with self.lock:
            conn = self._connect()
            try:
                cursor = conn.execute("DELETE FROM cameras WHERE id = ?", (camera_id,))
                conn.commit()
                return cursor.rowcount > 0
            finally:
                conn.close()

    def count_project_cameras(self, project_id: str) -> int:
        with self.lock:
            conn = self._connect()
            try:
                row = conn.execute(
                    "SELECT COUNT(*) AS total FROM cameras WHERE project_id = ?", (project_id,)
                ).fetchone()
                return row["total"]
            finally:
                conn.close()

    def get_project_camera_ids(self, project_id: str, camera_ids: List[str]) -> List[str]:
        """Subset of `camera_ids` that belong to the project"""
        if not camera_ids:
            return []

        placeholders = ", ".join("?" for _ in camera_ids)
        with self.lock:
            conn = self._connect()
            try:
                rows = conn.execute(
                    f"SELECT id FROM cameras WHERE project_id = ? AND id IN ({placeholders})",
                    (project_id, *camera_ids),
                ).fetchall()
                return [r["id"] for r in rows]
            finally:
                conn.close()

    def reorder_cameras(self, ordered_ids: List[str]):
        """Assign sort_order 1..n following `ordered_ids`, in one transaction"""
        now = _utcnow()
        with self.lock:
            conn = self._connect()
            try:
                with conn:
                    conn.executemany(
                        "UPDATE cameras SET sort_order = ?, updated_at = ? WHERE id = ?",
                        [(index + 1, now, camera_id) for index, camera_id in enumerate(ordered_ids)],
                    )
            finally:
                conn.close()

    # Sessions

    def create_session(self, token: str, user_id: str, email: Optional[str],
                       name: Optional[str] = None, role: Optional[str] = None,
                       expires_at: Optional[datetime] = None):
        expires = expires_at.astimezone(timezone.utc).strftime("%Y-%m-%d %H:%M:%S") if expires_at else None
        with self.lock:
            conn = self._connect()
            try:
                conn.execute("""
                    INSERT OR REPLACE INTO sessions (token, user_id, email, name, role, expires_at)
                    VALUES (?, ?, ?, ?, ?, ?)
                """, (token, user_id, email, name, role, expires))
                conn.commit()
            finally:
                conn.close()

    def get_session(self, token: str) -> Optional[Dict[str, Any]]:
        """Session for `token`, None when unknown or expired"""
        with self.lock:
            conn = self._connect()
            try:
                row = conn.execute("SELECT * FROM sessions WHERE token = ?", (token,)).fetchone()
            finally:
                conn.close()

        if not row:
            return None
        if row["expires_at"] and row["expires_at"] <= _utcnow():
            return None

        return {
            "user_id": row["user_id"],
            "email": row["email"],
            "name": row["name"],
            "role": row["role"],
        }
