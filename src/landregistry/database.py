"""
Database connection and operations for the PostgreSQL audit log.
Committed registry events are mirrored into the audit_logs table.
"""
import json
import os
from typing import List, Optional

import psycopg2
from psycopg2.extras import RealDictCursor

from .models import Event

SCHEMA = """
CREATE TABLE IF NOT EXISTS audit_logs (
    id BIGSERIAL PRIMARY KEY,
    event_index INTEGER NOT NULL,
    event_name TEXT NOT NULL,
    actor TEXT NOT NULL,
    details JSONB NOT NULL DEFAULT '{}'::jsonb,
    reason TEXT,
    event_timestamp TEXT NOT NULL,
    prev_hash TEXT NOT NULL,
    hash TEXT NOT NULL UNIQUE,
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
)
"""


def get_db_connection():
    """Get PostgreSQL connection from DATABASE_URL environment variable."""
    database_url = os.getenv('DATABASE_URL')
    if not database_url:
        raise ValueError("DATABASE_URL environment variable not set")
    return psycopg2.connect(database_url)


def init_schema() -> None:
    """Create the audit_logs table if it does not exist."""
    conn = get_db_connection()
    try:
        with conn.cursor() as cur:
            cur.execute(SCHEMA)
            conn.commit()
    finally:
        conn.close()


def write_audit_log(event: Event) -> str:
    """
    Write one registry event to PostgreSQL.
    Returns the row id.
    """
    conn = get_db_connection()
    try:
        with conn.cursor() as cur:
            cur.execute(
                """
                INSERT INTO audit_logs
                    (event_index, event_name, actor, details, reason, event_timestamp, prev_hash, hash)
                VALUES (%s, %s, %s, %s, %s, %s, %s, %s)
                RETURNING id::text
                """,
                (
                    event.index,
                    event.name,
                    event.actor,
                    json.dumps(event.data),
                    event.reason,
                    event.timestamp,
                    event.prev_hash,
                    event.hash,
                )
            )
            log_id = cur.fetchone()[0]
            conn.commit()
            return log_id
    except psycopg2.IntegrityError:
        conn.rollback()
        raise ValueError(f"Event {event.index} ({event.hash[:16]}...) already recorded")
    finally:
        conn.close()


def get_audit_logs(limit: int = 100, offset: int = 0, event_name: Optional[str] = None) -> List[dict]:
    """
    Retrieve audit logs from PostgreSQL, newest first.
    Returns list of log dictionaries.
    """
    conn = get_db_connection()
    try:
        with conn.cursor(cursor_factory=RealDictCursor) as cur:
            if event_name:
                cur.execute(
                    """
                    SELECT
                        id::text as log_id,
                        event_index,
                        event_name,
                        actor,
                        details,
                        reason,
                        event_timestamp,
                        hash
                    FROM audit_logs
                    WHERE event_name = %s
                    ORDER BY event_index DESC
                    LIMIT %s OFFSET %s
                    """,
                    (event_name, limit, offset)
                )
            else:
                cur.execute(
                    """
                    SELECT
                        id::text as log_id,
                        event_index,
                        event_name,
                        actor,
                        details,
                        reason,
                        event_timestamp,
                        hash
                    FROM audit_logs
                    ORDER BY event_index DESC
                    LIMIT %s OFFSET %s
                    """,
                    (limit, offset)
                )
            logs = cur.fetchall()
            return [dict(log) for log in logs]
    finally:
        conn.close()


def check_event_recorded(event_hash: str) -> bool:
    """Returns True if an event with this chain hash is already in the audit log."""
    conn = get_db_connection()
    try:
        with conn.cursor() as cur:
            cur.execute(
                "SELECT COUNT(*) FROM audit_logs WHERE hash = %s",
                (event_hash,)
            )
            count = cur.fetchone()[0]
            return count > 0
    finally:
        conn.close()


def record_event(event: Event) -> Optional[str]:
    """Audit-log subscriber: writes the event unless its hash is already stored."""
    if check_event_recorded(event.hash):
        return None
    return write_audit_log(event)
