"""Create jobs table for asynchronous wine analysis.

Revision ID: 001
Revises: None
Create Date: 2026-10-19

One row per analysis job. Result payloads (final, partial, legacy wines)
are stored as JSON text serialized by the pydantic job models.
"""
from typing import Sequence, Union

from alembic import op

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

# Schema SQL inlined for immutability.
SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS jobs (
    id TEXT PRIMARY KEY,
    status TEXT NOT NULL,
    request_id TEXT,
    locale TEXT NOT NULL DEFAULT 'en',
    no_bs_mode BOOLEAN NOT NULL DEFAULT 0,
    image_url TEXT,
    error TEXT,
    result TEXT,
    partial_result TEXT,
    wines TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    completed_at TEXT,
    failed_at TEXT
);

CREATE INDEX IF NOT EXISTS idx_jobs_status ON jobs(status);
CREATE INDEX IF NOT EXISTS idx_jobs_created_at ON jobs(created_at);
"""


def upgrade() -> None:
    conn = op.get_bind()
    raw_conn = conn.connection.dbapi_connection
    raw_conn.executescript(SCHEMA_SQL)


def downgrade() -> None:
    conn = op.get_bind()
    raw_conn = conn.connection.dbapi_connection
    raw_conn.execute("DROP TABLE IF EXISTS jobs")
