"""SQLite storage for editor drafts."""

import os
import sqlite3
from dataclasses import dataclass
from pathlib import Path

from flowkit.store import GraphSnapshot
from flowkit.utils.identifiers import utc_timestamp

DEFAULT_DB_PATH = Path(__file__).parent / "data" / "drafts.db"
DRAFT_DB_PATH = Path(os.getenv("DRAFT_DB_PATH", str(DEFAULT_DB_PATH)))


@dataclass
class DraftRow:
    draft_id: str
    name: str
    snapshot: GraphSnapshot
    created_at: str
    updated_at: str
    flow_id: int | None = None  # stored flow the draft was opened from


def _connect() -> sqlite3.Connection:
    DRAFT_DB_PATH.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(DRAFT_DB_PATH)
    conn.row_factory = sqlite3.Row
    return conn


def _to_row(row: sqlite3.Row) -> DraftRow:
    return DraftRow(
        draft_id=row["draft_id"],
        name=row["name"],
        snapshot=GraphSnapshot.model_validate_json(row["snapshot_json"]),
        created_at=row["created_at"],
        updated_at=row["updated_at"],
        flow_id=row["flow_id"],
    )


def init_db() -> None:
    with _connect() as conn:
        conn.execute(
            """
            create table if not exists drafts (
                draft_id text primary key,
                name text not null,
                flow_id integer,
                snapshot_json text not null,
                created_at text not null,
                updated_at text not null
            )
            """
        )
        conn.commit()


def upsert_draft(
    draft_id: str,
    snapshot: GraphSnapshot,
    flow_id: int | None = None,
) -> DraftRow:
    """insert or update a draft; created_at and a known flow_id are kept on update."""
    now = utc_timestamp()
    with _connect() as conn:
        conn.execute(
            """
            insert into drafts (draft_id, name, flow_id, snapshot_json, created_at, updated_at)
            values (?, ?, ?, ?, ?, ?)
            on conflict(draft_id) do update set
                name = excluded.name,
                flow_id = coalesce(excluded.flow_id, drafts.flow_id),
                snapshot_json = excluded.snapshot_json,
                updated_at = excluded.updated_at
            """,
            (
                draft_id,
                snapshot.flow_name,
                flow_id,
                snapshot.model_dump_json(by_alias=True),
                now,
                now,
            ),
        )
        conn.commit()
    return get_draft(draft_id)


def get_draft(draft_id: str) -> DraftRow | None:
    with _connect() as conn:
        row = conn.execute(
            "select * from drafts where draft_id = ?",
            (draft_id,),
        ).fetchone()
    if not row:
        return None
    return _to_row(row)


def list_drafts() -> list[DraftRow]:
    with _connect() as conn:
        rows = conn.execute(
            "select * from drafts order by updated_at desc"
        ).fetchall()
    return [_to_row(row) for row in rows]


def delete_draft(draft_id: str) -> None:
    with _connect() as conn:
        conn.execute("delete from drafts where draft_id = ?", (draft_id,))
        conn.commit()
