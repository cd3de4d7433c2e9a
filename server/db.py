"""database initialization helpers."""

from server.draft_db import init_db as init_draft_db


def init_all() -> None:
    """initialize all sqlite tables."""
    init_draft_db()
