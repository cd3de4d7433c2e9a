"""ID generation and timestamp utilities."""

import uuid
from datetime import datetime, timezone

# default handle used when an edge does not name a port
CENTER_HANDLE = "center"


def _short_id() -> str:
    return uuid.uuid4().hex[:12]


def generate_node_id(prefix: str) -> str:
    """Generate a unique node ID like 'stage-3f9c0a1b2d4e'."""
    return f"{prefix}-{_short_id()}"


def generate_condition_id() -> str:
    """Generate a unique condition descriptor ID."""
    return f"cond-{_short_id()}"


def generate_draft_id() -> str:
    """Generate a unique editor draft ID (UUID4)."""
    return str(uuid.uuid4())


def yes_handle(node_id: str) -> str:
    """Output port for the 'yes' branch of a conditional node."""
    return f"{node_id}-yes"


def no_handle(node_id: str) -> str:
    """Output port for the 'no' branch of a conditional node."""
    return f"{node_id}-no"


def normalize_handle(handle: str | None) -> str:
    return handle or CENTER_HANDLE


def edge_key(
    source: str,
    source_handle: str | None,
    target: str,
    target_handle: str | None,
) -> tuple[str, str, str, str]:
    """Structural identity of an edge. Absent handles count as 'center'."""
    return (
        source,
        normalize_handle(source_handle),
        target,
        normalize_handle(target_handle),
    )


def edge_id(
    source: str,
    source_handle: str | None,
    target: str,
    target_handle: str | None,
) -> str:
    """Deterministic edge ID derived from its structural identity."""
    src, src_handle, tgt, tgt_handle = edge_key(source, source_handle, target, target_handle)
    return f"edge-{src}__{src_handle}-{tgt}__{tgt_handle}"


def utc_timestamp() -> str:
    """Generate an ISO8601 UTC timestamp."""
    return datetime.now(timezone.utc).isoformat()
