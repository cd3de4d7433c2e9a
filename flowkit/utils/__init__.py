"""Utility functions for flowkit."""

from flowkit.utils.identifiers import (
    CENTER_HANDLE,
    edge_id,
    edge_key,
    generate_condition_id,
    generate_draft_id,
    generate_node_id,
    no_handle,
    normalize_handle,
    utc_timestamp,
    yes_handle,
)

__all__ = [
    "CENTER_HANDLE",
    "edge_id",
    "edge_key",
    "generate_condition_id",
    "generate_draft_id",
    "generate_node_id",
    "no_handle",
    "normalize_handle",
    "utc_timestamp",
    "yes_handle",
]
