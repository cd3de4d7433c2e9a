"""Analysis of flow executions for display."""

from flowkit.analysis.progress import (
    calculate_execution_progress,
    calculate_progress,
    should_show_progress,
    stage_state,
)
from flowkit.analysis.resolver import (
    ExecutionState,
    backend_progress,
    calculate_latest_progress,
    can_execute_flow,
    resolve_display_execution,
    resolve_execution_state,
)
from flowkit.analysis.overlay import (
    build_node_label_map,
    execution_path,
    format_time_until,
    node_label,
    overlay_execution,
)

__all__ = [
    # progress exports
    "calculate_execution_progress",
    "calculate_progress",
    "should_show_progress",
    "stage_state",
    # resolver exports
    "ExecutionState",
    "backend_progress",
    "calculate_latest_progress",
    "can_execute_flow",
    "resolve_display_execution",
    "resolve_execution_state",
    # overlay exports
    "build_node_label_map",
    "execution_path",
    "format_time_until",
    "node_label",
    "overlay_execution",
]
