"""Stage-count progress of an execution.

Only stages in state ``completed`` count as done: a run with one of three
stages completed is at 33%, not 100%.
"""

import math
from typing import Sequence

from flowkit.models.execution import ExecutionProgress, FlowExecution, StageExecution


def _percentage(completed: int, total: int) -> int:
    """Nearest whole percent, halves rounded up."""
    if total == 0:
        return 0
    return math.floor(completed * 100 / total + 0.5)


def calculate_progress(stages: Sequence[StageExecution] | None) -> ExecutionProgress | None:
    """Count stage states into a progress record.

    Returns None when the stage list is missing or empty, never a
    zero-total record.
    """
    if not stages:
        return None

    counts = {"pending": 0, "executing": 0, "completed": 0, "failed": 0}
    for stage in stages:
        if stage.estado in counts:
            counts[stage.estado] += 1

    total = len(stages)
    return ExecutionProgress(
        percentage=_percentage(counts["completed"], total),
        completed=counts["completed"],
        total=total,
        executing_count=counts["executing"],
        pending_count=counts["pending"],
        failed_count=counts["failed"],
    )


def calculate_execution_progress(execution: FlowExecution | None) -> ExecutionProgress | None:
    if execution is None:
        return None
    return calculate_progress(execution.etapas)


def should_show_progress(progress: ExecutionProgress | None) -> bool:
    """A progress badge is worth showing once at least one stage completed."""
    return progress is not None and progress.completed > 0


def stage_state(execution: FlowExecution | None, node_id: str) -> StageExecution | None:
    """Tracking record of ``node_id`` within an execution, if it has one.

    When a node was tracked more than once the last record wins.
    """
    if execution is None or not execution.etapas:
        return None
    for stage in reversed(execution.etapas):
        if stage.node_id == node_id:
            return stage
    return None
