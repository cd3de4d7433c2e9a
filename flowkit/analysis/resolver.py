"""Decide which execution of a flow to display, and whether it can run again.

Two independently fetched sources are combined: the flow's active
execution (in progress or paused, as reported by the server) and its
latest execution in any state, optionally with a full detail fetch.

Priority for the displayed progress, first match wins:
1. the active execution's own progress object, when it reports stages,
2. progress calculated from the latest execution's detail,
3. progress calculated from the stages embedded in the latest record,
4. nothing.
"""

import logging
from dataclasses import dataclass

from flowkit.analysis.progress import calculate_progress
from flowkit.models.execution import DisplayExecution, ExecutionProgress, FlowExecution

logger = logging.getLogger(__name__)


@dataclass
class ExecutionState:
    """What a flow list row needs: the execution to show and the run guard."""

    display_execution: DisplayExecution | None
    can_execute: bool


def backend_progress(active: FlowExecution | None) -> ExecutionProgress | None:
    """The active execution's server-computed progress, if it is usable.

    A reported total of zero is treated as missing since a flow always has
    at least one stage.
    """
    if active is None or not active.is_active or active.progreso is None:
        return None
    if active.progreso.total == 0:
        logger.warning(
            "execution %s reported progress with total=0, falling back to calculation",
            active.id,
        )
        return None
    return active.progreso


def calculate_latest_progress(
    latest: FlowExecution | None,
    detail: FlowExecution | None = None,
) -> ExecutionProgress | None:
    if detail is not None:
        return calculate_progress(detail.etapas)
    if latest is not None and latest.etapas:
        return calculate_progress(latest.etapas)
    return None


def resolve_display_execution(
    active: FlowExecution | None,
    latest: FlowExecution | None,
    detail: FlowExecution | None = None,
) -> DisplayExecution | None:
    """Pick the execution to surface along with its progress.

    A latest execution is only surfaced once one of its stages completed;
    a not-yet-started run would otherwise show a misleading 0%.
    """
    progress = backend_progress(active)
    if progress is not None:
        return DisplayExecution(
            id=active.id,
            estado=active.estado,
            progreso=progress,
            source="active",
        )

    progress = calculate_latest_progress(latest, detail)
    if latest is not None and progress is not None and progress.completed > 0:
        return DisplayExecution(
            id=latest.id,
            estado=latest.estado,
            progreso=progress,
            source="latest",
        )
    return None


def can_execute_flow(active: FlowExecution | None, latest: FlowExecution | None) -> bool:
    """Whether a new execution of the flow may be started now."""
    if active is not None and active.is_active:
        logger.debug("cannot execute: execution %s is active", active.id)
        return False

    if latest is None:
        return True

    if latest.estado == "in_progress":
        logger.debug("cannot execute: latest execution %s is in progress", latest.id)
        return False

    # the backend can mark a run completed while a node is still scheduled
    if latest.proximo_nodo:
        logger.debug("cannot execute: node %s is scheduled", latest.proximo_nodo)
        return False

    if latest.etapas and any(stage.estado in ("pending", "executing") for stage in latest.etapas):
        logger.debug("cannot execute: latest execution %s has unfinished stages", latest.id)
        return False

    return True


def resolve_execution_state(
    active: FlowExecution | None,
    latest: FlowExecution | None,
    detail: FlowExecution | None = None,
) -> ExecutionState:
    return ExecutionState(
        display_execution=resolve_display_execution(active, latest, detail),
        can_execute=can_execute_flow(active, latest),
    )
