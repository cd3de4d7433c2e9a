"""Fetch everything needed to resolve a flow's execution state."""

import logging

from flowkit.analysis.resolver import ExecutionState, resolve_execution_state
from flowkit.models.execution import FlowExecution
from flowkit.sdk.client import FlowsClient

logger = logging.getLogger(__name__)


class ExecutionTracker:
    """Combines the active and latest execution of a flow into one state.

    The latest execution's detail is only fetched when the flow has no
    active execution; an active one carries its own progress.
    """

    def __init__(self, client: FlowsClient | None = None) -> None:
        self.client = client or FlowsClient()

    def fetch_state(self, flow_id: int) -> ExecutionState:
        active_response = self.client.get_active_execution(flow_id)
        active = active_response.ejecucion if active_response.tiene_ejecucion_activa else None
        latest = self.client.get_latest_execution(flow_id)

        detail: FlowExecution | None = None
        if active is None and latest is not None:
            detail = self.client.get_execution_detail(flow_id, latest.id)

        state = resolve_execution_state(active, latest, detail)
        logger.debug(
            "flow %s: active=%s latest=%s display=%s can_execute=%s",
            flow_id,
            active.id if active else None,
            latest.id if latest else None,
            state.display_execution.id if state.display_execution else None,
            state.can_execute,
        )
        return state
