"""API routes exposing resolved execution state of stored flows."""

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from flowkit.analysis.overlay import overlay_execution
from flowkit.models.configuration import VisualConfig
from flowkit.models.execution import DisplayExecution, NodeOverlay
from flowkit.sdk.client import FlowNotFoundError, FlowsClient, FlowsClientError
from flowkit.sdk.tracker import ExecutionTracker
from flowkit.serializer import reconstruct_graph
from server.dependencies import get_client, get_tracker

router = APIRouter()


class ExecutionStateResponse(BaseModel):
    display_execution: DisplayExecution | None = None
    can_execute: bool


@router.get("/flows/{flow_id}/execution-state")
def get_execution_state(
    flow_id: int,
    tracker: ExecutionTracker = Depends(get_tracker),
) -> ExecutionStateResponse:
    """execution to display for a flow and whether it can run again."""
    try:
        state = tracker.fetch_state(flow_id)
    except FlowNotFoundError:
        raise HTTPException(status_code=404, detail=f"Flow not found: {flow_id}")
    except FlowsClientError as e:
        raise HTTPException(status_code=502, detail=str(e))
    return ExecutionStateResponse(
        display_execution=state.display_execution,
        can_execute=state.can_execute,
    )


@router.get("/flows/{flow_id}/executions/{execution_id}/overlay")
def get_execution_overlay(
    flow_id: int,
    execution_id: int,
    client: FlowsClient = Depends(get_client),
) -> list[NodeOverlay]:
    """per-node execution state of a run, laid over the flow's graph."""
    try:
        record = client.get_flow(flow_id)
        detail = client.get_execution_detail(flow_id, execution_id)
    except FlowNotFoundError:
        raise HTTPException(
            status_code=404,
            detail=f"Flow or execution not found: {flow_id}/{execution_id}",
        )
    except FlowsClientError as e:
        raise HTTPException(status_code=502, detail=str(e))

    graph = reconstruct_graph(record)
    visual = VisualConfig(nodes=graph.nodes, edges=graph.edges)
    return overlay_execution(visual, detail)
