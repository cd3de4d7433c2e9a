"""shared FastAPI dependencies; tests override these."""

from fastapi import Depends

from flowkit.sdk.client import FlowsClient
from flowkit.sdk.tracker import ExecutionTracker


def get_client() -> FlowsClient:
    return FlowsClient()


def get_tracker(client: FlowsClient = Depends(get_client)) -> ExecutionTracker:
    return ExecutionTracker(client)
