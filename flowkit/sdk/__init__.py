"""SDK for talking to the flows backend."""

from flowkit.sdk.client import FlowNotFoundError, FlowsClient, FlowsClientError
from flowkit.sdk.tracker import ExecutionTracker
from flowkit.sdk.polling import ExecutionPoller
from flowkit.sdk.editor import FlowEditor

__all__ = [
    # client exports
    "FlowNotFoundError",
    "FlowsClient",
    "FlowsClientError",
    # execution exports
    "ExecutionPoller",
    "ExecutionTracker",
    # editing exports
    "FlowEditor",
]
