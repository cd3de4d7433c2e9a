"""flowkit - graph model, validation and execution tracking for nurturing flows."""

from flowkit.models.graph import (
    ConditionalNode,
    EndNode,
    FlowEdge,
    FlowNode,
    InitialNode,
    Position,
    StageNode,
)
from flowkit.models.configuration import (
    FlowCheck,
    FlowConfiguration,
    SaveOutcome,
    SaveResult,
    ValidationResult,
)
from flowkit.models.execution import DisplayExecution, ExecutionProgress, FlowExecution
from flowkit.store import GraphStore
from flowkit.validation import (
    InvalidFlowConfiguration,
    assert_configuration_valid,
    check_flow,
    validate_flow_configuration,
)
from flowkit.serializer import build_flow_configuration, reconstruct_graph
from flowkit.analysis.progress import calculate_progress
from flowkit.analysis.resolver import can_execute_flow, resolve_display_execution
from flowkit.sdk.client import FlowsClient
from flowkit.sdk.editor import FlowEditor

__all__ = [
    # Graph
    "ConditionalNode",
    "EndNode",
    "FlowEdge",
    "FlowNode",
    "InitialNode",
    "Position",
    "StageNode",
    # Configuration and outcomes
    "FlowCheck",
    "FlowConfiguration",
    "SaveOutcome",
    "SaveResult",
    "ValidationResult",
    # Executions
    "DisplayExecution",
    "ExecutionProgress",
    "FlowExecution",
    # High-level APIs
    "GraphStore",
    "InvalidFlowConfiguration",
    "assert_configuration_valid",
    "check_flow",
    "validate_flow_configuration",
    "build_flow_configuration",
    "reconstruct_graph",
    "calculate_progress",
    "can_execute_flow",
    "resolve_display_execution",
    "FlowsClient",
    "FlowEditor",
]
