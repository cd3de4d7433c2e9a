"""Core data models for flowkit."""

from flowkit.models.graph import (
    ConditionalData,
    ConditionalNode,
    EndData,
    EndNode,
    FlowCondition,
    FlowEdge,
    FlowNode,
    InitialData,
    InitialNode,
    Position,
    StageData,
    StageNode,
    check_graph_invariants,
    make_conditional_node,
    make_end_node,
    make_initial_node,
    make_stage_node,
    parse_node,
)
from flowkit.models.configuration import (
    BranchEntry,
    ConditionEntry,
    EndNodeEntry,
    FlowCheck,
    FlowConfiguration,
    SaveOutcome,
    SaveRequest,
    SaveResult,
    StageEntry,
    StructureConfig,
    ValidationResult,
    VisualConfig,
)
from flowkit.models.flow_record import FlowRecord, StoredStructure
from flowkit.models.execution import (
    ActiveExecutionResponse,
    DisplayExecution,
    ExecutionProgress,
    FlowExecution,
    NodeOverlay,
    StageExecution,
    TimelineEntry,
)

__all__ = [
    # Graph
    "ConditionalData",
    "ConditionalNode",
    "EndData",
    "EndNode",
    "FlowCondition",
    "FlowEdge",
    "FlowNode",
    "InitialData",
    "InitialNode",
    "Position",
    "StageData",
    "StageNode",
    "check_graph_invariants",
    "make_conditional_node",
    "make_end_node",
    "make_initial_node",
    "make_stage_node",
    "parse_node",
    # Configuration
    "BranchEntry",
    "ConditionEntry",
    "EndNodeEntry",
    "FlowCheck",
    "FlowConfiguration",
    "SaveOutcome",
    "SaveRequest",
    "SaveResult",
    "StageEntry",
    "StructureConfig",
    "ValidationResult",
    "VisualConfig",
    # Persisted flows
    "FlowRecord",
    "StoredStructure",
    # Execution
    "ActiveExecutionResponse",
    "DisplayExecution",
    "ExecutionProgress",
    "FlowExecution",
    "NodeOverlay",
    "StageExecution",
    "TimelineEntry",
]
