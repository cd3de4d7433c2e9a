"""Data model for the authored flow graph.

A flow is a directed graph of one initial node, timed messaging stages,
yes/no conditional branch points and end nodes. Positions are layout only;
nothing semantic ever reads them.
"""

from typing import Annotated, Iterable, Literal

from pydantic import BaseModel, Field, TypeAdapter, model_validator

from flowkit.utils.identifiers import (
    edge_id,
    edge_key,
    generate_condition_id,
    generate_node_id,
)

NodeVariant = Literal["initial", "stage", "conditional", "end"]
Channel = Literal["email", "sms", "both"]
ContentMode = Literal["inline", "reference"]
ConditionType = Literal[
    "email_opened", "link_clicked", "email_bounced", "unsubscribed", "custom"
]
CheckOperator = Literal[">", ">=", "==", "!=", "<", "<=", "in", "not_in"]

NODE_VARIANTS: tuple[str, ...] = ("initial", "stage", "conditional", "end")

# metric each condition type is evaluated against by the execution engine
DEFAULT_CHECK_PARAMS: dict[str, str] = {
    "email_opened": "Views",
    "link_clicked": "Clicks",
    "email_bounced": "Bounces",
    "unsubscribed": "Unsubscribes",
}


class Position(BaseModel):
    """canvas coordinates, used only to redraw the layout."""

    x: float = 0.0
    y: float = 0.0


class OfferRef(BaseModel):
    id: int
    titulo: str


class InitialData(BaseModel):
    """the prospect origin the flow starts from."""

    model_config = {"extra": "allow"}

    label: str = "Inicio - Selecciona prospectos"
    origin_id: str | None = None
    origin_name: str | None = None
    prospect_count: int | None = Field(default=None, ge=0)


class StageData(BaseModel):
    """A timed messaging step.

    Content is either inline text or a reference to a stored template;
    ``content_mode`` decides which one is in effect (unset means inline).
    """

    model_config = {"extra": "allow"}

    label: str = "Nueva Etapa"
    day_offset: int = Field(default=1, ge=0)  # days after flow start
    channel: Channel = "email"
    content_mode: ContentMode | None = None
    inline_content: str = ""
    template_id: int | None = None
    email_template_id: int | None = None  # email side when channel is "both"
    offer_id: int | None = None
    offer: OfferRef | None = None
    active: bool = True
    custom_start_date: str | None = None

    @property
    def effective_content_mode(self) -> ContentMode:
        return self.content_mode or "inline"


class FlowCondition(BaseModel):
    """runtime condition evaluated at a conditional node."""

    id: str = Field(default_factory=generate_condition_id)
    type: ConditionType = "email_opened"
    label: str = "Email abierto"
    value: str | None = None
    check_param: str | None = None
    check_operator: CheckOperator | None = None
    check_value: str | None = None


class ConditionalData(BaseModel):
    model_config = {"extra": "allow"}

    label: str = "Nueva Condición"
    description: str = ""
    condition: FlowCondition = Field(default_factory=FlowCondition)
    yes_label: str = "Sí"
    no_label: str = "No"


class EndData(BaseModel):
    model_config = {"extra": "allow"}

    label: str = "Fin"
    description: str | None = None


class InitialNode(BaseModel):
    id: str
    type: Literal["initial"] = "initial"
    position: Position = Field(default_factory=Position)
    data: InitialData = Field(default_factory=InitialData)


class StageNode(BaseModel):
    id: str
    type: Literal["stage"] = "stage"
    position: Position = Field(default_factory=Position)
    data: StageData = Field(default_factory=StageData)


class ConditionalNode(BaseModel):
    id: str
    type: Literal["conditional"] = "conditional"
    position: Position = Field(default_factory=Position)
    data: ConditionalData = Field(default_factory=ConditionalData)


class EndNode(BaseModel):
    id: str
    type: Literal["end"] = "end"
    position: Position = Field(default_factory=Position)
    data: EndData = Field(default_factory=EndData)


FlowNode = Annotated[
    InitialNode | StageNode | ConditionalNode | EndNode,
    Field(discriminator="type"),
]

flow_node_adapter: TypeAdapter[FlowNode] = TypeAdapter(FlowNode)


class FlowEdge(BaseModel):
    """A directed connection between two nodes.

    The id is derived from (source, source_handle, target, target_handle)
    when not given, so structurally identical edges share an id.
    """

    model_config = {"populate_by_name": True}

    id: str = ""
    source: str
    target: str
    source_handle: str | None = Field(default=None, alias="sourceHandle")
    target_handle: str | None = Field(default=None, alias="targetHandle")
    label: str | None = None
    type: str = "animated"  # edge renderer used by the canvas

    @model_validator(mode="after")
    def derive_id(self) -> "FlowEdge":
        if not self.id:
            self.id = edge_id(
                self.source, self.source_handle, self.target, self.target_handle
            )
        return self

    @property
    def key(self) -> tuple[str, str, str, str]:
        return edge_key(self.source, self.source_handle, self.target, self.target_handle)


def parse_node(raw: dict) -> FlowNode:
    """Validate a raw node dict into its variant model."""
    return flow_node_adapter.validate_python(raw)


def make_initial_node(
    node_id: str = "initial-1",
    position: Position | None = None,
    **data,
) -> InitialNode:
    return InitialNode(
        id=node_id,
        position=position or Position(x=400, y=50),
        data=InitialData(**data),
    )


def make_stage_node(
    node_id: str | None = None,
    position: Position | None = None,
    **data,
) -> StageNode:
    """New stage: day offset 1, email channel, empty inline content, active."""
    return StageNode(
        id=node_id or generate_node_id("stage"),
        position=position or Position(x=400, y=250),
        data=StageData(**data),
    )


def make_conditional_node(
    node_id: str | None = None,
    position: Position | None = None,
    **data,
) -> ConditionalNode:
    return ConditionalNode(
        id=node_id or generate_node_id("conditional"),
        position=position or Position(x=600, y=250),
        data=ConditionalData(**data),
    )


def make_end_node(
    node_id: str | None = None,
    position: Position | None = None,
    **data,
) -> EndNode:
    return EndNode(
        id=node_id or generate_node_id("end"),
        position=position or Position(x=400, y=800),
        data=EndData(**data),
    )


def check_graph_invariants(
    nodes: Iterable[FlowNode],
    edges: Iterable[FlowEdge],
) -> list[str]:
    """Return a description of every violated graph invariant (empty if none)."""
    violations: list[str] = []

    node_ids: set[str] = set()
    for node in nodes:
        if node.id in node_ids:
            violations.append(f"duplicate node id: {node.id}")
        node_ids.add(node.id)

    seen_keys: set[tuple[str, str, str, str]] = set()
    seen_ids: set[str] = set()
    for edge in edges:
        if edge.id in seen_ids:
            violations.append(f"duplicate edge id: {edge.id}")
        seen_ids.add(edge.id)
        if edge.source not in node_ids:
            violations.append(f"edge {edge.id} has unknown source: {edge.source}")
        if edge.target not in node_ids:
            violations.append(f"edge {edge.id} has unknown target: {edge.target}")
        if edge.key in seen_keys:
            violations.append(f"duplicate edge: {edge.id}")
        seen_keys.add(edge.key)

    return violations
