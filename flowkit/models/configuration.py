"""Models for the two representations produced on save.

The visual representation redraws the authored layout without loss. The
structural representation is what the execution engine consumes: stages,
conditions, branches, the initial node id and the end nodes.
"""

from enum import Enum
from typing import Literal

from pydantic import BaseModel, Field

from flowkit.models.graph import Channel, ContentMode, FlowEdge, FlowNode

# type tags the execution engine accepts on structural stages
VALID_STAGE_TYPES = ("email", "sms", "stage", "condition", "end")

FlowCheckCode = Literal["MISSING_NAME", "NO_STAGES", "INVALID_PLANTILLAS", "VALID"]


class VisualConfig(BaseModel):
    """nodes and edges exactly as authored."""

    nodes: list[FlowNode] = []
    edges: list[FlowEdge] = []


class StageEntry(BaseModel):
    id: str
    orden: int
    label: str
    tiempo_espera: int  # day offset of the stage
    tipo_mensaje: Channel
    type: str | None = None
    plantilla_mensaje: str | None = None
    plantilla_id: int | None = None
    plantilla_id_email: int | None = None
    plantilla_type: ContentMode | None = None
    oferta_infocom_id: int | None = None
    fecha_inicio_personalizada: str | None = None
    activo: bool = True


class ConditionEntry(BaseModel):
    id: str
    type: str | None = None
    label: str
    description: str = ""
    condition_type: str
    condition_label: str = ""
    yes_label: str = "Sí"
    no_label: str = "No"
    # evaluated by the engine when the condition is checked
    check_param: str
    check_operator: str = ">"
    check_value: str = "0"


class BranchEntry(BaseModel):
    edge_id: str
    source_node_id: str
    target_node_id: str
    source_handle: str | None = None
    target_handle: str | None = None
    condition_branch: Literal["yes", "no"] | None = None
    label: str | None = None


class EndNodeEntry(BaseModel):
    node_id: str
    label: str = "Fin"
    description: str | None = None


class StructureConfig(BaseModel):
    """execution-ready projection of the graph."""

    stages: list[StageEntry] = []
    conditions: list[ConditionEntry] = []
    branches: list[BranchEntry] = []
    initial_node: str | None = None
    end_nodes: list[EndNodeEntry] = []


class FlowConfiguration(BaseModel):
    """Everything produced from the graph on save.

    ``stages`` duplicates ``structure.stages`` for older consumers that
    expect a top-level stage array.
    """

    nombre: str
    descripcion: str = ""
    visual: VisualConfig
    structure: StructureConfig
    stages: list[StageEntry] = []


class FlowHeader(BaseModel):
    nombre: str
    descripcion: str = ""
    tipo_prospecto: int | str | None = None
    activo: bool = True
    canal_envio: Channel = "email"


class ProspectSelection(BaseModel):
    """prospects picked for the flow in the creation wizard."""

    total_seleccionados: int = 0
    ids_seleccionados: list[int] = []
    total_disponibles: int | None = None
    tipo_prospecto_id: int | str | None = None


class SaveRequest(BaseModel):
    """Body of the 'create flow' call."""

    flujo: FlowHeader
    origen_id: str | None = None
    origen_nombre: str | None = None
    prospectos: ProspectSelection = Field(default_factory=ProspectSelection)
    visual: VisualConfig
    structure: StructureConfig
    stages: list[StageEntry] = []
    metadata: dict = {}


class FlowCheck(BaseModel):
    """Result of the fast, first-failure-wins check."""

    is_valid: bool
    code: FlowCheckCode
    message: str | None = None


class ValidationResult(BaseModel):
    """Result of the exhaustive check: every violated rule."""

    is_valid: bool
    errors: list[str] = []


class SaveOutcome(str, Enum):
    """How a save attempt ended."""

    success = "success"
    success_with_warning = "success_with_warning"
    failure = "failure"


class SaveResult(BaseModel):
    outcome: SaveOutcome
    flow_id: int | None = None
    message: str | None = None
    warning: str | None = None
    errors: list[str] = []

    @property
    def saved(self) -> bool:
        return self.outcome != SaveOutcome.failure
