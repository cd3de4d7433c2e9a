"""Execution telemetry models.

An execution is one run of a flow against a set of prospects, tracked
stage by stage. The backend reports them with Spanish keys; these models
keep those keys on the wire.
"""

from typing import Literal

from pydantic import AliasChoices, BaseModel, Field, field_validator

ExecutionStatus = Literal[
    "pending", "in_progress", "paused", "completed", "failed", "cancelled"
]
StageStatus = Literal["pending", "executing", "completed", "failed"]

# states that make an execution "active"
ACTIVE_STATES = {"in_progress", "paused"}

# Spanish spellings some backend records still use
_EXECUTION_STATUS_ALIASES = {
    "pendiente": "pending",
    "en_progreso": "in_progress",
    "pausado": "paused",
    "completado": "completed",
    "fallido": "failed",
    "cancelado": "cancelled",
}
_STAGE_STATUS_ALIASES = {
    "pendiente": "pending",
    "ejecutando": "executing",
    "en_progreso": "executing",
    "in_progress": "executing",
    "completado": "completed",
    "fallido": "failed",
}


class StageExecution(BaseModel):
    """tracking record of a single node within an execution."""

    id: int | None = None
    node_id: str
    estado: StageStatus
    fecha_programada: str | None = None
    fecha_ejecucion: str | None = None
    error_mensaje: str | None = None
    envios: dict | None = None  # delivery counters reported for the stage

    @field_validator("estado", mode="before")
    @classmethod
    def normalize_estado(cls, value):
        if isinstance(value, str):
            return _STAGE_STATUS_ALIASES.get(value, value)
        return value


class TimelineEntry(BaseModel):
    node_id: str
    estado: str
    orden_ejecucion: int


class ExecutionProgress(BaseModel):
    """Stage-count progress of an execution.

    Accepts the backend's Spanish keys as well as the attribute names.
    """

    model_config = {"populate_by_name": True}

    percentage: int = Field(validation_alias=AliasChoices("percentage", "porcentaje"))
    completed: int = Field(validation_alias=AliasChoices("completed", "completadas"))
    total: int
    executing_count: int = Field(
        default=0, validation_alias=AliasChoices("executing_count", "en_ejecucion")
    )
    pending_count: int = Field(
        default=0, validation_alias=AliasChoices("pending_count", "pendientes")
    )
    failed_count: int = Field(
        default=0, validation_alias=AliasChoices("failed_count", "fallidas")
    )


class FlowExecution(BaseModel):
    """An execution record, either a list summary or the full detail.

    ``etapas`` is None when the record does not embed a stage list.
    """

    id: int
    flujo_id: int | None = None
    estado: ExecutionStatus
    fecha_inicio: str | None = None
    fecha_fin: str | None = None
    created_at: str | None = None
    etapas: list[StageExecution] | None = None
    nodo_actual: str | None = None
    proximo_nodo: str | None = None
    progreso: ExecutionProgress | None = None
    timeline: list[TimelineEntry] = []
    error_mensaje: str | None = None

    @field_validator("estado", mode="before")
    @classmethod
    def normalize_estado(cls, value):
        if isinstance(value, str):
            return _EXECUTION_STATUS_ALIASES.get(value, value)
        return value

    @property
    def is_active(self) -> bool:
        return self.estado in ACTIVE_STATES


class ActiveExecutionResponse(BaseModel):
    tiene_ejecucion_activa: bool = False
    ejecucion: FlowExecution | None = None


class DisplayExecution(BaseModel):
    """the execution chosen for display, with its progress."""

    id: int
    estado: ExecutionStatus
    progreso: ExecutionProgress
    source: Literal["active", "latest"]


class NodeOverlay(BaseModel):
    """Execution state of one visual node, merged for display."""

    node_id: str
    label: str
    execution_state: StageStatus | None = None
    execution_date: str | None = None
    error_message: str | None = None
    envios: dict | None = None
    stage_id: int | None = None
    is_current: bool = False
    is_next: bool = False
    in_path: bool = False
    next_execution_in: str = ""
