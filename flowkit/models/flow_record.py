"""Read model for a flow as the backend persists it.

A stored flow either carries its visual configuration (preferred, lossless)
or only the structural collections the graph can be rebuilt from. Older
records use numeric backend ids and Spanish keys; records saved by this
library use the string node ids of the structural representation. Both
spellings are accepted.
"""

from pydantic import AliasChoices, BaseModel, Field

from flowkit.models.configuration import VisualConfig
from flowkit.models.graph import OfferRef

StoredId = int | str


class StoredStage(BaseModel):
    id: StoredId
    dia_envio: int = Field(default=0, validation_alias=AliasChoices("dia_envio", "tiempo_espera"))
    tipo_mensaje: str = "email"
    plantilla_mensaje: str | None = None
    plantilla_id: int | None = None
    plantilla_id_email: int | None = None
    plantilla_type: str | None = None
    oferta_infocom_id: int | None = None
    oferta: OfferRef | None = None
    activo: bool = True
    label: str | None = None


class StoredCondition(BaseModel):
    id: StoredId
    tipo: str = Field(default="", validation_alias=AliasChoices("tipo", "condition_type"))
    descripcion: str | None = Field(
        default=None, validation_alias=AliasChoices("descripcion", "description")
    )
    label: str | None = None


class StoredBranch(BaseModel):
    id: StoredId | None = Field(default=None, validation_alias=AliasChoices("id", "edge_id"))
    nodo_origen_id: StoredId = Field(
        validation_alias=AliasChoices("nodo_origen_id", "source_node_id")
    )
    nodo_destino_id: StoredId = Field(
        validation_alias=AliasChoices("nodo_destino_id", "target_node_id")
    )
    condicion_id: StoredId | None = None
    etiqueta: str | None = Field(default=None, validation_alias=AliasChoices("etiqueta", "label"))
    source_handle: str | None = None
    target_handle: str | None = None


class StoredEndNode(BaseModel):
    id: StoredId = Field(validation_alias=AliasChoices("id", "node_id"))
    descripcion: str | None = Field(
        default=None, validation_alias=AliasChoices("descripcion", "description")
    )
    label: str | None = None


class StoredStructure(BaseModel):
    stages: list[StoredStage] = []
    conditions: list[StoredCondition] = []
    branches: list[StoredBranch] = []
    end_nodes: list[StoredEndNode] = []

    @property
    def is_empty(self) -> bool:
        return not (self.stages or self.conditions or self.branches or self.end_nodes)


class FlowRecord(BaseModel):
    """A persisted flow as returned by the backend."""

    id: int | None = None
    nombre: str = ""
    descripcion: str | None = None
    origen_id: str | None = None
    origen: str | None = None
    activo: bool = True
    canal_envio: str | None = None

    config_visual: VisualConfig | None = None
    config_structure: StoredStructure | None = None

    # legacy relation collections, used when config_structure is absent
    flujo_etapas: list[StoredStage] | None = None
    flujo_condiciones: list[StoredCondition] | None = None
    flujo_ramificaciones: list[StoredBranch] | None = None
    flujo_nodos_finales: list[StoredEndNode] | None = None

    def stored_structure(self) -> StoredStructure | None:
        """Structural collections from config_structure, else the legacy relations."""
        if self.config_structure is not None and not self.config_structure.is_empty:
            return self.config_structure
        legacy = StoredStructure(
            stages=self.flujo_etapas or [],
            conditions=self.flujo_condiciones or [],
            branches=self.flujo_ramificaciones or [],
            end_nodes=self.flujo_nodos_finales or [],
        )
        if legacy.is_empty:
            return None
        return legacy
