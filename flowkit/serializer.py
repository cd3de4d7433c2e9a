"""Turn the live graph into what gets persisted, and back.

On save the graph is projected twice:

- the visual representation (nodes and edges verbatim) so the editor can
  redraw the exact layout,
- the structural representation the execution engine runs: stages,
  conditions, branches, the initial node id and the end nodes.

On edit, a stored flow is turned back into a graph: verbatim from its
visual representation when it has one, otherwise synthesized from its
structural collections.
"""

from __future__ import annotations

import logging
from typing import Iterable, get_args

from flowkit.models.configuration import (
    BranchEntry,
    ConditionEntry,
    EndNodeEntry,
    FlowConfiguration,
    FlowHeader,
    ProspectSelection,
    SaveRequest,
    StageEntry,
    StructureConfig,
    VisualConfig,
)
from flowkit.models.flow_record import (
    FlowRecord,
    StoredBranch,
    StoredCondition,
    StoredEndNode,
    StoredStage,
)
from flowkit.models.graph import (
    DEFAULT_CHECK_PARAMS,
    Channel,
    ConditionalNode,
    ConditionType,
    ContentMode,
    EndNode,
    FlowCondition,
    FlowEdge,
    FlowNode,
    InitialNode,
    Position,
    StageNode,
    make_conditional_node,
    make_end_node,
    make_initial_node,
    make_stage_node,
)
from flowkit.store import GraphSnapshot
from flowkit.utils.identifiers import utc_timestamp

logger = logging.getLogger(__name__)

_CONDITION_TYPES = set(get_args(ConditionType))
_CONTENT_MODES = set(get_args(ContentMode))

# legacy channel spelling used by older records
_CHANNEL_ALIASES = {"email": "email", "sms": "sms", "both": "both", "ambos": "both"}


def stage_type_tag(channel: Channel) -> str:
    """Type tag for a structural stage.

    Single-channel stages are tagged with their channel; "both" has no
    channel tag in the accepted set and falls back to the generic "stage".
    """
    if channel in ("email", "sms"):
        return channel
    return "stage"


# graph -> structural representation


def map_stages(nodes: Iterable[FlowNode]) -> list[StageEntry]:
    stages = [node for node in nodes if isinstance(node, StageNode)]
    entries: list[StageEntry] = []
    for index, node in enumerate(stages):
        data = node.data
        offer_id = data.offer_id
        if offer_id is None and data.offer is not None:
            offer_id = data.offer.id

        entries.append(StageEntry(
            id=node.id,
            orden=index,
            label=data.label or f"Stage {index + 1}",
            tiempo_espera=data.day_offset,
            tipo_mensaje=data.channel,
            type=stage_type_tag(data.channel),
            plantilla_mensaje=data.inline_content or None,
            plantilla_id=data.template_id,
            plantilla_id_email=data.email_template_id,
            plantilla_type=data.content_mode,
            oferta_infocom_id=offer_id,
            fecha_inicio_personalizada=data.custom_start_date,
            activo=data.active,
        ))
    return entries


def map_conditions(nodes: Iterable[FlowNode]) -> list[ConditionEntry]:
    entries: list[ConditionEntry] = []
    for node in nodes:
        if not isinstance(node, ConditionalNode):
            continue
        data = node.data
        condition = data.condition

        entries.append(ConditionEntry(
            id=node.id,
            type="condition",
            label=data.label or "Condition",
            description=data.description or "",
            condition_type=condition.type,
            condition_label=condition.label or "",
            yes_label=data.yes_label or "Sí",
            no_label=data.no_label or "No",
            check_param=condition.check_param or DEFAULT_CHECK_PARAMS.get(condition.type, "Views"),
            check_operator=condition.check_operator or ">",
            check_value=condition.check_value if condition.check_value is not None else "0",
        ))
    return entries


def map_branches(edges: Iterable[FlowEdge], nodes: Iterable[FlowNode]) -> list[BranchEntry]:
    """One branch per edge; conditional outputs get a yes/no label from the handle."""
    node_types = {node.id: node.type for node in nodes}

    branches: list[BranchEntry] = []
    for edge in edges:
        condition_branch = None
        label = edge.label
        if node_types.get(edge.source) == "conditional":
            handle = edge.source_handle or ""
            if handle.endswith("-yes"):
                condition_branch, label = "yes", "Sí"
            elif handle.endswith("-no"):
                condition_branch, label = "no", "No"

        branches.append(BranchEntry(
            edge_id=edge.id,
            source_node_id=edge.source,
            target_node_id=edge.target,
            source_handle=edge.source_handle,
            target_handle=edge.target_handle,
            condition_branch=condition_branch,
            label=label,
        ))
    return branches


def map_end_nodes(nodes: Iterable[FlowNode]) -> list[EndNodeEntry]:
    return [
        EndNodeEntry(
            node_id=node.id,
            label=node.data.label or "Fin",
            description=node.data.description or None,
        )
        for node in nodes
        if isinstance(node, EndNode)
    ]


def get_initial_node(nodes: Iterable[FlowNode]) -> InitialNode | None:
    for node in nodes:
        if isinstance(node, InitialNode):
            return node
    return None


def build_visual_config(nodes: Iterable[FlowNode], edges: Iterable[FlowEdge]) -> VisualConfig:
    return VisualConfig(
        nodes=[node.model_copy(deep=True) for node in nodes],
        edges=[edge.model_copy(deep=True) for edge in edges],
    )


def build_structure_config(nodes: Iterable[FlowNode], edges: Iterable[FlowEdge]) -> StructureConfig:
    nodes = list(nodes)
    initial = get_initial_node(nodes)
    return StructureConfig(
        stages=map_stages(nodes),
        conditions=map_conditions(nodes),
        branches=map_branches(edges, nodes),
        initial_node=initial.id if initial else None,
        end_nodes=map_end_nodes(nodes),
    )


def build_flow_configuration(
    flow_name: str,
    flow_description: str,
    nodes: Iterable[FlowNode],
    edges: Iterable[FlowEdge],
) -> FlowConfiguration:
    nodes = list(nodes)
    edges = list(edges)
    structure = build_structure_config(nodes, edges)
    return FlowConfiguration(
        nombre=flow_name,
        descripcion=flow_description,
        visual=build_visual_config(nodes, edges),
        structure=structure,
        stages=structure.stages,
    )


def is_configuration_valid(config: FlowConfiguration) -> bool:
    """Last cheap guard before handing a configuration off."""
    return (
        len(config.nombre.strip()) > 0
        and len(config.visual.nodes) > 0
        and len(config.structure.stages) > 0
    )


def log_configuration(config: FlowConfiguration) -> None:
    logger.debug(
        "flow configuration %r: stages=%d conditions=%d branches=%d "
        "visual_nodes=%d visual_edges=%d initial_node=%s end_nodes=%s",
        config.nombre,
        len(config.structure.stages),
        len(config.structure.conditions),
        len(config.structure.branches),
        len(config.visual.nodes),
        len(config.visual.edges),
        config.structure.initial_node,
        [end.node_id for end in config.structure.end_nodes],
    )


def infer_flow_channel(stages: Iterable[StageEntry | StoredStage]) -> Channel:
    """Channel of the whole flow from the mix of its stage channels."""
    channels: set[str] = set()
    for stage in stages:
        channel = _CHANNEL_ALIASES.get((stage.tipo_mensaje or "").lower())
        if channel == "both":
            channels.update(("email", "sms"))
        elif channel:
            channels.add(channel)

    if channels == {"sms"}:
        return "sms"
    if channels == {"email", "sms"}:
        return "both"
    return "email"


def build_save_request(
    config: FlowConfiguration,
    origin_id: str | None = None,
    origin_name: str | None = None,
    prospect_type: int | str | None = None,
    selection: ProspectSelection | None = None,
    metadata: dict | None = None,
) -> SaveRequest:
    """Body of the 'create flow' call.

    Carries the top-level ``stages`` array next to ``structure`` for
    consumers that predate the structural representation.
    """
    return SaveRequest(
        flujo=FlowHeader(
            nombre=config.nombre,
            descripcion=config.descripcion,
            tipo_prospecto=prospect_type,
            activo=True,
            canal_envio=infer_flow_channel(config.structure.stages),
        ),
        origen_id=origin_id,
        origen_nombre=origin_name,
        prospectos=selection or ProspectSelection(tipo_prospecto_id=prospect_type),
        visual=config.visual,
        structure=config.structure,
        stages=config.stages,
        metadata=metadata if metadata is not None else {"fecha_creacion": utc_timestamp()},
    )


# stored flow -> graph


def _visual_node_id(prefix: str, stored_id: int | str) -> str:
    # ids saved by this library are already node ids
    if isinstance(stored_id, str):
        return stored_id
    return f"{prefix}-{stored_id}"


def _stage_node_from_stored(stage: StoredStage, index: int, y: float) -> StageNode:
    return make_stage_node(
        node_id=_visual_node_id("stage", stage.id),
        position=Position(x=400, y=y),
        label=stage.label or f"Etapa {index + 1}",
        day_offset=max(stage.dia_envio, 0),
        channel=_CHANNEL_ALIASES.get(stage.tipo_mensaje.lower(), "email"),
        content_mode=stage.plantilla_type if stage.plantilla_type in _CONTENT_MODES else None,
        inline_content=stage.plantilla_mensaje or "",
        template_id=stage.plantilla_id,
        email_template_id=stage.plantilla_id_email,
        offer_id=stage.oferta_infocom_id,
        offer=stage.oferta,
        active=stage.activo,
    )


def _conditional_node_from_stored(condition: StoredCondition, index: int, y: float) -> ConditionalNode:
    condition_type = condition.tipo if condition.tipo in _CONDITION_TYPES else "custom"
    return make_conditional_node(
        node_id=_visual_node_id("conditional", condition.id),
        position=Position(x=600, y=y),
        label=condition.label or condition.descripcion or f"Condición {index + 1}",
        description=condition.descripcion or "",
        condition=FlowCondition(
            id=str(condition.id),
            type=condition_type,
            label=condition.tipo,
        ),
    )


def _end_node_from_stored(end_node: StoredEndNode, index: int, y: float) -> EndNode:
    return make_end_node(
        node_id=_visual_node_id("end", end_node.id),
        position=Position(x=400, y=y),
        label=end_node.label or end_node.descripcion or f"Fin {index + 1}",
        description=end_node.descripcion,
    )


def _edges_from_stored(
    branches: Iterable[StoredBranch],
    id_table: dict[str, str],
) -> list[FlowEdge]:
    edges: list[FlowEdge] = []
    seen: set[tuple[str, str, str, str]] = set()
    for branch in branches:
        source = id_table.get(str(branch.nodo_origen_id))
        target = id_table.get(str(branch.nodo_destino_id))
        if source is None or target is None:
            logger.warning(
                "skipping branch %s: unresolved endpoint %s -> %s",
                branch.id, branch.nodo_origen_id, branch.nodo_destino_id,
            )
            continue

        edge = FlowEdge(
            source=source,
            target=target,
            source_handle=branch.source_handle,
            target_handle=branch.target_handle,
            label=branch.etiqueta,
        )
        if edge.key in seen:
            continue
        seen.add(edge.key)
        edges.append(edge)
    return edges


def reconstruct_graph(flow: FlowRecord) -> GraphSnapshot:
    """Rebuild the editor graph for a stored flow.

    Prefers the stored visual representation. Otherwise one node is
    synthesized per stored stage, condition and end node at fixed spacing,
    and stored branches are re-pointed through a table from stored ids to
    the generated node ids. A flow with neither yields an empty graph.
    """
    name = flow.nombre
    description = flow.descripcion or ""

    if flow.config_visual is not None and flow.config_visual.nodes:
        logger.info("loading flow %s from its visual configuration", flow.id)
        return GraphSnapshot(
            nodes=flow.config_visual.nodes,
            edges=flow.config_visual.edges,
            flow_name=name,
            flow_description=description,
        )

    structure = flow.stored_structure()
    if structure is None:
        logger.info("flow %s has no stored configuration, starting empty", flow.id)
        return GraphSnapshot(flow_name=name, flow_description=description)

    logger.info("rebuilding flow %s from its stored structure", flow.id)
    id_table: dict[str, str] = {}
    nodes: list[FlowNode] = []

    def register(stored_id: int | str, node: FlowNode) -> None:
        key = str(stored_id)
        if key in id_table:
            logger.debug("stored id %s now maps to %s (was %s)", key, node.id, id_table[key])
        id_table[key] = node.id
        nodes.append(node)

    initial = make_initial_node(
        "initial-1",
        Position(x=400, y=50),
        label=f"Inicio - {flow.origen or 'Flujo'}",
        origin_id=flow.origen_id,
        origin_name=flow.origen,
    )
    register(initial.id, initial)

    for index, stage in enumerate(structure.stages):
        register(stage.id, _stage_node_from_stored(stage, index, 250 + index * 200))

    for index, condition in enumerate(structure.conditions):
        register(condition.id, _conditional_node_from_stored(condition, index, 250 + index * 150))

    end_top = 250 + len(structure.stages) * 200
    for index, end_node in enumerate(structure.end_nodes):
        register(end_node.id, _end_node_from_stored(end_node, index, end_top + index * 150))

    edges = _edges_from_stored(structure.branches, id_table)
    logger.info("rebuilt flow %s: nodes=%d edges=%d", flow.id, len(nodes), len(edges))

    return GraphSnapshot(
        nodes=nodes,
        edges=edges,
        flow_name=name,
        flow_description=description,
    )
