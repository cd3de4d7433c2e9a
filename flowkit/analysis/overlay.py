"""Merge execution telemetry onto the visual nodes of a flow."""

from datetime import datetime, timezone

from flowkit.models.configuration import VisualConfig
from flowkit.models.execution import FlowExecution, NodeOverlay, StageExecution, TimelineEntry
from flowkit.models.graph import FlowNode


def _parse_timestamp(ts: str) -> datetime:
    """Parse an ISO8601 timestamp; naive values are taken as UTC."""
    parsed = datetime.fromisoformat(ts.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def node_label(node: FlowNode) -> str:
    """Human label of a node: its data label, else its name, else its id."""
    label = getattr(node.data, "label", None)
    if isinstance(label, str) and label:
        return label

    name = (node.data.model_extra or {}).get("nombre")
    if isinstance(name, str) and name:
        return name

    # e.g. 'stage-abc123def' -> 'Etapa abc123de'
    if node.id.startswith("stage-"):
        return f"Etapa {node.id[6:14]}"
    return node.id


def build_node_label_map(visual: VisualConfig | None) -> dict[str, str]:
    if visual is None:
        return {}
    return {node.id: node_label(node) for node in visual.nodes}


def execution_path(execution: FlowExecution | None) -> list[TimelineEntry]:
    """Timeline entries in the order the engine ran them."""
    if execution is None:
        return []
    return sorted(execution.timeline, key=lambda entry: entry.orden_ejecucion)


def format_time_until(scheduled: str | None, now: datetime | None = None) -> str:
    """Compact countdown to a scheduled time: '2d 3h', '4h 5m' or '12m'.

    Empty when there is no schedule or it already passed.
    """
    if not scheduled:
        return ""
    now = now or datetime.now(timezone.utc)

    remaining = int((_parse_timestamp(scheduled) - now).total_seconds())
    if remaining <= 0:
        return ""

    days, remaining = divmod(remaining, 86400)
    hours, remaining = divmod(remaining, 3600)
    minutes = remaining // 60

    if days > 0:
        return f"{days}d {hours}h"
    if hours > 0:
        return f"{hours}h {minutes}m"
    return f"{minutes}m"


def overlay_execution(
    visual: VisualConfig,
    execution: FlowExecution | None,
    now: datetime | None = None,
) -> list[NodeOverlay]:
    """One overlay per visual node, in the visual node order.

    Nodes the execution never tracked only get their label and the
    current/next flags.
    """
    stages_by_node: dict[str, StageExecution] = {}
    current_node = None
    next_node = None
    path_nodes: set[str] = set()
    if execution is not None:
        for stage in execution.etapas or []:
            stages_by_node[stage.node_id] = stage
        current_node = execution.nodo_actual
        next_node = execution.proximo_nodo
        path_nodes = {entry.node_id for entry in execution.timeline}

    labels = build_node_label_map(visual)

    overlays: list[NodeOverlay] = []
    for node in visual.nodes:
        stage = stages_by_node.get(node.id)
        is_next = next_node == node.id

        next_execution_in = ""
        if is_next and stage is not None:
            next_execution_in = format_time_until(stage.fecha_programada, now)

        overlay = NodeOverlay(
            node_id=node.id,
            label=labels[node.id],
            is_current=current_node == node.id,
            is_next=is_next,
            in_path=node.id in path_nodes,
            next_execution_in=next_execution_in,
        )
        if stage is not None:
            overlay.execution_state = stage.estado
            overlay.execution_date = stage.fecha_ejecucion
            overlay.error_message = stage.error_mensaje
            overlay.envios = stage.envios
            overlay.stage_id = stage.id
        overlays.append(overlay)

    return overlays
