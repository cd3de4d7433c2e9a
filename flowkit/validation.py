"""Checks that gate saving a flow.

Two validators with different jobs:

- ``check_flow`` runs the fast, ordered checks on the live graph and
  returns the first failure as a single message for editor feedback.
- ``validate_flow_configuration`` runs every structural rule on the
  serialized configuration and reports all violations. It is the gate in
  front of the execution engine, which cannot tolerate dangling references.

Neither raises; ``assert_configuration_valid`` is the fail-fast wrapper.
"""

from typing import Iterable

from flowkit.models.configuration import (
    VALID_STAGE_TYPES,
    FlowCheck,
    FlowConfiguration,
    ValidationResult,
)
from flowkit.models.graph import FlowNode, StageNode

_VALID = FlowCheck(is_valid=True, code="VALID")


class InvalidFlowConfiguration(ValueError):
    """Raised by assert_configuration_valid; carries every error found."""

    def __init__(self, errors: list[str]) -> None:
        self.errors = errors
        numbered = "\n".join(f"{i}. {error}" for i, error in enumerate(errors, start=1))
        super().__init__(f"Configuración de flujo inválida:\n{numbered}")


# fast checks


def check_flow_name(flow_name: str) -> FlowCheck:
    if not flow_name.strip():
        return FlowCheck(
            is_valid=False,
            code="MISSING_NAME",
            message="Por favor ingresa un nombre para el flujo",
        )
    return _VALID


def check_has_stages(nodes: Iterable[FlowNode]) -> FlowCheck:
    if not any(node.type == "stage" for node in nodes):
        return FlowCheck(
            is_valid=False,
            code="NO_STAGES",
            message="Debes agregar al menos una etapa",
        )
    return _VALID


def check_stage_content(nodes: Iterable[FlowNode]) -> FlowCheck:
    """Every stage needs usable content for its content mode."""
    for node in nodes:
        if not isinstance(node, StageNode):
            continue
        data = node.data

        if data.effective_content_mode == "inline":
            if not data.inline_content.strip():
                return FlowCheck(
                    is_valid=False,
                    code="INVALID_PLANTILLAS",
                    message=f'La etapa "{data.label}" no tiene plantilla configurada',
                )
        elif not (data.template_id or data.email_template_id):
            return FlowCheck(
                is_valid=False,
                code="INVALID_PLANTILLAS",
                message=f'La etapa "{data.label}" no tiene plantilla seleccionada',
            )

    return _VALID


def check_flow(flow_name: str, nodes: Iterable[FlowNode]) -> FlowCheck:
    """Run the fast checks in order; the first failure wins."""
    nodes = list(nodes)
    for result in (
        check_flow_name(flow_name),
        check_has_stages(nodes),
        check_stage_content(nodes),
    ):
        if not result.is_valid:
            return result
    return _VALID


# exhaustive checks


def _check_initial_node(config: FlowConfiguration) -> list[str]:
    initial_id = config.structure.initial_node
    if not initial_id:
        return ["El flujo debe tener un nodo inicial"]

    if not any(node.id == initial_id for node in config.visual.nodes):
        return [f'El nodo inicial "{initial_id}" no existe en la estructura visual']
    return []


def _check_initial_node_connections(config: FlowConfiguration) -> list[str]:
    initial_id = config.structure.initial_node
    has_connection = any(
        branch.source_node_id == initial_id for branch in config.structure.branches
    )
    if not has_connection:
        return ["El nodo inicial no tiene conexiones salientes"]
    return []


def _check_has_stages(config: FlowConfiguration) -> list[str]:
    if not config.structure.stages:
        return ["El flujo debe tener al menos una etapa"]
    return []


def _check_stage_types(config: FlowConfiguration) -> list[str]:
    errors: list[str] = []
    for stage in config.structure.stages:
        if not stage.type:
            errors.append(
                f'La etapa "{stage.label}" ({stage.id}) no tiene campo "type" definido'
            )
        elif stage.type not in VALID_STAGE_TYPES:
            errors.append(
                f'La etapa "{stage.label}" ({stage.id}) tiene tipo inválido: '
                f'"{stage.type}". Tipos válidos: {", ".join(VALID_STAGE_TYPES)}'
            )
    return errors


def _check_condition_types(config: FlowConfiguration) -> list[str]:
    errors: list[str] = []
    for condition in config.structure.conditions:
        if not condition.type:
            errors.append(
                f'La condición "{condition.label}" ({condition.id}) no tiene campo "type" definido'
            )
        elif condition.type != "condition":
            errors.append(
                f'La condición "{condition.label}" ({condition.id}) tiene tipo inválido: '
                f'"{condition.type}". Debe ser "condition"'
            )
    return errors


def _check_branch_integrity(config: FlowConfiguration) -> list[str]:
    # checked against the visual nodes, which include the initial and end nodes
    all_node_ids = {node.id for node in config.visual.nodes}

    errors: list[str] = []
    for branch in config.structure.branches:
        arrow = f'"{branch.source_node_id}" → "{branch.target_node_id}"'
        if branch.source_node_id not in all_node_ids:
            errors.append(f"Conexión desde nodo inexistente: {arrow}")
        if branch.target_node_id not in all_node_ids:
            errors.append(f"Conexión hacia nodo inexistente: {arrow}")
    return errors


def validate_flow_configuration(config: FlowConfiguration) -> ValidationResult:
    """Run every structural rule and collect all violations."""
    errors: list[str] = []
    errors.extend(_check_initial_node(config))
    errors.extend(_check_initial_node_connections(config))
    errors.extend(_check_has_stages(config))
    errors.extend(_check_stage_types(config))
    errors.extend(_check_condition_types(config))
    errors.extend(_check_branch_integrity(config))

    return ValidationResult(is_valid=not errors, errors=errors)


def assert_configuration_valid(config: FlowConfiguration) -> None:
    result = validate_flow_configuration(config)
    if not result.is_valid:
        raise InvalidFlowConfiguration(result.errors)
