"""One flow editing session: graph store, validation and save."""

from __future__ import annotations

import logging

from flowkit.models.configuration import (
    FlowCheck,
    FlowConfiguration,
    ProspectSelection,
    SaveOutcome,
    SaveResult,
    ValidationResult,
)
from flowkit.models.flow_record import FlowRecord
from flowkit.models.graph import InitialNode
from flowkit.sdk.client import FlowsClient, FlowsClientError
from flowkit.serializer import (
    build_flow_configuration,
    build_save_request,
    is_configuration_valid,
    log_configuration,
    reconstruct_graph,
)
from flowkit.store import GraphStore
from flowkit.validation import check_flow, validate_flow_configuration

logger = logging.getLogger(__name__)


class FlowEditor:
    """Ties a GraphStore to the backend.

    Usage:
        editor = FlowEditor(client)
        editor.new()
        editor.store.set_flow_name("Bienvenida")
        stage_id = editor.store.add_stage_node()
        ...
        result = editor.save(origin_id="campaign-3", origin_name="Feria 2025")
    """

    def __init__(self, client: FlowsClient | None = None, store: GraphStore | None = None) -> None:
        self.client = client or FlowsClient()
        self.store = store or GraphStore()
        self.flow_id: int | None = None
        self.record: FlowRecord | None = None

    def new(self) -> None:
        self.store.reset_flow()
        self.flow_id = None
        self.record = None

    def load(self, flow_id: int) -> None:
        """Fetch a stored flow and rebuild its graph for editing."""
        record = self.client.get_flow(flow_id)
        self.store = GraphStore.from_snapshot(reconstruct_graph(record))
        self.flow_id = flow_id
        self.record = record
        logger.info("flow %s loaded for editing: %r", flow_id, record.nombre)

    def check(self) -> FlowCheck:
        return check_flow(self.store.flow_name, self.store.nodes)

    def build_configuration(self) -> FlowConfiguration:
        return build_flow_configuration(
            self.store.flow_name,
            self.store.flow_description,
            self.store.nodes,
            self.store.edges,
        )

    def validate(self) -> ValidationResult:
        return validate_flow_configuration(self.build_configuration())

    def _prepare(self) -> tuple[FlowConfiguration | None, SaveResult | None]:
        """Run every check; returns the configuration or a failed result."""
        check = self.check()
        if not check.is_valid:
            return None, SaveResult(
                outcome=SaveOutcome.failure, message=check.message, errors=[check.message]
            )

        config = self.build_configuration()
        validation = validate_flow_configuration(config)
        if not validation.is_valid:
            return None, SaveResult(
                outcome=SaveOutcome.failure,
                message="La configuración del flujo no es válida",
                errors=validation.errors,
            )

        if not is_configuration_valid(config):
            return None, SaveResult(
                outcome=SaveOutcome.failure,
                message="La configuración del flujo está incompleta",
                errors=["La configuración del flujo está incompleta"],
            )

        log_configuration(config)
        return config, None

    def _initial_node(self) -> InitialNode | None:
        for node in self.store.nodes:
            if isinstance(node, InitialNode):
                return node
        return None

    def save(
        self,
        origin_id: str | None = None,
        origin_name: str | None = None,
        selection: ProspectSelection | None = None,
        prospect_type: int | str | None = None,
    ) -> SaveResult:
        """Create the flow on the backend.

        The origin defaults to the one recorded on the initial node.
        """
        config, failure = self._prepare()
        if failure is not None:
            return failure

        initial = self._initial_node()
        if initial is not None:
            origin_id = origin_id or initial.data.origin_id
            origin_name = origin_name or initial.data.origin_name

        request = build_save_request(
            config,
            origin_id=origin_id,
            origin_name=origin_name,
            prospect_type=prospect_type,
            selection=selection,
        )
        result = self.client.create_flow(request)
        if result.flow_id is not None:
            self.flow_id = result.flow_id
        return result

    def save_changes(self, flow_id: int | None = None) -> SaveResult:
        """Store the edited graph of an existing flow."""
        flow_id = flow_id if flow_id is not None else self.flow_id
        if flow_id is None:
            raise ValueError("no flow to save changes to; use save() for new flows")

        config, failure = self._prepare()
        if failure is not None:
            return failure

        try:
            self.client.update_flow_configuration(
                flow_id,
                config.visual,
                config.structure,
                nombre=config.nombre,
                descripcion=config.descripcion,
            )
        except FlowsClientError as e:
            logger.error("saving flow %s failed: %s", flow_id, e)
            return SaveResult(
                outcome=SaveOutcome.failure,
                flow_id=flow_id,
                message=f"Error al guardar el flujo: {e}",
                errors=[str(e)],
            )

        logger.info("flow %s updated", flow_id)
        return SaveResult(outcome=SaveOutcome.success, flow_id=flow_id)
