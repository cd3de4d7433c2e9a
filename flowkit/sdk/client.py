"""HTTP client for the flows backend.

Covers what the editor and the execution viewer need:

    client = FlowsClient()
    flow = client.get_flow(42)
    result = client.create_flow(save_request)
    detail = client.get_execution_detail(42, 7)
    client.pause_execution(42, 7, reason="campaign on hold")

Configuration comes from the environment when not passed explicitly:
FLOWS_API_URL, FLOWS_API_TIMEOUT and FLOWS_API_TOKEN.
"""

from __future__ import annotations

import logging
import os
import time
from typing import Any, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from flowkit.models.configuration import (
    SaveOutcome,
    SaveRequest,
    SaveResult,
    StructureConfig,
    VisualConfig,
)
from flowkit.models.execution import ActiveExecutionResponse, FlowExecution
from flowkit.models.flow_record import FlowRecord

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "http://localhost:8000/api"
DEFAULT_TIMEOUT = 10.0

# execution detail is considered fresh for this long
DETAIL_TTL_SECONDS = 1.0

ModelT = TypeVar("ModelT", bound=BaseModel)


class FlowsClientError(Exception):
    """Exception raised when a call to the flows backend fails."""
    pass


class FlowNotFoundError(FlowsClientError):
    """The requested flow or execution does not exist."""
    pass


class FlowsClient:
    """Thin typed wrapper over the flows REST API.

    Execution detail is cached briefly so a polling viewer and a list row
    asking for the same run do not both hit the network; pause, resume and
    cancel drop the cached entry for their execution.
    """

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        token: str | None = None,
        transport: httpx.BaseTransport | None = None,
        detail_ttl: float = DETAIL_TTL_SECONDS,
    ) -> None:
        """
        Args:
            base_url: Base URL of the flows API, including the /api prefix
            timeout: HTTP request timeout in seconds
            token: Bearer token sent with every request
            transport: Custom httpx transport (tests pass a MockTransport)
            detail_ttl: Seconds an execution detail stays cached
        """
        base_url = base_url or os.getenv("FLOWS_API_URL", DEFAULT_API_URL)
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout if timeout is not None else float(
            os.getenv("FLOWS_API_TIMEOUT", DEFAULT_TIMEOUT)
        )
        self.token = token if token is not None else os.getenv("FLOWS_API_TOKEN")
        self.detail_ttl = detail_ttl
        self._transport = transport
        # key is (flow id, execution id); value is (fetched at, detail)
        self._detail_cache: dict[tuple[int, int], tuple[float, FlowExecution]] = {}

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        url = f"{self.base_url}{path}"
        try:
            with httpx.Client(
                timeout=self.timeout,
                headers=self._headers(),
                transport=self._transport,
            ) as client:
                response = client.request(method, url, **kwargs)

                if response.status_code == 404:
                    raise FlowNotFoundError(f"Not found: {method} {path}")

                response.raise_for_status()
                if not response.content:
                    return None
                return response.json()

        except httpx.HTTPStatusError as e:
            raise FlowsClientError(
                f"{method} {path} failed with status {e.response.status_code}"
            ) from e
        except httpx.RequestError as e:
            raise FlowsClientError(
                f"Failed to connect to server at {self.base_url}: {e}"
            ) from e

    @staticmethod
    def _unwrap(payload: Any) -> Any:
        # the backend wraps most bodies as {"data": ..., "mensaje": ...}
        if isinstance(payload, dict) and "data" in payload:
            return payload["data"]
        return payload

    @staticmethod
    def _parse(model: type[ModelT], data: Any, path: str) -> ModelT:
        try:
            return model.model_validate(data)
        except ValidationError as e:
            raise FlowsClientError(
                f"Unexpected {model.__name__} payload from {path}: {e}"
            ) from e

    # flows

    def get_flow(self, flow_id: int) -> FlowRecord:
        path = f"/flujos/{flow_id}"
        payload = self._request("GET", path)
        return self._parse(FlowRecord, self._unwrap(payload), path)

    def update_flow_configuration(
        self,
        flow_id: int,
        visual: VisualConfig,
        structure: StructureConfig,
        nombre: str | None = None,
        descripcion: str | None = None,
    ) -> FlowRecord | None:
        """Store the visual and structural representations of a flow."""
        body: dict[str, Any] = {
            "config_visual": visual.model_dump(mode="json", by_alias=True),
            "config_structure": structure.model_dump(mode="json"),
        }
        if nombre is not None:
            body["nombre"] = nombre
        if descripcion is not None:
            body["descripcion"] = descripcion

        path = f"/flujos/{flow_id}/configuracion"
        payload = self._request("PUT", path, json=body)
        data = self._unwrap(payload)
        return self._parse(FlowRecord, data, path) if isinstance(data, dict) else None

    def create_flow(self, request: SaveRequest) -> SaveResult:
        """Create a flow, then store its visual configuration.

        The second write failing does not undo the first: the flow exists,
        only its layout is lost, so the result is a success with a warning.
        """
        path = "/flujos/crear-con-prospectos"
        try:
            payload = self._request(
                "POST", path, json=request.model_dump(mode="json", by_alias=True)
            )
            created = self._parse(FlowRecord, self._unwrap(payload) or {}, path)
        except FlowsClientError as e:
            logger.error("creating flow %r failed: %s", request.flujo.nombre, e)
            return SaveResult(
                outcome=SaveOutcome.failure,
                message=f"Error al crear el flujo: {e}",
                errors=[str(e)],
            )

        logger.info("flow created: %s (%r)", created.id, request.flujo.nombre)
        if created.id is None:
            return SaveResult(outcome=SaveOutcome.success)

        try:
            self.update_flow_configuration(created.id, request.visual, request.structure)
        except FlowsClientError as e:
            logger.warning(
                "flow %s was created but its visual configuration was not stored: %s",
                created.id, e,
            )
            return SaveResult(
                outcome=SaveOutcome.success_with_warning,
                flow_id=created.id,
                warning=f"El flujo se creó pero no se guardó su configuración visual: {e}",
            )

        return SaveResult(outcome=SaveOutcome.success, flow_id=created.id)

    # executions

    def list_executions(self, flow_id: int, limit: int = 20) -> list[FlowExecution]:
        """Executions of a flow, most recent first."""
        path = f"/flujos/{flow_id}/ejecuciones"
        payload = self._request("GET", path, params={"limit": limit})
        return [
            self._parse(FlowExecution, item, path)
            for item in self._unwrap(payload) or []
        ]

    def get_latest_execution(self, flow_id: int) -> FlowExecution | None:
        executions = self.list_executions(flow_id, limit=1)
        return executions[0] if executions else None

    def get_active_execution(self, flow_id: int) -> ActiveExecutionResponse:
        path = f"/flujos/{flow_id}/ejecuciones/activa"
        payload = self._request("GET", path)
        return self._parse(ActiveExecutionResponse, self._unwrap(payload) or {}, path)

    def get_execution_detail(
        self, flow_id: int, execution_id: int, use_cache: bool = True
    ) -> FlowExecution:
        cache_key = (flow_id, execution_id)

        # check cache first and see if it is still fresh
        cached = self._detail_cache.get(cache_key)
        if use_cache and cached is not None:
            fetched_at, detail = cached
            if time.monotonic() - fetched_at < self.detail_ttl:
                return detail

        path = f"/flujos/{flow_id}/ejecuciones/{execution_id}"
        payload = self._request("GET", path)
        detail = self._parse(FlowExecution, self._unwrap(payload), path)

        now = time.monotonic()
        self._prune_detail_cache(now)
        self._detail_cache[cache_key] = (now, detail)
        return detail

    def _prune_detail_cache(self, now: float) -> None:
        stale = [
            key
            for key, (fetched_at, _) in self._detail_cache.items()
            if now - fetched_at >= self.detail_ttl
        ]
        for key in stale:
            del self._detail_cache[key]

    def invalidate_execution(self, flow_id: int, execution_id: int) -> None:
        self._detail_cache.pop((flow_id, execution_id), None)

    def pause_execution(
        self, flow_id: int, execution_id: int, reason: str | None = None
    ) -> dict:
        body = {"razon": reason} if reason else {}
        payload = self._request(
            "POST", f"/flujos/{flow_id}/ejecuciones/{execution_id}/pausar", json=body
        )
        self.invalidate_execution(flow_id, execution_id)
        logger.info("paused execution %s of flow %s", execution_id, flow_id)
        return self._unwrap(payload) or {}

    def resume_execution(self, flow_id: int, execution_id: int) -> dict:
        payload = self._request(
            "POST", f"/flujos/{flow_id}/ejecuciones/{execution_id}/reanudar"
        )
        self.invalidate_execution(flow_id, execution_id)
        logger.info("resumed execution %s of flow %s", execution_id, flow_id)
        return self._unwrap(payload) or {}

    def cancel_execution(self, flow_id: int, execution_id: int) -> dict:
        payload = self._request(
            "DELETE", f"/flujos/{flow_id}/ejecuciones/{execution_id}"
        )
        self.invalidate_execution(flow_id, execution_id)
        logger.info("cancelled execution %s of flow %s", execution_id, flow_id)
        return self._unwrap(payload) or {}
