"""API routes for editing flow drafts.

Each draft is one graph-store session persisted as a snapshot; every
mutation loads the store, applies one store operation and writes it back.
"""

from typing import Literal

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ValidationError

from flowkit.models.configuration import FlowCheck, FlowConfiguration, ValidationResult
from flowkit.models.graph import FlowEdge, FlowNode, Position
from flowkit.sdk.client import FlowNotFoundError, FlowsClient, FlowsClientError
from flowkit.serializer import build_flow_configuration, reconstruct_graph
from flowkit.store import GraphStore
from flowkit.utils.identifiers import generate_draft_id
from flowkit.validation import check_flow, validate_flow_configuration
from server.dependencies import get_client
from server.draft_db import (
    DraftRow,
    upsert_draft as db_upsert_draft,
    get_draft as db_get_draft,
    list_drafts as db_list_drafts,
    delete_draft as db_delete_draft,
)

router = APIRouter()


class CreateDraftRequest(BaseModel):
    """request body for opening a new draft.

    With ``flow_id`` the draft starts from that stored flow.
    """

    name: str = ""
    description: str = ""
    flow_id: int | None = None


class AddNodeRequest(BaseModel):
    variant: Literal["stage", "conditional", "end"]


class MetaRequest(BaseModel):
    name: str | None = None
    description: str | None = None


class DraftSummary(BaseModel):
    draft_id: str
    name: str
    flow_id: int | None = None
    node_count: int
    edge_count: int
    updated_at: str


class DraftResponse(BaseModel):
    draft_id: str
    flow_name: str
    flow_description: str
    flow_id: int | None = None
    nodes: list[FlowNode]
    edges: list[FlowEdge]
    created_at: str
    updated_at: str


class AddNodeResponse(BaseModel):
    node_id: str
    draft: DraftResponse


class ValidationReport(BaseModel):
    """fast check and exhaustive validation side by side."""

    check: FlowCheck
    validation: ValidationResult


def _to_response(row: DraftRow) -> DraftResponse:
    return DraftResponse(
        draft_id=row.draft_id,
        flow_name=row.snapshot.flow_name,
        flow_description=row.snapshot.flow_description,
        flow_id=row.flow_id,
        nodes=row.snapshot.nodes,
        edges=row.snapshot.edges,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _load_store(draft_id: str) -> GraphStore:
    row = db_get_draft(draft_id)
    if not row:
        raise HTTPException(status_code=404, detail=f"Draft not found: {draft_id}")
    return GraphStore.from_snapshot(row.snapshot)


def _require_node(store: GraphStore, draft_id: str, node_id: str) -> None:
    if store.get_node(node_id) is None:
        raise HTTPException(
            status_code=404, detail=f"Node not found in draft {draft_id}: {node_id}"
        )


def _save(draft_id: str, store: GraphStore) -> DraftResponse:
    return _to_response(db_upsert_draft(draft_id, store.snapshot()))


@router.get("/drafts")
def list_drafts() -> list[DraftSummary]:
    """list all drafts, most recently edited first."""
    return [
        DraftSummary(
            draft_id=row.draft_id,
            name=row.name,
            flow_id=row.flow_id,
            node_count=len(row.snapshot.nodes),
            edge_count=len(row.snapshot.edges),
            updated_at=row.updated_at,
        )
        for row in db_list_drafts()
    ]


@router.post("/drafts")
def create_draft(
    request: CreateDraftRequest,
    client: FlowsClient = Depends(get_client),
) -> DraftResponse:
    """open a draft, empty or rebuilt from a stored flow."""
    if request.flow_id is not None:
        try:
            record = client.get_flow(request.flow_id)
        except FlowNotFoundError:
            raise HTTPException(status_code=404, detail=f"Flow not found: {request.flow_id}")
        except FlowsClientError as e:
            raise HTTPException(status_code=502, detail=str(e))
        store = GraphStore.from_snapshot(reconstruct_graph(record))
    else:
        store = GraphStore()
        store.set_flow_name(request.name)
        store.set_flow_description(request.description)

    draft_id = generate_draft_id()
    row = db_upsert_draft(draft_id, store.snapshot(), flow_id=request.flow_id)
    return _to_response(row)


@router.get("/drafts/{draft_id}")
def get_draft(draft_id: str) -> DraftResponse:
    row = db_get_draft(draft_id)
    if not row:
        raise HTTPException(status_code=404, detail=f"Draft not found: {draft_id}")
    return _to_response(row)


@router.delete("/drafts/{draft_id}")
def delete_draft(draft_id: str) -> dict:
    if not db_get_draft(draft_id):
        raise HTTPException(status_code=404, detail=f"Draft not found: {draft_id}")
    db_delete_draft(draft_id)
    return {"deleted": draft_id}


# nodes


@router.post("/drafts/{draft_id}/nodes")
def add_node(draft_id: str, request: AddNodeRequest) -> AddNodeResponse:
    store = _load_store(draft_id)
    if request.variant == "stage":
        node_id = store.add_stage_node()
    elif request.variant == "conditional":
        node_id = store.add_conditional_node()
    else:
        node_id = store.add_end_node()
    return AddNodeResponse(node_id=node_id, draft=_save(draft_id, store))


@router.patch("/drafts/{draft_id}/nodes/{node_id}")
def update_node(draft_id: str, node_id: str, data: dict) -> DraftResponse:
    """merge partial data into a node."""
    store = _load_store(draft_id)
    _require_node(store, draft_id, node_id)
    try:
        store.update_node(node_id, data)
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=e.errors(include_url=False))
    return _save(draft_id, store)


@router.put("/drafts/{draft_id}/nodes/{node_id}/position")
def move_node(draft_id: str, node_id: str, position: Position) -> DraftResponse:
    store = _load_store(draft_id)
    _require_node(store, draft_id, node_id)
    store.set_node_position(node_id, position)
    return _save(draft_id, store)


@router.delete("/drafts/{draft_id}/nodes/{node_id}")
def remove_node(draft_id: str, node_id: str) -> DraftResponse:
    """remove a node along with every edge touching it."""
    store = _load_store(draft_id)
    _require_node(store, draft_id, node_id)
    store.remove_node(node_id)
    return _save(draft_id, store)


# edges


@router.post("/drafts/{draft_id}/edges")
def add_edge(draft_id: str, edge: FlowEdge) -> DraftResponse:
    """connect two nodes; a duplicate connection leaves the draft unchanged."""
    store = _load_store(draft_id)
    store.add_edge(edge)
    return _save(draft_id, store)


@router.delete("/drafts/{draft_id}/edges/{edge_id}")
def remove_edge(draft_id: str, edge_id: str) -> DraftResponse:
    store = _load_store(draft_id)
    store.remove_edge(edge_id)
    return _save(draft_id, store)


# flow


@router.put("/drafts/{draft_id}/meta")
def update_meta(draft_id: str, request: MetaRequest) -> DraftResponse:
    store = _load_store(draft_id)
    if request.name is not None:
        store.set_flow_name(request.name)
    if request.description is not None:
        store.set_flow_description(request.description)
    return _save(draft_id, store)


@router.post("/drafts/{draft_id}/reset")
def reset_draft(draft_id: str) -> DraftResponse:
    store = _load_store(draft_id)
    store.reset_flow()
    return _save(draft_id, store)


@router.get("/drafts/{draft_id}/validation")
def validate_draft(draft_id: str) -> ValidationReport:
    store = _load_store(draft_id)
    config = build_flow_configuration(
        store.flow_name, store.flow_description, store.nodes, store.edges
    )
    return ValidationReport(
        check=check_flow(store.flow_name, store.nodes),
        validation=validate_flow_configuration(config),
    )


@router.get("/drafts/{draft_id}/configuration")
def get_configuration(draft_id: str) -> FlowConfiguration:
    """visual and structural representation as they would be saved."""
    store = _load_store(draft_id)
    return build_flow_configuration(
        store.flow_name, store.flow_description, store.nodes, store.edges
    )
