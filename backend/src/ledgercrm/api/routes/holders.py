"""Holder API routes."""

from datetime import datetime
from typing import Any
from uuid import UUID

from fastapi import APIRouter, Query, Request, Response
from pydantic import BaseModel, ConfigDict, Field

from ledgercrm.api.deps import HolderServiceDep
from ledgercrm.api.schemas import (
    AddressesModel,
    APIRequestModel,
    ContactModel,
    LegalPersonModel,
    NaturalPersonModel,
    to_entity,
)
from ledgercrm.domain.entities import Holder, HolderQuery, HolderType, HolderUpdate
from ledgercrm.domain.pagination import make_page
from ledgercrm.shared.metadata import extract_metadata_filters, validate_metadata_filter

router = APIRouter(prefix="/holders", tags=["Holders"])


# ----- Request/Response Schemas -----


class HolderCreateRequest(APIRequestModel):
    """Create holder request."""

    type: HolderType
    name: str = Field(..., min_length=1, max_length=256)
    document: str = Field(..., min_length=1, max_length=32)
    external_id: str | None = Field(default=None, max_length=256)
    addresses: AddressesModel | None = None
    contact: ContactModel | None = None
    natural_person: NaturalPersonModel | None = None
    legal_person: LegalPersonModel | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)


class HolderUpdateRequest(APIRequestModel):
    """Update holder request. Document and type cannot change."""

    name: str | None = Field(default=None, min_length=1, max_length=256)
    external_id: str | None = Field(default=None, max_length=256)
    addresses: AddressesModel | None = None
    contact: ContactModel | None = None
    natural_person: NaturalPersonModel | None = None
    legal_person: LegalPersonModel | None = None
    metadata: dict[str, Any] | None = None
    fields_to_remove: list[str] = Field(default_factory=list)


class HolderResponse(BaseModel):
    """Holder response schema."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    type: HolderType
    name: str
    document: str
    external_id: str | None
    addresses: AddressesModel | None
    contact: ContactModel | None
    natural_person: NaturalPersonModel | None
    legal_person: LegalPersonModel | None
    metadata: dict[str, Any]
    created_at: datetime | None
    updated_at: datetime | None
    deleted_at: datetime | None


class HolderListResponse(BaseModel):
    """Paginated holder list."""

    items: list[HolderResponse]
    page: int
    limit: int


# ----- Routes -----


@router.post("", response_model=HolderResponse, status_code=201)
async def create_holder(
    service: HolderServiceDep,
    request: HolderCreateRequest,
) -> HolderResponse:
    """Create a new holder."""
    holder = await service.create_holder(
        Holder(
            type=request.type,
            name=request.name,
            document=request.document,
            external_id=request.external_id,
            addresses=to_entity(request.addresses),
            contact=to_entity(request.contact),
            natural_person=to_entity(request.natural_person),
            legal_person=to_entity(request.legal_person),
            metadata=request.metadata,
        )
    )
    return HolderResponse.model_validate(holder)


@router.get("", response_model=HolderListResponse)
async def list_holders(
    http_request: Request,
    service: HolderServiceDep,
    external_id: str | None = None,
    document: str | None = None,
    limit: int | None = Query(None),
    page: int | None = Query(None),
    sort_order: str | None = Query(None),
    include_deleted: bool = False,
) -> HolderListResponse:
    """List holders for the current organization.

    Metadata filters are passed as ``metadata.<key>=<value>`` query parameters.
    """
    pagination = make_page(limit, page, sort_order)
    query = HolderQuery(
        external_id=external_id,
        document=document,
        metadata=validate_metadata_filter(extract_metadata_filters(http_request.query_params)),
        page=pagination,
    )
    holders = await service.list_holders(query, include_deleted)
    return HolderListResponse(
        items=[HolderResponse.model_validate(h) for h in holders],
        page=pagination.page,
        limit=pagination.limit,
    )


@router.get("/{holder_id}", response_model=HolderResponse)
async def get_holder(
    holder_id: UUID,
    service: HolderServiceDep,
    include_deleted: bool = False,
) -> HolderResponse:
    """Get holder details."""
    holder = await service.get_holder(holder_id, include_deleted)
    return HolderResponse.model_validate(holder)


@router.patch("/{holder_id}", response_model=HolderResponse)
async def update_holder(
    holder_id: UUID,
    service: HolderServiceDep,
    request: HolderUpdateRequest,
) -> HolderResponse:
    """Partially update a holder."""
    holder = await service.update_holder(
        holder_id,
        HolderUpdate(
            external_id=request.external_id,
            name=request.name,
            addresses=to_entity(request.addresses),
            contact=to_entity(request.contact),
            natural_person=to_entity(request.natural_person),
            legal_person=to_entity(request.legal_person),
            metadata=request.metadata,
        ),
        request.fields_to_remove,
    )
    return HolderResponse.model_validate(holder)


@router.delete("/{holder_id}", status_code=204)
async def delete_holder(
    holder_id: UUID,
    service: HolderServiceDep,
    hard_delete: bool = False,
) -> Response:
    """Delete a holder that no longer owns any alias."""
    await service.delete_holder(holder_id, hard_delete)
    return Response(status_code=204)
