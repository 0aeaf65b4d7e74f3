"""Alias API routes.

Aliases are created and changed under their holder; the flat ``/aliases``
listing searches across all holders of the organization.
"""

from datetime import datetime
from typing import Any
from uuid import UUID

from fastapi import APIRouter, Query, Request, Response
from pydantic import BaseModel, ConfigDict, Field

from ledgercrm.api.deps import AliasServiceDep
from ledgercrm.api.schemas import (
    APIRequestModel,
    BankingDetailsModel,
    RegulatoryFieldsModel,
    RelatedPartyModel,
    to_entity,
)
from ledgercrm.domain.entities import Alias, AliasQuery, AliasUpdate, HolderType, LinkType
from ledgercrm.domain.pagination import make_page
from ledgercrm.shared.metadata import extract_metadata_filters, validate_metadata_filter

router = APIRouter(tags=["Aliases"])


# ----- Request/Response Schemas -----


class AliasCreateRequest(APIRequestModel):
    """Create alias request.

    ``link_type`` optionally links the holder to the new alias in the same call.
    """

    ledger_id: str = Field(..., min_length=1, max_length=256)
    account_id: str = Field(..., min_length=1, max_length=256)
    banking_details: BankingDetailsModel | None = None
    regulatory_fields: RegulatoryFieldsModel | None = None
    related_parties: list[RelatedPartyModel] = Field(default_factory=list)
    metadata: dict[str, Any] = Field(default_factory=dict)
    link_type: str | None = None


class AliasUpdateRequest(APIRequestModel):
    """Update alias request.

    ``link_holder_id`` picks the holder for a new ``link_type`` link and
    defaults to the alias's own holder.
    """

    banking_details: BankingDetailsModel | None = None
    regulatory_fields: RegulatoryFieldsModel | None = None
    related_parties: list[RelatedPartyModel] | None = None
    metadata: dict[str, Any] | None = None
    link_type: str | None = None
    link_holder_id: UUID | None = None
    fields_to_remove: list[str] = Field(default_factory=list)


class HolderLinkResponse(BaseModel):
    """Holder link response."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    holder_id: UUID
    alias_id: UUID
    link_type: LinkType
    metadata: dict[str, Any]
    created_at: datetime | None
    updated_at: datetime | None


class AliasResponse(BaseModel):
    """Alias response schema."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    ledger_id: str
    account_id: str
    holder_id: UUID
    document: str | None
    type: HolderType | None
    banking_details: BankingDetailsModel | None
    regulatory_fields: RegulatoryFieldsModel | None
    related_parties: list[RelatedPartyModel]
    metadata: dict[str, Any]
    holder_link_id: UUID | None
    holder_links: list[HolderLinkResponse]
    created_at: datetime | None
    updated_at: datetime | None
    deleted_at: datetime | None


class AliasListResponse(BaseModel):
    """Paginated alias list."""

    items: list[AliasResponse]
    page: int
    limit: int


# ----- Routes -----


@router.post("/holders/{holder_id}/aliases", response_model=AliasResponse, status_code=201)
async def create_alias(
    holder_id: UUID,
    service: AliasServiceDep,
    request: AliasCreateRequest,
) -> AliasResponse:
    """Create an alias for a holder."""
    alias = await service.create_alias(
        holder_id,
        Alias(
            ledger_id=request.ledger_id,
            account_id=request.account_id,
            holder_id=holder_id,
            banking_details=to_entity(request.banking_details),
            regulatory_fields=to_entity(request.regulatory_fields),
            related_parties=[p.to_entity() for p in request.related_parties],
            metadata=request.metadata,
        ),
        request.link_type,
    )
    return AliasResponse.model_validate(alias)


@router.get("/holders/{holder_id}/aliases/{alias_id}", response_model=AliasResponse)
async def get_alias(
    holder_id: UUID,
    alias_id: UUID,
    service: AliasServiceDep,
    include_deleted: bool = False,
) -> AliasResponse:
    """Get an alias with its holder links."""
    alias = await service.get_alias(holder_id, alias_id, include_deleted)
    return AliasResponse.model_validate(alias)


@router.patch("/holders/{holder_id}/aliases/{alias_id}", response_model=AliasResponse)
async def update_alias(
    holder_id: UUID,
    alias_id: UUID,
    service: AliasServiceDep,
    request: AliasUpdateRequest,
) -> AliasResponse:
    """Partially update an alias, optionally adding a holder link."""
    related_parties = (
        [p.to_entity() for p in request.related_parties]
        if request.related_parties is not None
        else None
    )
    alias = await service.update_alias(
        holder_id,
        alias_id,
        AliasUpdate(
            banking_details=to_entity(request.banking_details),
            regulatory_fields=to_entity(request.regulatory_fields),
            related_parties=related_parties,
            metadata=request.metadata,
        ),
        request.fields_to_remove,
        link_type=request.link_type,
        link_holder_id=request.link_holder_id,
    )
    return AliasResponse.model_validate(alias)


@router.delete("/holders/{holder_id}/aliases/{alias_id}", status_code=204)
async def delete_alias(
    holder_id: UUID,
    alias_id: UUID,
    service: AliasServiceDep,
    hard_delete: bool = False,
) -> Response:
    """Delete an alias and all of its holder links."""
    await service.delete_alias(holder_id, alias_id, hard_delete)
    return Response(status_code=204)


@router.delete(
    "/holders/{holder_id}/aliases/{alias_id}/related-parties/{related_party_id}",
    status_code=204,
)
async def delete_related_party(
    holder_id: UUID,
    alias_id: UUID,
    related_party_id: UUID,
    service: AliasServiceDep,
) -> Response:
    """Remove one related party from an alias."""
    await service.delete_related_party(holder_id, alias_id, related_party_id)
    return Response(status_code=204)


@router.get("/aliases", response_model=AliasListResponse)
async def list_aliases(
    http_request: Request,
    service: AliasServiceDep,
    holder_id: UUID | None = None,
    account_id: str | None = None,
    ledger_id: str | None = None,
    document: str | None = None,
    banking_details_branch: str | None = None,
    banking_details_account: str | None = None,
    banking_details_iban: str | None = None,
    limit: int | None = Query(None),
    page: int | None = Query(None),
    sort_order: str | None = Query(None),
    include_deleted: bool = False,
) -> AliasListResponse:
    """Search aliases across all holders of the organization."""
    pagination = make_page(limit, page, sort_order)
    query = AliasQuery(
        holder_id=holder_id,
        account_id=account_id,
        ledger_id=ledger_id,
        document=document,
        banking_details_branch=banking_details_branch,
        banking_details_account=banking_details_account,
        banking_details_iban=banking_details_iban,
        metadata=validate_metadata_filter(extract_metadata_filters(http_request.query_params)),
        page=pagination,
    )
    aliases = await service.list_aliases(query, include_deleted)
    return AliasListResponse(
        items=[AliasResponse.model_validate(a) for a in aliases],
        page=pagination.page,
        limit=pagination.limit,
    )
