"""FastAPI dependencies for API routes."""

from typing import Annotated
from uuid import UUID, uuid4

from fastapi import Depends, Header

from ledgercrm.domain.aliases.services import AliasService
from ledgercrm.domain.holders.services import HolderService
from ledgercrm.infrastructure.database.connection import SessionDep
from ledgercrm.infrastructure.database.repositories import (
    AliasRepository,
    HolderLinkRepository,
    HolderRepository,
)
from ledgercrm.shared.context import TenantContext, set_tenant_context
from ledgercrm.shared.exceptions import ValidationError
from ledgercrm.shared.logging import bind_request_context

async def get_organization_id(
    x_organization_id: Annotated[str | None, Header()] = None,
    x_request_id: Annotated[str | None, Header()] = None,
) -> UUID:
    """Resolve the tenant from the X-Organization-Id header.

    Also sets the tenant context and binds the organization and request id to
    every log line emitted while handling the request.
    """
    if not x_organization_id:
        raise ValidationError(
            "X-Organization-Id header is required.", {"header": "X-Organization-Id"}
        )
    try:
        organization_id = UUID(x_organization_id)
    except ValueError:
        raise ValidationError(
            "X-Organization-Id must be a UUID.", {"header": "X-Organization-Id"}
        ) from None

    request_id = x_request_id or str(uuid4())
    set_tenant_context(TenantContext(organization_id=organization_id, request_id=request_id))
    bind_request_context(organization_id=str(organization_id), request_id=request_id)
    return organization_id


OrganizationDep = Annotated[UUID, Depends(get_organization_id)]


async def get_holder_service(session: SessionDep, organization_id: OrganizationDep) -> HolderService:
    """Get holder service."""
    return HolderService(
        holder_repo=HolderRepository(session, organization_id),
        alias_repo=AliasRepository(session, organization_id),
        link_repo=HolderLinkRepository(session, organization_id),
    )


HolderServiceDep = Annotated[HolderService, Depends(get_holder_service)]


async def get_alias_service(session: SessionDep, organization_id: OrganizationDep) -> AliasService:
    """Get alias service."""
    return AliasService(
        alias_repo=AliasRepository(session, organization_id),
        holder_repo=HolderRepository(session, organization_id),
        link_repo=HolderLinkRepository(session, organization_id),
    )


AliasServiceDep = Annotated[AliasService, Depends(get_alias_service)]


__all__ = [
    "AliasServiceDep",
    "HolderServiceDep",
    "OrganizationDep",
    "SessionDep",
]
