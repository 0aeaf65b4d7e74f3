"""Per-request tenant context.

Repositories built without an explicit organization fall back to the tenant
resolved from the X-Organization-Id header of the current request.
"""

from contextvars import ContextVar
from dataclasses import dataclass
from uuid import UUID


@dataclass(frozen=True)
class TenantContext:
    """Context for the current request's tenant (organization)."""

    organization_id: UUID
    request_id: str | None = None


_tenant_context: ContextVar[TenantContext | None] = ContextVar(
    "tenant_context", default=None
)


def set_tenant_context(ctx: TenantContext) -> None:
    """Set the tenant context for the current request."""
    _tenant_context.set(ctx)


def get_tenant_context() -> TenantContext:
    """Return the current tenant or raise RuntimeError when none was resolved."""
    ctx = _tenant_context.get()
    if ctx is None:
        raise RuntimeError("No tenant context available for this request.")
    return ctx


def clear_tenant_context() -> None:
    """Clear the tenant context."""
    _tenant_context.set(None)
