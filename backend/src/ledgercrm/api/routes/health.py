"""Liveness and readiness endpoints."""

from fastapi import APIRouter
from pydantic import BaseModel
from sqlalchemy import literal, select
from sqlalchemy.exc import SQLAlchemyError

from ledgercrm import __version__
from ledgercrm.infrastructure.database.connection import SessionDep
from ledgercrm.infrastructure.database.models import (
    AliasRecord,
    HolderLinkRecord,
    HolderRecord,
)
from ledgercrm.shared.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(tags=["Health"])

# Tables the service cannot work without
REQUIRED_TABLES = (HolderRecord, AliasRecord, HolderLinkRecord)


class HealthResponse(BaseModel):
    status: str
    version: str


class ReadyResponse(BaseModel):
    ready: bool
    checks: dict[str, bool]


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Liveness: the process is up."""
    return HealthResponse(status="healthy", version=__version__)


@router.get("/ready", response_model=ReadyResponse)
async def readiness_check(session: SessionDep) -> ReadyResponse:
    """Readiness: the database answers and the CRM tables exist."""
    checks = {"database": False, "schema": False}

    try:
        await session.execute(select(literal(1)))
        checks["database"] = True
        for model in REQUIRED_TABLES:
            await session.execute(select(model.id).limit(1))
        checks["schema"] = True
    except SQLAlchemyError as e:
        logger.warning(
            "readiness_check_failed",
            failed_check="schema" if checks["database"] else "database",
            error_type=type(e).__name__,
        )

    return ReadyResponse(ready=all(checks.values()), checks=checks)
