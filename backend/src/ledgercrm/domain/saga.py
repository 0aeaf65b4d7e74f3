"""Multi-step writes with named compensating actions.

The store offers no transaction spanning an alias and its holder link, so a
write that touches both registers an undo action after each step that
succeeds. If a later step raises, the registered actions run newest first
and the original error is re-raised unchanged.

A failing compensation is logged and counted but never replaces the original
error, and it does not stop the remaining compensations. Compensations must
be idempotent (e.g. hard delete with ``missing_ok=True``).
"""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from types import TracebackType
from typing import Any, Self

from ledgercrm.observability.metrics import record_compensation
from ledgercrm.shared.logging import get_logger

logger = get_logger(__name__)

Compensation = Callable[[], Awaitable[Any]]


@dataclass(frozen=True)
class CompensationStep:
    name: str
    action: Compensation


class Saga:
    """Async context manager collecting compensations for one logical operation.

    Usage:
        async with Saga("create_alias", holder_id=str(holder_id)) as saga:
            alias = await alias_repo.create(alias)
            saga.on_failure("hard_delete_alias", lambda: alias_repo.delete(...))
            ...
    """

    def __init__(self, name: str, **log_fields: Any) -> None:
        self.name = name
        self.log_fields = log_fields
        self._steps: list[CompensationStep] = []

    @property
    def pending(self) -> list[str]:
        return [step.name for step in self._steps]

    def on_failure(self, name: str, action: Compensation) -> None:
        """Register the undo action for a step that just succeeded."""
        self._steps.append(CompensationStep(name, action))

    def bind(self, **log_fields: Any) -> None:
        """Add identifiers learned mid-way (e.g. a generated alias_id) to log lines."""
        self.log_fields.update(log_fields)

    async def compensate(self, error: BaseException) -> None:
        """Run registered compensations newest first."""
        logger.warning(
            "saga_compensating",
            saga=self.name,
            error_type=type(error).__name__,
            steps=self.pending,
            **self.log_fields,
        )
        while self._steps:
            step = self._steps.pop()
            try:
                await step.action()
            except Exception as compensation_error:
                record_compensation(step.name, succeeded=False)
                logger.error(
                    "saga_compensation_failed",
                    saga=self.name,
                    step=step.name,
                    error_type=type(compensation_error).__name__,
                    error=str(compensation_error),
                    original_error_type=type(error).__name__,
                    **self.log_fields,
                )
            else:
                record_compensation(step.name, succeeded=True)
                logger.info(
                    "saga_compensation_applied", saga=self.name, step=step.name, **self.log_fields
                )

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> bool:
        if exc is not None and isinstance(exc, Exception):
            await self.compensate(exc)
        self._steps.clear()
        # Never suppress: the caller always sees the original error
        return False
