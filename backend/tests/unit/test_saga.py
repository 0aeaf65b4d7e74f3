"""Unit tests for the compensating-action saga."""

import asyncio
from unittest.mock import AsyncMock, patch

import pytest

from ledgercrm.domain.saga import Saga
from ledgercrm.shared.exceptions import PrimaryHolderAlreadyExistsError


class TestSaga:
    @pytest.mark.asyncio
    async def test_success_runs_no_compensation(self):
        undo = AsyncMock()

        async with Saga("create_alias") as saga:
            saga.on_failure("hard_delete_alias", undo)

        undo.assert_not_awaited()
        assert saga.pending == []

    @pytest.mark.asyncio
    async def test_failure_compensates_newest_first_and_reraises(self):
        calls: list[str] = []

        async def undo_alias():
            calls.append("alias")

        async def undo_link():
            calls.append("link")

        error = PrimaryHolderAlreadyExistsError("alias-1")
        with pytest.raises(PrimaryHolderAlreadyExistsError) as exc_info:
            async with Saga("create_alias") as saga:
                saga.on_failure("hard_delete_alias", undo_alias)
                saga.on_failure("hard_delete_holder_link", undo_link)
                raise error

        assert exc_info.value is error
        assert calls == ["link", "alias"]

    @pytest.mark.asyncio
    async def test_failing_compensation_does_not_mask_original_error(self):
        later = AsyncMock()
        broken = AsyncMock(side_effect=RuntimeError("store unavailable"))

        with patch("ledgercrm.domain.saga.record_compensation") as record:
            with pytest.raises(ValueError, match="update failed"):
                async with Saga("relink_alias") as saga:
                    saga.on_failure("hard_delete_alias", later)
                    saga.on_failure("hard_delete_holder_link", broken)
                    raise ValueError("update failed")

        # Remaining compensations still run
        later.assert_awaited_once()
        record.assert_any_call("hard_delete_holder_link", succeeded=False)
        record.assert_any_call("hard_delete_alias", succeeded=True)

    @pytest.mark.asyncio
    async def test_cancellation_skips_compensation(self):
        """Cancellation is left to the surrounding transaction rollback."""
        undo = AsyncMock()

        with pytest.raises(asyncio.CancelledError):
            async with Saga("create_alias") as saga:
                saga.on_failure("hard_delete_alias", undo)
                raise asyncio.CancelledError()

        undo.assert_not_awaited()
