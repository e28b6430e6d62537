"""Unit tests for schema creation."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from downline.config.database import init_models
from downline.models import Base


def engine_with(conn: MagicMock) -> MagicMock:
    context = MagicMock()
    context.__aenter__ = AsyncMock(return_value=conn)
    context.__aexit__ = AsyncMock(return_value=False)
    engine = MagicMock()
    engine.begin = MagicMock(return_value=context)
    return engine


class TestInitModels:
    """Tests for init_models."""

    @pytest.mark.asyncio
    async def test_create_only(self):
        conn = MagicMock()
        conn.run_sync = AsyncMock()

        await init_models(engine_with(conn))

        conn.run_sync.assert_awaited_once_with(Base.metadata.create_all, checkfirst=True)

    @pytest.mark.asyncio
    async def test_drop_then_create(self):
        """With drop, tables are dropped before being created again."""
        conn = MagicMock()
        conn.run_sync = AsyncMock()

        await init_models(engine_with(conn), drop=True)

        calls = conn.run_sync.await_args_list
        assert len(calls) == 2
        assert calls[0].args == (Base.metadata.drop_all,)
        assert calls[1].args == (Base.metadata.create_all,)
        assert calls[1].kwargs == {"checkfirst": True}

    @pytest.mark.asyncio
    async def test_runs_in_one_transaction(self):
        conn = MagicMock()
        conn.run_sync = AsyncMock()
        engine = engine_with(conn)

        await init_models(engine, drop=True)

        engine.begin.assert_called_once_with()
