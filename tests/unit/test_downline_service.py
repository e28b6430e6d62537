"""Unit tests for the DownlineService facade."""

from types import SimpleNamespace

import pytest

from downline.services.downline_service import DownlineService
from downline.utils.exceptions import (
    AuthorizationError,
    NodeNotFoundError,
    StoreUnavailableError,
)
from tests.fakes import make_node


class TestDownlineService:
    """Tests for DownlineService."""

    @pytest.mark.asyncio
    async def test_level_counts_response(self, chain_store):
        data = await DownlineService(chain_store).level_counts("R")

        assert data == {
            "levels": {str(level): 1 for level in range(1, 7)},
            "sixPlus": 1,
            "total": 7,
        }

    @pytest.mark.asyncio
    async def test_level_counts_failure_propagates(self, chain_store):
        """A failing batch fails the whole request."""
        chain_store.fail("count_in", after=2)

        with pytest.raises(StoreUnavailableError):
            await DownlineService(chain_store).level_counts("R")

    @pytest.mark.asyncio
    async def test_children_defaults_to_caller(self, forest_store):
        data = await DownlineService(forest_store).children("A")

        assert [item["id"] for item in data["items"]] == ["A2", "A1"]
        assert data["hasMore"] is False

    @pytest.mark.asyncio
    async def test_children_of_descendant(self, forest_store):
        data = await DownlineService(forest_store).children("A", "A1")

        assert [item["id"] for item in data["items"]] == ["A11"]

    @pytest.mark.asyncio
    async def test_children_of_unrelated_denied(self, forest_store):
        with pytest.raises(AuthorizationError):
            await DownlineService(forest_store).children("A", "B")

    @pytest.mark.asyncio
    async def test_stats(self, forest_store):
        data = await DownlineService(forest_store).stats("A")

        assert data == {
            "totalDownlines": 3,
            "directProgress": {"count": 2, "goal": 10, "completed": False},
        }

    @pytest.mark.asyncio
    async def test_search_response(self, forest_store):
        data = await DownlineService(forest_store).search("A", "zed")

        assert [hit["user"]["id"] for hit in data["results"]] == ["A11"]
        assert data["results"][0]["path"] == ["A", "A1"]

    @pytest.mark.asyncio
    async def test_sponsor(self, forest_store):
        data = await DownlineService(forest_store).sponsor("nua1")

        assert data == {"id": "A1", "name": "Aaron Smith", "referralId": "NUA1"}

    @pytest.mark.asyncio
    async def test_sponsor_unknown(self, forest_store):
        with pytest.raises(NodeNotFoundError):
            await DownlineService(forest_store).sponsor("NUNOBODY")

    @pytest.mark.asyncio
    async def test_register_then_visible(self, forest_store):
        """A registered node shows up in its sponsor's counts and children."""
        service = DownlineService(forest_store)

        data = await service.register("newbie", "New Bie", "newbie@example.com", "", "NUB1")
        counts = await service.level_counts("B")

        assert data["upline"] == "B1"
        assert data["referralId"] == "NUNEWBIE"
        assert counts["levels"]["2"] == 1
        assert forest_store.nodes["B1"].referrals == ["newbie"]

    @pytest.mark.asyncio
    async def test_audit_referrals(self, store):
        store.add(make_node("S", referrals=["C1"]), make_node("C1", "S"))

        audit = await DownlineService(store).audit_referrals("S")

        assert audit.consistent

    def test_from_settings(self, store):
        settings = SimpleNamespace(
            membership_fan_in=10,
            max_tracked_level=4,
            child_page_size=20,
            store_max_concurrency=3,
        )

        service = DownlineService.from_settings(store, settings)

        assert service.aggregator.fan_in == 10
        assert service.aggregator.max_level == 4
        assert service.materializer.max_depth == 4
        assert service.child_loader.page_size == 20
        assert service.aggregator.max_concurrency == 3
        assert service.materializer.max_concurrency == 3
