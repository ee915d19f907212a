"""MCP araç fonksiyonlarının unit testleri."""

import asyncio
import json

import pytest

from conftest import make_locations, make_product
from warehouse_ledger import mcp_server
from warehouse_ledger.errors import TransportError
from warehouse_ledger.mcp_server import (
    LedgerContext,
    complete_batch,
    create_transfer,
    default_source_location,
    list_movement_groups,
    location_overview,
    search,
)
from warehouse_ledger.repositories.storage import InMemoryKeyValueStorage
from warehouse_ledger.services.filter_engine import FilterEngine
from warehouse_ledger.services.location_ledger import LocationLedger
from warehouse_ledger.services.movement_batch import MovementBatchEngine
from warehouse_ledger.services.preset_store import PresetStore


class FailingStorage(InMemoryKeyValueStorage):
    def set(self, key, value):
        raise TransportError("Yazılamadı", operation="settings.set")


@pytest.fixture
def ctx(snapshot):
    snapshot.load(
        products=[
            make_product("X", stock=10, location="A", location_stock={"A": 10}, category="kablo", sale_price=40),
            make_product("Y", stock=4, location="B", category="ekran", sale_price=900),
        ],
        locations=make_locations("A", "B", "C", capacity=20),
    )
    ledger = LocationLedger()
    return LedgerContext(
        snapshot=snapshot,
        ledger=ledger,
        engine=MovementBatchEngine(snapshot, ledger=ledger),
        filters=FilterEngine.for_snapshot(snapshot, PresetStore(InMemoryKeyValueStorage())),
    )


class TestLocationTools:
    def test_overview(self, ctx):
        result = location_overview(ctx)
        by_code = {loc["code"]: loc for loc in result["locations"]}
        assert by_code["A"]["occupancy"] == 10
        assert by_code["A"]["utilization"] == 50.0
        assert by_code["A"]["level"] == "medium"
        assert by_code["B"]["products"] == [{"product_id": "Y", "name": "Ürün Y", "quantity": 4}]
        assert result["totals"]["total_occupancy"] == 14

    def test_overview_unknown_location(self, ctx):
        assert location_overview(ctx, "Z")["success"] is False

    def test_default_source(self, ctx):
        assert default_source_location(ctx, "X")["location"] == "A"
        assert default_source_location(ctx, "NOPE")["success"] is False


class TestTransferTools:
    def test_single_draft_then_complete(self, ctx):
        created = create_transfer(ctx, [{"product_id": "X", "quantity": 3, "from_location": "A", "to_location": "B"}])
        assert created["success"]
        batch_id = created["batch_id"]

        done = complete_batch(ctx, batch_id)
        assert done["completed_count"] == 1
        assert done["location_stock"] == {"X": {"A": 7, "B": 3}}

    def test_multi_item_batch(self, ctx):
        created = create_transfer(ctx, [
            {"product_id": "X", "quantity": 1, "from_location": "A", "to_location": "C"},
            {"product_id": "Y", "quantity": 2, "from_location": "B", "to_location": "C"},
        ], notes="toplu")
        assert len(created["movements"]) == 2
        assert {m["batch_number"] for m in created["movements"]} == {created["batch_id"]}

    def test_validation_error_reported(self, ctx):
        result = create_transfer(ctx, [{"product_id": "X", "quantity": 0, "from_location": "A", "to_location": "B"}])
        assert result["success"] is False

    def test_invalid_status_reported(self, ctx):
        result = create_transfer(ctx, [{"product_id": "X", "quantity": 1, "from_location": "A", "to_location": "B"}],
                                 status="archived")
        assert result["success"] is False

    def test_shortfall_reported(self, ctx):
        created = create_transfer(ctx, [{"product_id": "Y", "quantity": 9, "from_location": "B", "to_location": "A"}])
        result = complete_batch(ctx, created["batch_id"])
        assert result["success"] is False
        assert "Yetersiz stok" in result["error"]

    def test_list_groups(self, ctx):
        create_transfer(ctx, [{"product_id": "X", "quantity": 1, "from_location": "A", "to_location": "B"}])
        create_transfer(ctx, [{"product_id": "Y", "quantity": 1, "from_location": "B", "to_location": "C"}])
        result = list_movement_groups(ctx, {"from_location": "b"})
        assert result["total_groups"] == 1
        assert result["draft_count"] == 1
        assert result["groups"][0]["representative"]["product_id"] == "Y"


class TestSearchTool:
    def test_products(self, ctx):
        result = search(ctx, "products", {"price_min": 100}, query="pahalı")
        assert [r["product_id"] for r in result["results"]] == ["Y"]
        assert result["active_filters"] == 1
        assert ctx.filters.recent_searches[0].query == "pahalı"

    def test_external_records(self, ctx):
        records = [
            {"id": "S1", "amount": 100, "payment_method": "cash"},
            {"id": "S2", "amount": 300, "payment_method": "card"},
        ]
        result = search(ctx, "sales", {"payment_method": ["card"]}, records=records)
        assert [r["sale_id"] for r in result["results"]] == ["S2"]

    def test_unknown_category(self, ctx):
        assert search(ctx, "weather")["success"] is False

    def test_recent_search_write_failure_reported(self, ctx):
        ctx.filters.preset_store.storage = FailingStorage()
        result = search(ctx, "products", {"price_min": 100}, query="pahalı")
        assert result["success"] is False
        assert result["error"] == "Yazılamadı"
        assert ctx.filters.recent_searches == []


class TestToolRegistry:
    def test_list_tools(self):
        tools = asyncio.run(mcp_server.list_tools())
        assert {t.name for t in tools} == {
            "location_overview", "default_source_location", "create_transfer",
            "complete_batch", "list_movement_groups", "search",
        }

    def test_call_tool_dispatch(self, ctx, monkeypatch):
        monkeypatch.setattr(mcp_server, "get_context", lambda: ctx)
        content = asyncio.run(mcp_server.call_tool("default_source_location", {"product_id": "X"}))
        assert json.loads(content[0].text)["location"] == "A"

    def test_unknown_tool(self, ctx, monkeypatch):
        monkeypatch.setattr(mcp_server, "get_context", lambda: ctx)
        with pytest.raises(ValueError):
            asyncio.run(mcp_server.call_tool("nope", {}))
