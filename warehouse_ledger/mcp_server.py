"""
Warehouse Ledger MCP Server

Lokasyon doluluğu, transfer oluşturma/tamamlama, hareket listeleme ve
filtreli arama araçlarını sunar.

Tables used: Products (PK: product_id), Locations (PK: code),
StockMovements (PK: movement_id, GSI: BatchIndex), UserSettings (PK: setting_key)
"""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass, fields
from typing import Any, Optional

from mcp.server import Server
from mcp.types import TextContent, Tool

from warehouse_ledger.config import Settings, configure_logging
from warehouse_ledger.errors import LedgerError
from warehouse_ledger.models.filters import (
    ClientRecord,
    FinancialTransaction,
    SaleRecord,
    SearchCategory,
    filters_from_dict,
)
from warehouse_ledger.models.warehouse import MovementGroup, MovementRecord, Product, TransferItem
from warehouse_ledger.repositories import (
    DynamoDBKeyValueStorage,
    LocationRepository,
    MovementRepository,
    ProductRepository,
)
from warehouse_ledger.services.filter_engine import FilterEngine
from warehouse_ledger.services.location_ledger import LocationLedger
from warehouse_ledger.services.movement_batch import MovementBatchEngine
from warehouse_ledger.services.preset_store import PresetStore
from warehouse_ledger.services.snapshot import InventorySnapshot

logger = logging.getLogger(__name__)

app = Server("warehouse-ledger")

_RECORD_TYPES = {
    SearchCategory.SALES: (SaleRecord, "sale_id"),
    SearchCategory.CLIENTS: (ClientRecord, "client_id"),
    SearchCategory.FINANCIAL: (FinancialTransaction, "transaction_id"),
}


@dataclass
class LedgerContext:
    snapshot: InventorySnapshot
    ledger: LocationLedger
    engine: MovementBatchEngine
    filters: FilterEngine


def build_context(settings: Optional[Settings] = None, dynamodb_resource: Optional[Any] = None) -> LedgerContext:
    settings = settings or Settings.from_env()
    kwargs = {"dynamodb_resource": dynamodb_resource} if dynamodb_resource is not None else {}
    snapshot = InventorySnapshot(
        ProductRepository(settings, **kwargs),
        LocationRepository(settings, **kwargs),
        MovementRepository(settings, **kwargs),
    )
    ledger = LocationLedger()
    store = PresetStore(
        DynamoDBKeyValueStorage(settings, dynamodb_resource=dynamodb_resource),
        limit=settings.recent_search_limit,
    )
    return LedgerContext(
        snapshot=snapshot,
        ledger=ledger,
        engine=MovementBatchEngine(snapshot, ledger=ledger),
        filters=FilterEngine.for_snapshot(snapshot, store),
    )


_context: Optional[LedgerContext] = None


def get_context() -> LedgerContext:
    global _context
    if _context is None:
        _context = build_context()
        _context.snapshot.refresh_all()
        _context.snapshot.refresh_categories()
    return _context


def _result(data: Any) -> list[TextContent]:
    return [TextContent(type="text", text=json.dumps(data, indent=2, ensure_ascii=False))]


# --- Görünümler ---

def _movement_view(record: MovementRecord) -> dict:
    view = record.to_dict()
    view["batch_id"] = record.batch_id
    return view


def _group_view(group: MovementGroup) -> dict:
    return {
        "batch_id": group.batch_id,
        "status": group.status.value,
        "grouped_count": group.grouped_count,
        "is_grouped": group.is_grouped,
        "representative": _movement_view(group.representative),
        "members": [m.movement_id for m in group.members],
    }


def _product_view(product: Product, ledger: LocationLedger) -> dict:
    return {
        "product_id": product.product_id,
        "name": product.name,
        "stock": product.stock,
        "location": product.location,
        "stock_status": product.stock_status.value,
        "category": product.category,
        "sale_price": product.sale_price,
        "location_stock": ledger.stock_breakdown(product).to_dict(),
    }


# --- Araç kayıtları ---

@app.list_tools()
async def list_tools() -> list[Tool]:
    return [
        Tool(name="location_overview", description="Per-location occupancy, utilization and stocked products",
             inputSchema={"type": "object", "properties": {
                 "location_code": {"type": "string"}
             }}),
        Tool(name="default_source_location", description="Suggest the source location holding the most stock of a product",
             inputSchema={"type": "object", "properties": {"product_id": {"type": "string"}}, "required": ["product_id"]}),
        Tool(name="create_transfer", description="Create a transfer (single or multi-item) as draft or completed",
             inputSchema={"type": "object", "properties": {
                 "items": {"type": "array", "items": {"type": "object", "properties": {
                     "product_id": {"type": "string"}, "quantity": {"type": "integer", "minimum": 1},
                     "from_location": {"type": "string"}, "to_location": {"type": "string"},
                     "notes": {"type": "string"},
                 }, "required": ["product_id", "quantity", "from_location", "to_location"]}},
                 "status": {"type": "string", "enum": ["draft", "pending", "completed"], "default": "draft"},
                 "notes": {"type": "string"}, "user_id": {"type": "string"},
             }, "required": ["items"]}),
        Tool(name="complete_batch", description="Atomically complete every draft movement of a batch",
             inputSchema={"type": "object", "properties": {"batch_id": {"type": "string"}}, "required": ["batch_id"]}),
        Tool(name="list_movement_groups", description="List movements grouped by batch, drafts first",
             inputSchema={"type": "object", "properties": {
                 "filters": {"type": "object"}, "limit": {"type": "integer", "default": 50}
             }}),
        Tool(name="search", description="Filter records of a search category",
             inputSchema={"type": "object", "properties": {
                 "category": {"type": "string", "enum": [c.value for c in SearchCategory]},
                 "filters": {"type": "object"}, "query": {"type": "string"},
                 "records": {"type": "array", "items": {"type": "object"}},
             }, "required": ["category"]}),
    ]


@app.call_tool()
async def call_tool(name: str, arguments: dict) -> list[TextContent]:
    ctx = get_context()
    handlers = {
        "location_overview": lambda a: location_overview(ctx, a.get("location_code")),
        "default_source_location": lambda a: default_source_location(ctx, a["product_id"]),
        "create_transfer": lambda a: create_transfer(ctx, a["items"], a.get("status", "draft"), a.get("notes", ""), a.get("user_id", "")),
        "complete_batch": lambda a: complete_batch(ctx, a["batch_id"]),
        "list_movement_groups": lambda a: list_movement_groups(ctx, a.get("filters"), a.get("limit", 50)),
        "search": lambda a: search(ctx, a["category"], a.get("filters"), a.get("query", ""), a.get("records")),
    }
    handler = handlers.get(name)
    if not handler:
        raise ValueError(f"Unknown tool: {name}")
    return _result(handler(arguments))


# --- Implementation ---

def location_overview(ctx: LedgerContext, location_code: Optional[str] = None) -> dict:
    products = ctx.snapshot.products
    locations = ctx.snapshot.locations
    if location_code:
        location = ctx.snapshot.location(location_code)
        if location is None:
            return {"success": False, "error": f"Lokasyon bulunamadı: {location_code}"}
        locations = [location]

    overview = []
    for location in locations:
        utilization = ctx.ledger.utilization(location, products)
        overview.append({
            "code": location.code,
            "name": location.name,
            "zone": location.zone,
            "capacity": location.capacity,
            "occupancy": ctx.ledger.occupancy(location.code, products),
            "free_capacity": ctx.ledger.free_capacity(location, products),
            "utilization": round(utilization, 2),
            "level": ctx.ledger.utilization_level(utilization).value,
            "products": [
                {"product_id": p.product_id, "name": p.name, "quantity": qty}
                for p, qty in ctx.ledger.products_at(location.code, products)
            ],
        })
    totals = ctx.ledger.totals(locations, products)
    return {"success": True, "locations": overview, "totals": asdict(totals)}


def default_source_location(ctx: LedgerContext, product_id: str) -> dict:
    product = ctx.snapshot.product(product_id)
    if product is None:
        return {"success": False, "error": f"Ürün bulunamadı: {product_id}"}
    return {
        "success": True,
        "product_id": product_id,
        "location": ctx.ledger.default_source_location(product),
        "breakdown": ctx.ledger.stock_breakdown(product).to_dict(),
    }


def create_transfer(ctx: LedgerContext, items: list[dict], status: str = "draft",
                    notes: str = "", user_id: str = "") -> dict:
    try:
        transfer_items = [
            TransferItem(
                product_id=str(item.get("product_id", "")),
                quantity=item.get("quantity"),
                from_location=str(item.get("from_location", "")),
                to_location=str(item.get("to_location", "")),
                notes=str(item.get("notes", "")),
            )
            for item in items
        ]
        if len(transfer_items) == 1:
            item = transfer_items[0]
            records = [ctx.engine.create_transfer(
                item.product_id, item.quantity, item.from_location, item.to_location,
                notes=item.notes or notes, status=status, user_id=user_id,
            )]
        else:
            records = ctx.engine.create_batch(transfer_items, status=status, notes=notes, user_id=user_id)
    except LedgerError as e:
        return {"success": False, "error": str(e)}
    return {
        "success": True,
        "batch_id": records[0].batch_id if records else None,
        "movements": [_movement_view(r) for r in records],
    }


def complete_batch(ctx: LedgerContext, batch_id: str) -> dict:
    try:
        completion = ctx.engine.complete_batch(batch_id)
    except LedgerError as e:
        return {"success": False, "error": str(e)}
    return {
        "success": True,
        "batch_id": completion.batch_id,
        "completed_count": completion.completed_count,
        "location_stock": {pid: ledger.to_dict() for pid, ledger in completion.ledgers.items()},
    }


def list_movement_groups(ctx: LedgerContext, filters: Optional[dict] = None, limit: int = 50) -> dict:
    config = filters_from_dict(SearchCategory.MOVEMENTS, filters)
    records = ctx.filters.filter_records(ctx.snapshot.movements, config)
    groups = ctx.engine.group_for_display(records)
    return {
        "success": True,
        "draft_count": ctx.engine.draft_count(records),
        "total_groups": len(groups),
        "groups": [_group_view(g) for g in groups[:limit]],
    }


def _to_record(category: SearchCategory, data: dict) -> Any:
    record_type, id_field = _RECORD_TYPES[category]
    known = {f.name for f in fields(record_type)}
    values = {k: v for k, v in data.items() if k in known}
    values.setdefault(id_field, str(data.get("id", "")))
    return record_type(**values)


def search(ctx: LedgerContext, category: str, filters: Optional[dict] = None,
           query: str = "", records: Optional[list[dict]] = None) -> dict:
    try:
        category = SearchCategory(category)
    except ValueError:
        return {"success": False, "error": f"Bilinmeyen kategori: {category}"}

    if filters is not None:
        ctx.filters.clear_filters(category)
        ctx.filters.update_filters(category, **filters)
    config = ctx.filters.filters_for(category)

    if category is SearchCategory.PRODUCTS:
        matched = ctx.filters.filter_records(ctx.snapshot.products, config)
        data = [_product_view(p, ctx.ledger) for p in matched]
    elif category is SearchCategory.MOVEMENTS:
        matched = ctx.filters.filter_records(ctx.snapshot.movements, config)
        data = [_movement_view(m) for m in matched]
    else:
        candidates = [_to_record(category, r) for r in records or []]
        data = [asdict(r) for r in ctx.filters.filter_records(candidates, config)]

    if query and ctx.filters.preset_store is not None:
        try:
            ctx.filters.record_search(category, query)
        except LedgerError as e:
            logger.error("Son arama kaydedilemedi: %s", e)
            return {"success": False, "error": str(e)}

    return {
        "success": True,
        "category": category.value,
        "active_filters": ctx.filters.active_field_count(config),
        "count": len(data),
        "results": data,
    }


if __name__ == "__main__":
    import asyncio
    from mcp.server.stdio import stdio_server

    configure_logging(Settings.from_env())

    async def run():
        async with stdio_server() as (read, write):
            await app.run(read, write, app.create_initialization_options())

    asyncio.run(run())
