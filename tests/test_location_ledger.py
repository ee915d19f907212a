"""Lokasyon Defteri unit testleri."""

import pytest

from conftest import make_locations, make_product
from warehouse_ledger.models.warehouse import UtilizationLevel, WarehouseLocation
from warehouse_ledger.services.location_ledger import LocationLedger


@pytest.fixture
def ledger():
    return LocationLedger()


class TestQuantityAt:
    """Ürünün bir lokasyondaki adedi."""

    def test_explicit_entry(self, ledger):
        product = make_product(stock=10, location="A", location_stock={"A": 4, "B": 6})
        assert ledger.quantity_at(product, "B") == 6

    def test_primary_without_ledger_holds_all_stock(self, ledger):
        product = make_product(stock=10, location="A")
        assert ledger.quantity_at(product, "A") == 10
        assert ledger.quantity_at(product, "B") == 0

    def test_primary_without_entry_shows_full_stock(self, ledger):
        product = make_product(stock=10, location="A", location_stock={"B": 3})
        assert ledger.quantity_at(product, "A") == 10
        assert ledger.quantity_at(product, "C") == 0

    def test_primary_entry_wins_over_stock(self, ledger):
        product = make_product(stock=10, location="A", location_stock={"A": 2, "B": 8})
        assert ledger.quantity_at(product, "A") == 2

    def test_primary_stock_ignores_other_entries(self, ledger):
        product = make_product(stock=2, location="A", location_stock={"B": 5})
        assert ledger.quantity_at(product, "A") == 2

    def test_display_key_normalized(self, ledger):
        product = make_product(stock=5, location="A1", location_stock={"A1": 5})
        assert ledger.quantity_at(product, "Raf A (A1)") == 5

    def test_plain_mapping_accepted(self, ledger):
        product = make_product(stock=5, location="A")
        product.location_stock = {"A": 2, "B": 3}
        assert ledger.quantity_at(product, "B") == 3

    def test_empty_code(self, ledger):
        assert ledger.quantity_at(make_product(), "") == 0


class TestOccupancy:
    """Doluluk, kullanım oranı ve toplamlar."""

    def test_occupancy_sums_products(self, ledger):
        products = [
            make_product("P1", stock=10, location="A", location_stock={"A": 6, "B": 4}),
            make_product("P2", stock=5, location="B"),
        ]
        assert ledger.occupancy("B", products) == 9
        assert ledger.occupancy("A", products) == 6

    def test_products_at_excludes_zero(self, ledger):
        p1 = make_product("P1", stock=3, location="A", location_stock={"A": 3, "B": 0})
        p2 = make_product("P2", stock=2, location="B")
        result = ledger.products_at("B", [p1, p2])
        assert [(p.product_id, qty) for p, qty in result] == [("P2", 2)]

    def test_utilization(self, ledger):
        location = WarehouseLocation(code="A", name="Raf A", capacity=50)
        products = [make_product(stock=25, location="A")]
        assert ledger.utilization(location, products) == 50.0
        assert ledger.free_capacity(location, products) == 25

    def test_zero_capacity_utilization(self, ledger):
        location = WarehouseLocation(code="A", name="Raf A", capacity=0)
        assert ledger.utilization(location, [make_product(stock=5, location="A")]) == 0.0

    @pytest.mark.parametrize("percent,level", [
        (95, UtilizationLevel.OVERFULL),
        (90, UtilizationLevel.OVERFULL),
        (80, UtilizationLevel.HIGH),
        (50, UtilizationLevel.MEDIUM),
        (10, UtilizationLevel.LOW),
    ])
    def test_utilization_level(self, percent, level):
        assert LocationLedger.utilization_level(percent) == level

    def test_totals(self, ledger):
        locations = make_locations("A", "B", capacity=50)
        products = [make_product(stock=20, location="A", location_stock={"A": 10, "B": 10})]
        totals = ledger.totals(locations, products)
        assert totals.total_capacity == 100
        assert totals.total_occupancy == 20
        assert totals.utilization == 20.0


class TestDefaultSourceLocation:
    """Yeni transfer için kaynak lokasyon önerisi."""

    def test_picks_largest_quantity(self, ledger):
        product = make_product(stock=7, location="A", location_stock={"A": 2, "B": 5})
        assert ledger.default_source_location(product) == "B"

    def test_tie_broken_by_code(self, ledger):
        product = make_product(stock=6, location="C", location_stock={"C": 3, "B": 3})
        assert ledger.default_source_location(product) == "B"

    def test_falls_back_to_primary(self, ledger):
        product = make_product(stock=0, location="A", location_stock={"B": 0})
        assert ledger.default_source_location(product) == "A"

    def test_nothing_resolves(self, ledger):
        assert ledger.default_source_location(None) == ""
        assert ledger.default_source_location(make_product(stock=0, location="")) == ""

    def test_only_ledger_entries_considered(self, ledger):
        product = make_product(stock=10, location="A", location_stock={"B": 3})
        assert ledger.default_source_location(product) == "B"

    def test_no_ledger_uses_primary(self, ledger):
        assert ledger.default_source_location(make_product(stock=10, location="Raf A (A1)")) == "A1"


class TestStockBreakdown:
    def test_includes_implied_primary(self, ledger):
        product = make_product(stock=10, location="A", location_stock={"B": 3})
        assert ledger.stock_breakdown(product) == {"B": 3, "A": 7}

    def test_primary_remainder(self, ledger):
        assert ledger.primary_remainder(make_product(stock=10, location="A", location_stock={"B": 3})) == 7
        assert ledger.primary_remainder(make_product(stock=2, location="A", location_stock={"B": 5})) == 0
        assert ledger.primary_remainder(make_product(stock=4, location="A")) == 4

    def test_ledger_totals_match(self, ledger):
        assert ledger.ledger_totals_match(make_product(stock=5, location_stock={"A": 5}))
        assert not ledger.ledger_totals_match(make_product(stock=5, location_stock={"A": 4}))
        assert ledger.ledger_totals_match(make_product(stock=5))
