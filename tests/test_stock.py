import pytest

from app.services.stock import (
    GaugeTier,
    StockStatus,
    classify,
    compute_stock_fields,
    gauge,
    gauge_percentage,
    gauge_tier,
)


class TestClassify:
    @pytest.mark.parametrize(
        "stock, expected",
        [
            (0, StockStatus.OUT_OF_STOCK),
            (1, StockStatus.LOW_STOCK),
            (10, StockStatus.LOW_STOCK),
            (11, StockStatus.IN_STOCK),
            (50, StockStatus.IN_STOCK),
            (51, StockStatus.OVER_STOCK),
        ],
    )
    def test_boundaries(self, stock, expected):
        assert classify(stock, 10, 50) is expected

    def test_low_stock_when_below_minimum(self):
        assert classify(5, 10, 50) is StockStatus.LOW_STOCK

    def test_over_stock_above_maximum(self):
        assert classify(60, 10, 50) is StockStatus.OVER_STOCK

    def test_ranges_partition_every_stock_level(self):
        for min_stock, max_stock in [(1, 1), (1, 2), (5, 100), (10, 50)]:
            seen = []
            for stock in range(0, max_stock + 20):
                predicates = [
                    stock > max_stock,
                    min_stock < stock <= max_stock,
                    0 < stock <= min_stock,
                    stock == 0,
                ]
                assert sum(predicates) == 1
                seen.append(classify(stock, min_stock, max_stock))
            if max_stock > min_stock:
                assert set(seen) == set(StockStatus)

    def test_malformed_range_still_uses_ordered_rule(self):
        # max < min is rejected at write time, not here
        assert classify(7, 10, 5) is StockStatus.OVER_STOCK
        assert classify(5, 10, 5) is StockStatus.LOW_STOCK

    def test_values_are_display_strings(self):
        assert [s.value for s in StockStatus] == ["Out of Stock", "Low Stock", "In Stock", "Over Stock"]


class TestGauge:
    def test_percentage_bounds(self):
        for stock in range(0, 120):
            pct = gauge_percentage(stock, 10, 50)
            assert 0.0 <= pct <= 100.0

    def test_minimum_is_empty_and_maximum_is_full(self):
        assert gauge_percentage(10, 10, 50) == 0.0
        assert gauge_percentage(50, 10, 50) == 100.0
        assert gauge_percentage(30, 10, 50) == 50.0

    def test_degenerate_range(self):
        assert gauge_percentage(0, 10, 10) == 0.0
        assert gauge_percentage(3, 10, 10) == 100.0
        assert gauge_percentage(3, 10, 4) == 100.0

    @pytest.mark.parametrize(
        "stock, tier",
        [
            (0, GaugeTier.CRITICAL),
            (10, GaugeTier.CRITICAL),
            (11, GaugeTier.WARNING),
            (21, GaugeTier.WARNING),
            (23, GaugeTier.NORMAL),
            (50, GaugeTier.NORMAL),
            (51, GaugeTier.INFORMATIONAL),
        ],
    )
    def test_tiers(self, stock, tier):
        assert gauge_tier(stock, 10, 50) is tier

    def test_low_stock_product_has_critical_empty_bar(self):
        g = gauge(5, 10, 50)
        assert g.percentage == 0.0
        assert g.tier is GaugeTier.CRITICAL

    def test_over_stock_product_has_full_informational_bar(self):
        g = gauge(60, 10, 50)
        assert g.percentage == 100.0
        assert g.tier is GaugeTier.INFORMATIONAL

    def test_can_disagree_with_status(self):
        assert classify(12, 10, 50) is StockStatus.IN_STOCK
        assert gauge(12, 10, 50).tier is GaugeTier.WARNING

    def test_pure(self):
        assert gauge(17, 5, 90) == gauge(17, 5, 90)
        assert classify(17, 5, 90) is classify(17, 5, 90)


def test_compute_stock_fields_reads_product_like_objects():
    class P:
        stock = 12
        min_stock = 10
        max_stock = 50

    fields = compute_stock_fields(P())

    assert fields["status"] == "In Stock"
    assert fields["gauge"] == {"percentage": 5.0, "tier": "warning"}
