"""
Tests for historical profit replay, sale simulation and summaries.
"""
from datetime import date
from decimal import Decimal

from lot_costing.analytics.profit import HistoricalProfitReplayer, simulate_sale, summarize_profit
from lot_costing.domain.models import Lot, Movement


def _m(sku, day, kind, quantity, cost=None, price=None):
    return Movement(sku=sku, date=day, kind=kind, quantity=quantity, unit_cost=cost, unit_price=price)


def _lot(n, qty, cost):
    return Lot(
        lot_id=f"SKU001/{n}",
        sku="SKU001",
        receipt_date=date(2026, 1, n),
        original_qty=Decimal(qty),
        remaining_qty=Decimal(qty),
        unit_cost=Decimal(cost),
        sequence=n,
    )


class TestHistoricalProfit:
    """Test per-transaction profit records."""

    def test_single_sale(self):
        """Test 30 sold at 25 from 100@10: COGS 300, profit 450, margin 60%."""
        records = HistoricalProfitReplayer().replay([
            _m("SKU001", date(2026, 1, 1), "RECEIPT", 100, cost=10),
            _m("SKU001", date(2026, 1, 5), "ISSUE", 30, price=25),
        ])
        assert len(records) == 1
        record = records[0]
        assert record.cogs == Decimal("300.00")
        assert record.revenue == Decimal("750.00")
        assert record.profit == Decimal("450.00")
        assert record.margin == Decimal("60.00")
        assert record.draws[0].quantity == Decimal("30")

    def test_interleaved_skus(self):
        """Test SKUs are replayed independently and returned in sorted order."""
        records = HistoricalProfitReplayer().replay([
            _m("SKU002", date(2026, 1, 1), "RECEIPT", 5, cost=4),
            _m("SKU001", date(2026, 1, 1), "RECEIPT", 5, cost=1),
            _m("SKU002", date(2026, 1, 2), "ISSUE", 5, price=6),
            _m("SKU001", date(2026, 1, 2), "ISSUE", 5, price=2),
        ])
        assert [r.sku for r in records] == ["SKU001", "SKU002"]
        assert [r.profit for r in records] == [Decimal("5.00"), Decimal("10.00")]

    def test_shortfall_record(self):
        """Test shortfall units are carried on the record."""
        records = HistoricalProfitReplayer().replay([
            _m("SKU001", date(2026, 1, 1), "RECEIPT", 10, cost=2),
            _m("SKU001", date(2026, 1, 2), "RECEIPT", 10, cost=4),
            _m("SKU001", date(2026, 1, 3), "ISSUE", 25, price=5),
        ])
        record = records[0]
        assert record.shortfall_qty == Decimal("5")
        assert record.shortfall_cost == Decimal("15.00")
        assert record.cogs == Decimal("75.00")
        assert record.profit == Decimal("50.00")

    def test_write_off_is_pure_cost(self):
        """Test write-off: cost without revenue, margin 0."""
        records = HistoricalProfitReplayer().replay([
            _m("SKU001", date(2026, 1, 1), "RECEIPT", 10, cost=3),
            _m("SKU001", date(2026, 1, 2), "WRITE_OFF", 2),
        ])
        assert records[0].is_write_off
        assert records[0].revenue == Decimal("0.00")
        assert records[0].profit == Decimal("-6.00")
        assert records[0].margin == Decimal("0.00")

    def test_as_of_cutoff(self):
        """Test only movements up to as_of produce records."""
        movements = [
            _m("SKU001", date(2026, 1, 1), "RECEIPT", 10, cost=1),
            _m("SKU001", date(2026, 1, 2), "ISSUE", 1, price=2),
            _m("SKU001", date(2026, 1, 3), "ISSUE", 1, price=2),
        ]
        assert len(HistoricalProfitReplayer().replay(movements, as_of=date(2026, 1, 2))) == 1

    def test_recomputed_from_scratch(self):
        """Test a back-dated receipt changes later costs on the next replay."""
        movements = [
            _m("SKU001", date(2026, 1, 5), "RECEIPT", 10, cost=4),
            _m("SKU001", date(2026, 1, 6), "ISSUE", 5, price=5),
        ]
        replayer = HistoricalProfitReplayer()
        assert replayer.replay(movements)[0].cogs == Decimal("20.00")
        movements.append(_m("SKU001", date(2026, 1, 1), "RECEIPT", 5, cost=1))
        assert replayer.replay(movements)[0].cogs == Decimal("5.00")


class TestSimulateSale:
    """Test hypothetical sale costing."""

    def test_covered_sale(self):
        """Test 15 at 3 from 10@1 + 10@2."""
        lots = [_lot(1, 10, "1"), _lot(2, 10, "2")]
        sim = simulate_sale(lots, 15, 3)
        assert sim.cogs == Decimal("20.00")
        assert sim.revenue == Decimal("45.00")
        assert sim.profit == Decimal("25.00")
        assert not sim.is_stockout_risk

    def test_shortfall_at_average_cost(self):
        """Test 25 at 5 from 10@1 + 10@2: 5 short units at WAC 1.5."""
        lots = [_lot(1, 10, "1"), _lot(2, 10, "2")]
        sim = simulate_sale(lots, 25, 5)
        assert sim.cogs == Decimal("37.50")
        assert sim.revenue == Decimal("125.00")
        assert sim.profit == Decimal("87.50")
        assert sim.margin == Decimal("70.00")
        assert sim.is_stockout_risk
        assert [lot.remaining_qty for lot in lots] == [Decimal("10"), Decimal("10")]

    def test_fefo_simulation(self):
        """Test the mode changes which lots are drawn."""
        lots = [_lot(1, 10, "1"), _lot(2, 10, "2")]
        lots[1].expiry_date = date(2026, 2, 1)
        sim = simulate_sale(lots, 5, 3, mode="FEFO")
        assert sim.cogs == Decimal("10.00")


class TestSummarizeProfit:
    """Test profit totals."""

    def test_totals_and_top_skus(self):
        """Test totals, write-off cost and ranking."""
        records = HistoricalProfitReplayer().replay([
            _m("SKU001", date(2026, 1, 1), "RECEIPT", 100, cost=10),
            _m("SKU001", date(2026, 1, 5), "ISSUE", 30, price=25),
            _m("SKU001", date(2026, 1, 6), "WRITE_OFF", 5),
            _m("SKU002", date(2026, 1, 1), "RECEIPT", 10, cost=1),
            _m("SKU002", date(2026, 1, 5), "ISSUE", 10, price=2),
        ])
        summary = summarize_profit(records)
        assert summary.revenue == Decimal("770.00")
        assert summary.cogs == Decimal("360.00")
        assert summary.profit == Decimal("410.00")
        assert summary.write_off_cost == Decimal("50.00")
        assert summary.margin == Decimal("53.25")
        assert summary.top_skus(1) == [("SKU001", Decimal("400.00"))]

    def test_empty(self):
        """Test no records: all zero."""
        summary = summarize_profit([])
        assert summary.revenue == Decimal("0.00")
        assert summary.margin == Decimal("0.00")
        assert summary.top_skus() == []


class TestReplayRobustness:
    """Test profit replay survives bad rows and is deterministic."""

    def _mixed_history(self):
        return [
            _m("SKU002", date(2026, 1, 1), "RECEIPT", 10, cost=2),
            _m("SKU001", date(2026, 1, 1), "RECEIPT", 10, cost=1),
            _m("SKU002", date(2026, 1, 2), "RECEIPT", 10, cost=4),
            _m("SKU001", date(2026, 1, 3), "ISSUE", 4, price=3),
            _m("SKU002", date(2026, 1, 3), "ISSUE", 25, price=5),
            _m("SKU001", date(2026, 1, 4), "WRITE_OFF", 2),
            _m("SKU003", date(2026, 1, 4), "ISSUE", 1, price=9),
        ]

    def test_oversized_row_does_not_stop_other_skus(self):
        """Test a quantity beyond the supported range is skipped; other SKUs still get records."""
        records = HistoricalProfitReplayer().replay([
            _m("SKU_A", date(2026, 1, 1), "RECEIPT", 10, cost=1),
            _m("SKU_A", date(2026, 1, 2), "ISSUE", 5, price=2),
            _m("SKU_B", date(2026, 1, 1), "RECEIPT", "1e25", cost=1000),
            _m("SKU_B", date(2026, 1, 2), "ISSUE", "1e25", price=1),
        ])
        assert [r.sku for r in records] == ["SKU_A"]
        assert records[0].cogs == Decimal("5.00")

    def test_oversized_unit_cost_skipped(self):
        """Test an out-of-range unit cost is skipped like any malformed row."""
        records = HistoricalProfitReplayer().replay([
            _m("SKU001", date(2026, 1, 1), "RECEIPT", 10, cost="1e20"),
            _m("SKU001", date(2026, 1, 2), "ISSUE", 5, price=2),
        ])
        assert len(records) == 1
        assert records[0].uncosted

    def test_repeated_replay_identical_records(self):
        """Test two replays of the same history yield equal profit records."""
        replayer = HistoricalProfitReplayer()
        first = replayer.replay(self._mixed_history())
        second = HistoricalProfitReplayer().replay(self._mixed_history())
        assert first == second
        assert [r.sku for r in first] == ["SKU001", "SKU001", "SKU002", "SKU003"]
        assert any(r.is_write_off for r in first)
        assert any(r.shortfall_qty > 0 for r in first)
