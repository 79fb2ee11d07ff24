"""
Unit tests for proposal normalization.
"""
import math
from datetime import datetime

import pytest

from proposal_engine.services.proposal_normalizer import (
    Proposal,
    RawProposalRecord,
    normalize_line_item,
    normalize_proposal,
    normalize_proposals,
    reconcile_total,
)


# ============= Sample Data =============

def make_raw(**overrides):
    raw = {
        "id": "p-a",
        "quote_id": "q-1",
        "supplier_id": "s-a",
        "supplier_name": "Supplier A",
        "items": [
            {"product_name": "Cimento", "quantity": 10, "unit_price": 20, "total": 200},
        ],
        "shipping_cost": 10,
        "total_amount": 210,
        "delivery_time": 5,
        "warranty_months": 6,
        "delivery_score": 80,
        "reputation": 4.5,
        "notes": "Entrega em dias úteis",
        "created_at": datetime(2026, 3, 1, 12, 0),
    }
    raw.update(overrides)
    return raw


# ============= Total Reconciliation =============

class TestTotalReconciliation:

    def test_matching_reported_total_is_kept(self):
        """Reported total that matches items + shipping is used as is."""
        proposal = normalize_proposal(make_raw())

        assert proposal.total_price == 210
        assert proposal.computed_total == 210
        assert proposal.reported_total == 210

    def test_mismatched_reported_total_uses_computed(self):
        """A reported total that cannot be explained falls back to the computed one."""
        proposal = normalize_proposal(make_raw(
            id="p-b",
            items=[{"product_name": "Cimento", "quantity": 10, "unit_price": 18}],
            shipping_cost=0,
            total_amount=200,
        ))

        assert proposal.total_price == 180

    def test_reported_total_within_tolerance_wins(self):
        """Differences up to one cent keep the supplier's figure."""
        proposal = normalize_proposal(make_raw(total_amount=210.01))

        assert proposal.total_price == pytest.approx(210.01)

    def test_reported_total_outside_tolerance_loses(self):
        proposal = normalize_proposal(make_raw(total_amount=210.02))

        assert proposal.total_price == 210

    def test_missing_reported_total_uses_computed(self):
        proposal = normalize_proposal(make_raw(total_amount=None))

        assert proposal.total_price == 210

    def test_item_total_preferred_over_quantity_times_price(self):
        """A declared item total (e.g. with a discount) is trusted for the sum."""
        proposal = normalize_proposal(make_raw(
            items=[{"product_name": "Cimento", "quantity": 10, "unit_price": 20, "total": 190}],
            total_amount=200,
        ))

        assert proposal.total_price == 200

    def test_reconcile_total_never_negative(self):
        assert reconcile_total(-5.0, -5.0) == 0.0
        assert reconcile_total(100.0, -3.0) == 0.0

    def test_own_items_used_for_sum(self):
        """Every item of the proposal contributes to the total."""
        proposal = normalize_proposal(make_raw(
            items=[
                {"product_name": "Cimento", "quantity": 10, "unit_price": 20},
                {"product_name": "Areia", "quantity": 2, "unit_price": 100},
            ],
            shipping_cost=0,
            total_amount=0,
        ))

        assert proposal.total_price == 400
        assert len(proposal.items) == 2


# ============= Data Quality =============

class TestDataQuality:

    def test_missing_unit_prices_yield_shipping_only(self):
        """Items without prices contribute nothing; the total is just shipping."""
        proposal = normalize_proposal(make_raw(
            items=[
                {"product_name": "Cimento", "quantity": 10},
                {"product_name": "Areia", "quantity": 3, "unit_price": None},
            ],
            shipping_cost=35,
            total_amount=None,
        ))

        assert proposal.total_price == 35
        assert not math.isnan(proposal.total_price)
        assert all(item.unit_price == 0 for item in proposal.items)

    def test_garbage_numbers_become_defaults(self):
        """Non-numeric values never raise and never produce NaN."""
        proposal = normalize_proposal(make_raw(
            items=[{"product_name": "Cimento", "quantity": "dez", "unit_price": "abc"}],
            shipping_cost="n/a",
            total_amount=float("nan"),
            delivery_score="excellent",
            reputation=None,
        ))

        assert proposal.total_price == 0
        assert proposal.shipping_cost == 0
        assert proposal.delivery_score == 50
        assert proposal.reputation == 3.0

    def test_decimal_comma_strings_are_parsed(self):
        proposal = normalize_proposal(make_raw(
            items=[{"product_name": "Cimento", "quantity": "10", "unit_price": "20,50"}],
            shipping_cost="1.000,00",
            total_amount=None,
        ))

        assert proposal.items[0].unit_price == pytest.approx(20.5)
        assert proposal.shipping_cost == 1000
        assert proposal.total_price == pytest.approx(1205)

    @pytest.mark.parametrize("raw, expected", [
        ("1.234", 1234),
        ("12.500.000", 12500000),
        ("R$ 2.500", 2500),
        ("1.234,56", 1234.56),
        ("1.5", 1.5),
        ("12.34", 12.34),
    ])
    def test_dot_grouped_thousands(self, raw, expected):
        proposal = normalize_proposal(make_raw(shipping_cost=raw))

        assert proposal.shipping_cost == pytest.approx(expected)

    def test_missing_warranty_defaults_to_twelve_months(self):
        proposal = normalize_proposal(make_raw(warranty_months=None))

        assert proposal.warranty_months == 12

    def test_missing_delivery_time_defaults_to_seven_days(self):
        proposal = normalize_proposal(make_raw(delivery_time=None))

        assert proposal.delivery_time_days == 7

    def test_zero_warranty_is_kept(self):
        """Zero is a real answer, not a missing one."""
        proposal = normalize_proposal(make_raw(warranty_months=0))

        assert proposal.warranty_months == 0

    def test_scores_are_clamped(self):
        proposal = normalize_proposal(make_raw(delivery_score=140, reputation=-2))

        assert proposal.delivery_score == 100
        assert proposal.reputation == 0

    def test_empty_record(self):
        """A completely empty record still normalizes."""
        proposal = normalize_proposal({})

        assert proposal.total_price == 0
        assert proposal.items == []
        assert proposal.warranty_months == 12

    def test_non_dict_items_are_ignored(self):
        proposal = normalize_proposal(make_raw(
            items=[{"product_name": "Cimento", "quantity": 1, "unit_price": 5}, "garbage", None],
            shipping_cost=0,
            total_amount=None,
        ))

        assert len(proposal.items) == 1
        assert proposal.total_price == 5

    def test_items_that_are_not_a_list_are_ignored(self):
        raw = RawProposalRecord(items={"product_name": "Areia"}, shipping_cost=12)

        proposal = normalize_proposal(raw)

        assert proposal.items == []
        assert proposal.total_price == 12

    def test_loosely_typed_text_fields(self):
        proposal = normalize_proposal(make_raw(
            supplier_name=42,
            notes=None,
            created_at="2026-03-01T12:00:00Z",
        ))

        assert proposal.supplier_name == "42"
        assert proposal.observations is None
        assert proposal.submitted_at.year == 2026

    def test_unparseable_timestamp_is_dropped(self):
        proposal = normalize_proposal(make_raw(created_at="yesterday"))

        assert proposal.submitted_at is None

    def test_supplier_name_falls_back_to_id(self):
        proposal = normalize_proposal(make_raw(supplier_name=None))

        assert proposal.supplier_name == "s-a"


# ============= Line Items =============

class TestLineItems:

    def test_missing_item_total_is_derived(self):
        item = normalize_line_item({"product_name": "Cimento", "quantity": 4, "unit_price": 2.5})

        assert item.total == 10
        assert item.product_id == "Cimento"

    def test_explicit_product_id_is_kept(self):
        item = normalize_line_item({"product_id": "sku-9", "product_name": "Cimento", "quantity": 1, "unit_price": 1})

        assert item.product_id == "sku-9"

    def test_negative_prices_are_clamped(self):
        item = normalize_line_item({"product_name": "Cimento", "quantity": 2, "unit_price": -4})

        assert item.unit_price == 0
        assert item.total == 0


# ============= Idempotence =============

class TestIdempotence:

    @pytest.mark.parametrize("overrides", [
        {},
        {"total_amount": 200, "shipping_cost": 0},
        {"total_amount": 210.01},
        {"items": [{"product_name": "Cimento", "quantity": 3}], "total_amount": None},
    ])
    def test_normalizing_twice_keeps_total(self, overrides):
        once = normalize_proposal(make_raw(**overrides))
        twice = normalize_proposal(once)

        assert isinstance(twice, Proposal)
        assert twice.total_price == once.total_price
        assert twice.delivery_time_days == once.delivery_time_days
        assert twice.warranty_months == once.warranty_months

    def test_normalize_proposals_preserves_order(self):
        proposals = normalize_proposals([make_raw(id="1"), make_raw(id="2"), make_raw(id="3")])

        assert [p.id for p in proposals] == ["1", "2", "3"]
