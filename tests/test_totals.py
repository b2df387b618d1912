from decimal import Decimal

import pytest
from hypothesis import given
from hypothesis import strategies as st

from gst_receipts.errors import ValidationError
from gst_receipts.tax import INTERSTATE, INTRASTATE, InvoiceLine, RoundingPolicy, aggregate


def test_single_line_invoice_rounds_to_rupee():
    totals = aggregate([InvoiceLine("Masala Chai", 2, 45, gst_rate=5)], INTRASTATE)
    assert totals.subtotal == Decimal("90")
    assert totals.cgst == totals.sgst == Decimal("2.25")
    assert totals.igst == 0
    assert totals.unrounded_total == Decimal("94.50")
    assert totals.grand_total == Decimal("95")
    assert totals.round_off == Decimal("0.50")


def test_interstate_invoice():
    totals = aggregate(
        [InvoiceLine("Printer", 1, 1000, discount_percent=10, gst_rate=18)], INTERSTATE
    )
    assert not totals.is_intrastate
    assert totals.discount_amount == Decimal("100")
    assert totals.igst == Decimal("162")
    assert totals.grand_total == Decimal("1062")
    assert totals.round_off == 0


def test_mixed_rates_grouped_by_rate():
    lines = [
        InvoiceLine("Burger", 1, 100, gst_rate=5),
        InvoiceLine("Cola", 2, 50, gst_rate=12),
        InvoiceLine("Fries", 1, 80, gst_rate=5),
    ]
    totals = aggregate(lines, INTRASTATE)
    assert totals.tax_by_rate == {Decimal("5"): Decimal("9"), Decimal("12"): Decimal("12")}
    assert totals.gst_amount == Decimal("21")
    assert totals.grand_total == Decimal("301")
    assert len(totals.breakdowns) == 3


def test_empty_invoice_totals_zero():
    totals = aggregate([], INTRASTATE)
    assert totals.grand_total == 0
    assert totals.round_off == 0
    assert totals.as_dict()["amount_in_words"] == "Zero Rupees Only"


def test_one_bad_line_rejects_invoice():
    lines = [InvoiceLine("Good", 1, 10), InvoiceLine("Bad", 0, 10)]
    with pytest.raises(ValidationError):
        aggregate(lines, INTRASTATE)


def test_bankers_rounding_policy():
    totals = aggregate(
        [InvoiceLine("Masala Chai", 2, 45, gst_rate=5)],
        INTRASTATE,
        policy=RoundingPolicy(mode="bankers"),
    )
    assert totals.grand_total == Decimal("94")
    assert totals.round_off == Decimal("-0.50")


def test_as_dict_shapes_amounts():
    totals = aggregate(
        [
            InvoiceLine("Masala Chai", 2, 45, gst_rate=5),
            InvoiceLine("Odd", 1, 10, gst_rate=7),
        ],
        INTRASTATE,
    )
    data = totals.as_dict()
    assert data["subtotal"] == 100.0
    assert data["cgst"] == 2.6
    assert data["grand_total"] == 105
    assert isinstance(data["grand_total"], int)
    assert data["tax_by_rate"] == {"5": 4.5, "7": 0.7}
    assert data["nonstandard_rates"] is True
    assert data["amount_in_words"] == "One Hundred Five Rupees Only"


line_strategy = st.builds(
    InvoiceLine,
    name=st.just("Item"),
    quantity=st.integers(min_value=1, max_value=50),
    rate=st.decimals(min_value=0, max_value=5000, places=2),
    discount_percent=st.integers(min_value=0, max_value=100),
    gst_rate=st.sampled_from([0, 5, 12, 18, 28]),
)


@given(lines=st.lists(line_strategy, max_size=8), interstate=st.booleans())
def test_totals_reconcile(lines, interstate):
    ctx = INTERSTATE if interstate else INTRASTATE
    totals = aggregate(lines, ctx)
    assert totals.taxable_amount == totals.subtotal - totals.discount_amount
    assert totals.grand_total == totals.unrounded_total + totals.round_off
    assert abs(totals.round_off) <= Decimal("0.5")
    assert totals.grand_total == totals.grand_total.to_integral_value()
    assert sum(totals.tax_by_rate.values(), Decimal("0")) == totals.gst_amount
    if interstate:
        assert totals.cgst == totals.sgst == 0
    else:
        assert totals.igst == 0


def test_paise_follow_rounding_policy():
    lines = [InvoiceLine("Tea", 1, 105, gst_rate=5)]
    totals = aggregate(lines, INTRASTATE)
    assert totals.cgst == Decimal("2.625")
    assert totals.to_paise(totals.cgst) == Decimal("2.63")
    assert totals.as_dict()["cgst"] == 2.63
    assert totals.as_dict()["sgst"] == 2.63

    bankers = aggregate(lines, INTRASTATE, policy=RoundingPolicy(mode="bankers"))
    assert bankers.as_dict()["cgst"] == 2.62
