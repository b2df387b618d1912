"""Fold line tax breakdowns into invoice totals."""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Sequence

from ..utils.amount_words import amount_in_words
from .gst_engine import (
    DEFAULT_POLICY,
    ZERO,
    InvoiceLine,
    RoundingPolicy,
    TaxBreakdown,
    TaxContext,
    compute_line_tax,
)

logger = logging.getLogger("gst_receipts.tax")

CENT = Decimal("0.01")


@dataclass(frozen=True)
class InvoiceTotals:
    """Invoice level amounts ready for display and printing."""

    subtotal: Decimal
    discount_amount: Decimal
    taxable_amount: Decimal
    cgst: Decimal
    sgst: Decimal
    igst: Decimal
    round_off: Decimal
    grand_total: Decimal
    is_intrastate: bool = True
    breakdowns: tuple[TaxBreakdown, ...] = ()
    tax_by_rate: dict[Decimal, Decimal] = field(default_factory=dict)
    rounding: str = ROUND_HALF_UP

    @property
    def gst_amount(self) -> Decimal:
        return self.cgst + self.sgst + self.igst

    @property
    def unrounded_total(self) -> Decimal:
        return self.taxable_amount + self.gst_amount

    @property
    def has_nonstandard_rates(self) -> bool:
        return any(b.nonstandard_rate for b in self.breakdowns)

    @property
    def amount_in_words(self) -> str:
        return amount_in_words(self.grand_total)

    def to_paise(self, value: Decimal) -> Decimal:
        """Round ``value`` to paise with the same rule as the grand total."""
        return value.quantize(CENT, rounding=self.rounding)

    def as_dict(self) -> dict:
        """Render-friendly mapping with amounts rounded to paise."""

        def money(value: Decimal) -> float:
            return float(self.to_paise(value))

        return {
            "subtotal": money(self.subtotal),
            "discount_amount": money(self.discount_amount),
            "taxable_amount": money(self.taxable_amount),
            "cgst": money(self.cgst),
            "sgst": money(self.sgst),
            "igst": money(self.igst),
            "round_off": money(self.round_off),
            "grand_total": int(self.grand_total),
            "is_intrastate": self.is_intrastate,
            "tax_by_rate": {
                format(rate.normalize(), "f"): money(amount)
                for rate, amount in self.tax_by_rate.items()
            },
            "nonstandard_rates": self.has_nonstandard_rates,
            "amount_in_words": self.amount_in_words,
        }


def fold(
    breakdowns: Sequence[TaxBreakdown],
    ctx: TaxContext,
    *,
    policy: RoundingPolicy | None = None,
) -> InvoiceTotals:
    """Sum ``breakdowns`` and apply the whole-rupee round-off stage."""
    policy = policy or DEFAULT_POLICY
    subtotal = discount = taxable = cgst = sgst = igst = ZERO
    by_rate: defaultdict[Decimal, Decimal] = defaultdict(lambda: ZERO)
    for b in breakdowns:
        subtotal += b.subtotal
        discount += b.discount_amount
        taxable += b.taxable_amount
        cgst += b.cgst
        sgst += b.sgst
        igst += b.igst
        by_rate[b.gst_rate] += b.gst_amount

    unrounded = taxable + cgst + sgst + igst
    grand_total = policy.round_total(unrounded)
    round_off = grand_total - unrounded

    return InvoiceTotals(
        subtotal=subtotal,
        discount_amount=discount,
        taxable_amount=taxable,
        cgst=cgst,
        sgst=sgst,
        igst=igst,
        round_off=round_off,
        grand_total=grand_total,
        is_intrastate=ctx.is_intrastate,
        breakdowns=tuple(breakdowns),
        tax_by_rate=dict(sorted(by_rate.items())),
        rounding=policy.rounding,
    )


def aggregate(
    lines: Iterable[InvoiceLine],
    ctx: TaxContext,
    *,
    policy: RoundingPolicy | None = None,
    strict_rates: bool = False,
) -> InvoiceTotals:
    """Compute every line's tax and fold the results into :class:`InvoiceTotals`.

    Every line is validated before any total is produced, so a bad line
    rejects the whole invoice.
    """
    breakdowns = [
        compute_line_tax(line, ctx, policy=policy, strict_rates=strict_rates)
        for line in lines
    ]
    totals = fold(breakdowns, ctx, policy=policy)
    logger.debug(
        "aggregated %d lines: taxable=%s gst=%s total=%s",
        len(breakdowns),
        totals.taxable_amount,
        totals.gst_amount,
        totals.grand_total,
    )
    return totals
