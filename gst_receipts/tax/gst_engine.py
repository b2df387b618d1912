from __future__ import annotations

"""GST calculation for invoice lines.

Amounts are carried as :class:`~decimal.Decimal`. A line's tax is split into
CGST and SGST halves for intrastate sales and charged as IGST otherwise.
Per-line rounding is optional and controlled by :class:`RoundingPolicy`.
"""

import logging
from dataclasses import dataclass
from decimal import (
    ROUND_CEILING,
    ROUND_FLOOR,
    ROUND_HALF_EVEN,
    ROUND_HALF_UP,
    Decimal,
    InvalidOperation,
)

from ..errors import ValidationError
from .states import normalise_state_code, state_code_from_gstin

logger = logging.getLogger("gst_receipts.tax")

GST_RATES = frozenset(Decimal(r) for r in ("0", "5", "12", "18", "28"))

ZERO = Decimal("0")
HUNDRED = Decimal("100")
TWO = Decimal("2")

ROUNDING_MAP = {
    "half-up": ROUND_HALF_UP,
    "bankers": ROUND_HALF_EVEN,
    "ceil": ROUND_CEILING,
    "floor": ROUND_FLOOR,
}


def to_decimal(value: object, field: str) -> Decimal:
    """Convert ``value`` to ``Decimal`` going through ``str`` like the billing code."""
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            result = Decimal(str(value))
        except (InvalidOperation, ValueError) as exc:
            raise ValidationError(f"{field} is not a number: {value!r}") from exc
    if not result.is_finite():
        raise ValidationError(f"{field} must be finite: {value!r}")
    return result


@dataclass(frozen=True)
class RoundingPolicy:
    """How amounts are rounded.

    ``mode`` picks the tie-breaking rule used for the whole-rupee grand total
    (and for line amounts when ``line_precision`` is set). ``line_precision``
    of ``None`` keeps exact line amounts; ``Decimal("0.01")`` rounds every
    line's tax to paise before it is summed.
    """

    mode: str = "half-up"
    line_precision: Decimal | None = None

    def __post_init__(self) -> None:
        if self.mode not in ROUNDING_MAP:
            raise ValidationError(f"Unsupported rounding mode: {self.mode}")
        if self.line_precision is not None:
            object.__setattr__(
                self, "line_precision", to_decimal(self.line_precision, "line_precision")
            )

    @property
    def rounding(self) -> str:
        return ROUNDING_MAP[self.mode]

    def quantize_line(self, amount: Decimal) -> Decimal:
        if self.line_precision is None:
            return amount
        return amount.quantize(self.line_precision, rounding=self.rounding)

    def round_total(self, amount: Decimal) -> Decimal:
        """Round to the nearest rupee using the policy's mode."""
        return amount.quantize(Decimal("1"), rounding=self.rounding)


DEFAULT_POLICY = RoundingPolicy()


@dataclass(frozen=True)
class InvoiceLine:
    """Single priced line of an invoice."""

    name: str
    quantity: Decimal
    rate: Decimal
    discount_percent: Decimal = ZERO
    gst_rate: Decimal = ZERO
    hsn: str | None = None

    def __post_init__(self) -> None:
        for field in ("quantity", "rate", "discount_percent", "gst_rate"):
            object.__setattr__(self, field, to_decimal(getattr(self, field), field))

    @property
    def subtotal(self) -> Decimal:
        return self.quantity * self.rate


@dataclass(frozen=True)
class TaxContext:
    """Whether the sale stays inside the seller's state."""

    is_intrastate: bool = True

    @classmethod
    def from_state_codes(
        cls,
        seller_state_code: str | None,
        buyer_state_code: str | None = None,
        *,
        buyer_gstin: str | None = None,
    ) -> "TaxContext":
        """Compare state codes; a buyer with no known state is treated as local.

        The buyer's state falls back to the first two digits of their GSTIN.
        """
        seller = normalise_state_code(seller_state_code)
        buyer = normalise_state_code(buyer_state_code) or state_code_from_gstin(
            buyer_gstin
        )
        if seller is None or buyer is None:
            return cls(is_intrastate=True)
        return cls(is_intrastate=seller == buyer)


INTRASTATE = TaxContext(is_intrastate=True)
INTERSTATE = TaxContext(is_intrastate=False)


@dataclass(frozen=True)
class TaxBreakdown:
    """Tax computed for one line (or summed over several)."""

    taxable_amount: Decimal
    cgst: Decimal = ZERO
    sgst: Decimal = ZERO
    igst: Decimal = ZERO
    subtotal: Decimal = ZERO
    discount_amount: Decimal = ZERO
    gst_rate: Decimal = ZERO
    nonstandard_rate: bool = False

    @property
    def gst_amount(self) -> Decimal:
        return self.cgst + self.sgst + self.igst

    @property
    def total(self) -> Decimal:
        return self.taxable_amount + self.gst_amount


def validate_line(line: InvoiceLine, *, strict_rates: bool = False) -> bool:
    """Reject unusable lines; return ``True`` when the GST rate is non-standard."""
    if line.quantity <= ZERO:
        raise ValidationError(
            f"Quantity must be positive for {line.name!r}: {line.quantity}",
            code="INVALID_QUANTITY",
        )
    if line.rate < ZERO:
        raise ValidationError(
            f"Rate cannot be negative for {line.name!r}: {line.rate}",
            code="INVALID_RATE",
        )
    if not ZERO <= line.discount_percent <= HUNDRED:
        raise ValidationError(
            f"Discount must be between 0 and 100 for {line.name!r}: "
            f"{line.discount_percent}",
            code="INVALID_DISCOUNT",
        )
    if line.gst_rate < ZERO:
        raise ValidationError(
            f"GST rate cannot be negative for {line.name!r}: {line.gst_rate}",
            code="INVALID_GST_RATE",
        )
    nonstandard = line.gst_rate not in GST_RATES
    if nonstandard and strict_rates:
        raise ValidationError(
            f"GST rate {line.gst_rate}% is not one of 0/5/12/18/28",
            code="INVALID_GST_RATE",
            hint="Disable strict_gst_rates to allow other rates",
        )
    return nonstandard


def compute_line_tax(
    line: InvoiceLine,
    ctx: TaxContext,
    *,
    policy: RoundingPolicy | None = None,
    strict_rates: bool = False,
) -> TaxBreakdown:
    """Return the GST breakdown for ``line``.

    The discount is applied before tax. Lines carrying a rate outside the
    standard slabs are still taxed at that rate and flagged.
    """
    policy = policy or DEFAULT_POLICY
    nonstandard = validate_line(line, strict_rates=strict_rates)
    if nonstandard:
        logger.warning(
            "non-standard GST rate %s%% on %s", line.gst_rate, line.name
        )

    subtotal = line.subtotal
    discount_amount = policy.quantize_line(subtotal * line.discount_percent / HUNDRED)
    taxable = subtotal - discount_amount
    gst_amount = taxable * line.gst_rate / HUNDRED

    if ctx.is_intrastate:
        half = policy.quantize_line(gst_amount / TWO)
        cgst, sgst, igst = half, half, ZERO
    else:
        cgst, sgst, igst = ZERO, ZERO, policy.quantize_line(gst_amount)

    return TaxBreakdown(
        taxable_amount=taxable,
        cgst=cgst,
        sgst=sgst,
        igst=igst,
        subtotal=subtotal,
        discount_amount=discount_amount,
        gst_rate=line.gst_rate,
        nonstandard_rate=nonstandard,
    )
