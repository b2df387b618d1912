"""Spell out rupee amounts using the Indian lakh/crore grouping."""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

ONES = ["", "One", "Two", "Three", "Four", "Five", "Six", "Seven", "Eight", "Nine"]
TEENS = [
    "Ten",
    "Eleven",
    "Twelve",
    "Thirteen",
    "Fourteen",
    "Fifteen",
    "Sixteen",
    "Seventeen",
    "Eighteen",
    "Nineteen",
]
TENS = ["", "", "Twenty", "Thirty", "Forty", "Fifty", "Sixty", "Seventy", "Eighty", "Ninety"]


def _below_thousand(n: int) -> str:
    if n == 0:
        return ""
    if n < 10:
        return ONES[n]
    if n < 20:
        return TEENS[n - 10]
    if n < 100:
        return TENS[n // 10] + (" " + ONES[n % 10] if n % 10 else "")
    rest = _below_thousand(n % 100)
    return ONES[n // 100] + " Hundred" + (" " + rest if rest else "")


def number_to_words(num: int) -> str:
    """Return ``num`` in words, e.g. ``125000`` -> ``One Lakh Twenty Five Thousand``."""
    if num < 0:
        return "Minus " + number_to_words(-num)
    if num == 0:
        return "Zero"
    parts: list[str] = []
    for divisor, label in ((10_000_000, "Crore"), (100_000, "Lakh"), (1000, "Thousand")):
        if num >= divisor:
            head, num = divmod(num, divisor)
            # crores can exceed 99, so recurse for the head
            words = number_to_words(head) if head >= 1000 else _below_thousand(head)
            parts.append(f"{words} {label}")
    if num:
        parts.append(_below_thousand(num))
    return " ".join(parts)


def amount_in_words(amount: Decimal) -> str:
    """``Decimal("1062.50")`` -> ``"One Thousand Sixty Two Rupees and Fifty Paise Only"``."""
    amount = amount.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    rupees = int(amount)
    paise = int((amount - rupees) * 100)
    words = number_to_words(rupees) + " Rupees"
    if paise > 0:
        words += " and " + number_to_words(paise) + " Paise"
    return words + " Only"
