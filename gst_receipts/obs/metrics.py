"""Prometheus counters for rendering and delivery."""

from __future__ import annotations

from prometheus_client import Counter

receipts_rendered_total = Counter(
    "receipts_rendered_total", "Total receipts encoded to ESC/POS", ["width"]
)

print_deliveries_total = Counter(
    "print_deliveries_total",
    "Total receipt deliveries by transport and outcome",
    ["method", "outcome"],
)
