import logging
import os

import pytest

from gst_receipts.config import Settings, get_settings

SELLER_GSTIN = "33ABCDE1234F1Z5"


@pytest.fixture(autouse=True)
def _isolated_settings(monkeypatch, tmp_path):
    """Run every test with default settings and no stray .env file."""
    for key in list(os.environ):
        if key.startswith("GST_RECEIPTS_"):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.chdir(tmp_path)
    get_settings.cache_clear()
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
    get_settings.cache_clear()


@pytest.fixture
def settings() -> Settings:
    return get_settings()


@pytest.fixture
def receipt_payload() -> dict:
    return {
        "invoice": {
            "invoice_number": "INV-1001",
            "invoice_date": "2024-03-15",
            "buyer": {"name": "Asha", "phone": "9876543210"},
            "lines": [
                {"name": "Masala Chai", "quantity": 2, "rate": 45, "gst_rate": 5},
            ],
            "payment_method": "upi",
        },
        "store": {
            "name": "Corner Cafe",
            "address_lines": ["12 Market Road"],
            "city": "Chennai",
            "state": "Tamil Nadu",
            "pincode": "600001",
            "gstin": SELLER_GSTIN,
            "phone": "04412345678",
        },
    }
