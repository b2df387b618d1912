# config.py

"""Engine configuration utilities.

Values are loaded from an optional JSON file named by ``GST_RECEIPTS_CONFIG``
and may be overridden by environment variables. The :func:`get_settings`
helper merges the two sources and caches the result.
"""

from __future__ import annotations

import json
import os
from enum import Enum
from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

CONFIG_ENV = "GST_RECEIPTS_CONFIG"


class PaperWidth(str, Enum):
    """Thermal paper classes supported by the layout engine.

    ``NARROW`` is 58mm paper with a 32 column budget. ``WIDE`` is 80mm paper
    whose budget is configurable between 42 and 48 columns.
    """

    NARROW = "narrow"
    WIDE = "wide"


class Settings(BaseSettings):
    """Engine settings merged from JSON and environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env", env_prefix="GST_RECEIPTS_", extra="ignore"
    )

    seller_state_code: str = "33"
    paper_width: PaperWidth = PaperWidth.WIDE
    wide_columns: int = Field(default=48, ge=42, le=48)
    delivery_method: str = "preview"
    serial_port: str | None = None
    serial_baudrate: int = 9600
    serial_timeout: float = 5.0
    bluetooth_service_uuid: str = "000018f0-0000-1000-8000-00805f9b34fb"
    bluetooth_characteristic_uuid: str = "00002af1-0000-1000-8000-00805f9b34fb"
    bluetooth_scan_timeout: float = 10.0
    bluetooth_chunk_size: int = Field(default=20, ge=1, le=512)
    receipt_encoding: str = "utf-8"
    currency_symbol: str = "₹"
    rounding_mode: str = "half-up"
    line_precision: str | None = None
    strict_gst_rates: bool = False
    footer: str | None = "Thank you for shopping with us!"
    terms: str | None = None
    log_level: str = "INFO"


def _read_config_file() -> dict:
    path = os.getenv(CONFIG_ENV)
    if not path:
        return {}
    return json.loads(Path(path).read_text())


# Cached singleton to avoid repeated file reads
@lru_cache
def get_settings() -> Settings:
    """Return merged settings with environment variable precedence.

    Values from the JSON file are passed as init arguments, so anything set in
    the environment has to be applied on top explicitly.
    """

    data = _read_config_file()
    prefix = "GST_RECEIPTS_"
    env_override = {
        k[len(prefix):].lower(): v
        for k, v in os.environ.items()
        if k.startswith(prefix) and k[len(prefix):].lower() in Settings.model_fields
    }
    merged = {**data, **env_override}
    # Environment variables override values from the JSON file.
    return Settings(**merged)
