"""Store and printer profiles consumed by the layout engine."""

from __future__ import annotations

from dataclasses import dataclass

from ..config import PaperWidth, Settings
from ..errors import ValidationError
from ..tax.states import validate_gstin

NARROW_COLUMNS = 32
WIDE_MIN_COLUMNS = 42
WIDE_MAX_COLUMNS = 48


@dataclass(frozen=True)
class PrinterProfile:
    """Paper width class and the resulting characters per line."""

    width: PaperWidth = PaperWidth.WIDE
    columns: int = 0

    def __post_init__(self) -> None:
        width = PaperWidth(self.width)
        object.__setattr__(self, "width", width)
        if width is PaperWidth.NARROW:
            if self.columns not in (0, NARROW_COLUMNS):
                raise ValidationError(
                    f"Narrow paper holds {NARROW_COLUMNS} columns, got {self.columns}"
                )
            object.__setattr__(self, "columns", NARROW_COLUMNS)
            return
        columns = self.columns or WIDE_MAX_COLUMNS
        if not WIDE_MIN_COLUMNS <= columns <= WIDE_MAX_COLUMNS:
            raise ValidationError(
                f"Wide paper holds {WIDE_MIN_COLUMNS}-{WIDE_MAX_COLUMNS} columns, "
                f"got {columns}"
            )
        object.__setattr__(self, "columns", columns)

    @property
    def is_wide(self) -> bool:
        return self.width is PaperWidth.WIDE

    @property
    def paper_mm(self) -> str:
        return "80mm" if self.is_wide else "58mm"

    @classmethod
    def narrow(cls) -> "PrinterProfile":
        return cls(PaperWidth.NARROW)

    @classmethod
    def wide(cls, columns: int = WIDE_MAX_COLUMNS) -> "PrinterProfile":
        return cls(PaperWidth.WIDE, columns)

    @classmethod
    def from_settings(cls, settings: Settings) -> "PrinterProfile":
        if settings.paper_width is PaperWidth.NARROW:
            return cls.narrow()
        return cls.wide(settings.wide_columns)


@dataclass(frozen=True)
class StoreProfile:
    """Seller details printed in the receipt header."""

    name: str
    address_lines: tuple[str, ...] = ()
    city: str | None = None
    state: str | None = None
    pincode: str | None = None
    gstin: str | None = None
    phone: str | None = None

    def __post_init__(self) -> None:
        if not self.name.strip():
            raise ValidationError("Store name is required")
        object.__setattr__(self, "address_lines", tuple(self.address_lines))
        if self.gstin:
            object.__setattr__(self, "gstin", validate_gstin(self.gstin))

    @property
    def city_line(self) -> str | None:
        if self.city and self.state and self.pincode:
            return f"{self.city}, {self.state} - {self.pincode}"
        return None

    @property
    def state_code(self) -> str | None:
        return self.gstin[:2] if self.gstin else None
