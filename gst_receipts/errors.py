"""Exception types raised by the receipt engine."""

from __future__ import annotations


class ReceiptError(Exception):
    """Base error carrying a machine readable ``code`` and optional ``hint``."""

    code = "RECEIPT_ERROR"

    def __init__(
        self, message: str, *, code: str | None = None, hint: str | None = None
    ) -> None:
        super().__init__(message)
        if code is not None:
            self.code = code
        self.hint = hint

    def to_dict(self) -> dict:
        data = {"code": self.code, "message": str(self)}
        if self.hint:
            data["hint"] = self.hint
        return data


class ValidationError(ReceiptError, ValueError):
    """Raised when invoice input is rejected before any computation."""

    code = "VALIDATION"


class EncodingError(ValidationError):
    """Raised for malformed ESC/POS command sequences or payloads."""

    code = "ENCODING"


class TransportError(ReceiptError):
    """Delivery failure scoped to a single transport method."""

    code = "TRANSPORT"

    def __init__(
        self,
        method: str,
        message: str,
        *,
        cause: BaseException | None = None,
        hint: str | None = None,
    ) -> None:
        super().__init__(message, hint=hint)
        self.method = method
        self.cause = cause

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["method"] = self.method
        if self.cause is not None:
            data["cause"] = repr(self.cause)
        return data


class TransportUnavailable(TransportError):
    """The API or device required by the transport is not present."""

    code = "TRANSPORT_UNAVAILABLE"


class TransportFailure(TransportError):
    """The device is present but opening or writing to it failed."""

    code = "TRANSPORT_FAILURE"
