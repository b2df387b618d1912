"""Response envelopes shared by the receipt routes and error handlers."""

from typing import Any, Dict

from fastapi.responses import JSONResponse

from ..errors import ReceiptError, TransportError
from ..middlewares.request_id import request_id_ctx


def ok(data: Any) -> Dict[str, Any]:
    return {"ok": True, "data": data}


def err(
    code: int | str,
    message: str,
    details: Dict[str, Any] | None = None,
    hint: str | None = None,
) -> Dict[str, Any]:
    """Error envelope stamped with the current request id."""
    error: Dict[str, Any] = {"code": code, "message": message}
    if hint:
        error["hint"] = hint
    if details:
        error["details"] = details
    return {"ok": False, "request_id": request_id_ctx.get(), "error": error}


def error_response(exc: ReceiptError, status_code: int) -> JSONResponse:
    """Render ``exc`` as an envelope; transport errors name the failing method."""
    details = {"method": exc.method} if isinstance(exc, TransportError) else None
    return JSONResponse(
        err(exc.code, str(exc), details=details, hint=exc.hint),
        status_code=status_code,
    )
