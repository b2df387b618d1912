"""HTTP routes for totals, ESC/POS rendering, preview and printing."""

from __future__ import annotations

import base64

from fastapi import APIRouter, Depends, Request, Response
from .config import Settings, get_settings
from .printing.escpos import commands_to_text, decode
from .printing.receipt_image import render_receipt_image
from .schemas import PreviewResponse, PrintRequest, ReceiptRequest, TotalsRequest
from .services import receipt_service
from .utils.responses import error_response, ok

router = APIRouter(prefix="/api/receipts")


@router.post("/totals")
def receipt_totals(
    payload: TotalsRequest, settings: Settings = Depends(get_settings)
) -> dict:
    """Return the GST breakdown and grand total for an invoice."""
    store = payload.store.to_profile() if payload.store else None
    totals = receipt_service.price_invoice(payload.invoice, settings, store)
    return ok(totals.as_dict())


@router.post("/escpos")
def receipt_escpos(
    payload: ReceiptRequest, settings: Settings = Depends(get_settings)
) -> Response:
    """Return the raw ESC/POS bytes for the receipt."""
    prepared = receipt_service.prepare_receipt(payload, settings)
    return Response(
        content=prepared.payload,
        media_type="application/octet-stream",
        headers={"X-Grand-Total": str(int(prepared.totals.grand_total))},
    )


@router.post("/preview", response_model=PreviewResponse)
def receipt_preview(
    payload: ReceiptRequest, settings: Settings = Depends(get_settings)
) -> PreviewResponse:
    """Decode the rendered receipt back to text and draw it as a PNG."""
    prepared = receipt_service.prepare_receipt(payload, settings)
    commands = decode(prepared.payload, settings.receipt_encoding)
    preview = commands_to_text(commands)
    png_bytes = render_receipt_image(commands, prepared.printer.paper_mm)
    return PreviewResponse(preview=preview, image=base64.b64encode(png_bytes).decode())


@router.post("/print")
async def receipt_print(
    payload: PrintRequest,
    request: Request,
    settings: Settings = Depends(get_settings),
):
    """Deliver the receipt once; transport errors come back as 502/503."""
    transports = getattr(request.app.state, "transports", None)
    prepared, result = await receipt_service.print_receipt(
        payload, settings, transports=transports
    )
    if result.ok:
        return ok(
            {
                "delivery": result.as_dict(),
                "totals": prepared.totals.as_dict(),
                "bytes": len(prepared.payload),
            }
        )
    return error_response(result.error, 503 if result.unavailable else 502)
