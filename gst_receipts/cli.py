"""Command line entry point.

Examples:
  gst-receipts totals invoice.json
  gst-receipts render invoice.json -o receipt.bin
  gst-receipts preview invoice.json
  gst-receipts print invoice.json --method serial_port
  gst-receipts serve --port 8000
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

from dotenv import load_dotenv
from pydantic import ValidationError as SchemaError

from .config import get_settings
from .errors import ReceiptError
from .obs.logging import configure_logging
from .schemas import PrintRequest
from .services import receipt_service

logger = logging.getLogger("gst_receipts.cli")


def _load_request(path: str) -> PrintRequest:
    return PrintRequest.model_validate_json(Path(path).read_text(encoding="utf-8"))


def _cmd_totals(args: argparse.Namespace) -> int:
    settings = get_settings()
    request = _load_request(args.file)
    totals = receipt_service.price_invoice(
        request.invoice, settings, request.store.to_profile()
    )
    print(json.dumps(totals.as_dict(), indent=2, ensure_ascii=False))
    return 0


def _cmd_render(args: argparse.Namespace) -> int:
    prepared = receipt_service.prepare_receipt(_load_request(args.file), get_settings())
    if args.output == "-":
        sys.stdout.buffer.write(prepared.payload)
    else:
        Path(args.output).write_bytes(prepared.payload)
        print(f"wrote {len(prepared.payload)} bytes to {args.output}")
    return 0


def _cmd_preview(args: argparse.Namespace) -> int:
    prepared = receipt_service.prepare_receipt(_load_request(args.file), get_settings())
    print(prepared.rendered.text)
    return 0


def _cmd_print(args: argparse.Namespace) -> int:
    request = _load_request(args.file)
    if args.method:
        request.method = args.method
    _, result = asyncio.run(receipt_service.print_receipt(request, get_settings()))
    print(json.dumps(result.as_dict(), indent=2))
    return 0 if result.ok else 3


def _cmd_serve(args: argparse.Namespace) -> int:
    import uvicorn

    from .main import create_app

    uvicorn.run(create_app(), host=args.host, port=args.port)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="gst-receipts", description=__doc__,
                                     formatter_class=argparse.RawDescriptionHelpFormatter)
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("totals", help="Print the GST breakdown as JSON")
    p.add_argument("file", help="Receipt request JSON")
    p.set_defaults(func=_cmd_totals)

    p = sub.add_parser("render", help="Write the ESC/POS payload")
    p.add_argument("file", help="Receipt request JSON")
    p.add_argument("-o", "--output", default="-", help="Output path, '-' for stdout")
    p.set_defaults(func=_cmd_render)

    p = sub.add_parser("preview", help="Print the receipt text")
    p.add_argument("file", help="Receipt request JSON")
    p.set_defaults(func=_cmd_preview)

    p = sub.add_parser("print", help="Deliver the receipt to a printer")
    p.add_argument("file", help="Receipt request JSON")
    p.add_argument(
        "--method",
        help="hidden_frame, serial_port, bluetooth or preview (default from settings)",
    )
    p.set_defaults(func=_cmd_print)

    p = sub.add_parser("serve", help="Run the HTTP API")
    p.add_argument("--host", default="127.0.0.1")
    p.add_argument("--port", type=int, default=8000)
    p.set_defaults(func=_cmd_serve)
    return parser


def main(argv: list[str] | None = None) -> int:
    load_dotenv()  # load environment variables from a .env file
    args = build_parser().parse_args(argv)
    configure_logging(get_settings().log_level.upper())
    try:
        return args.func(args)
    except (ReceiptError, SchemaError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2
    except OSError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
