import argparse
import sys
import os
import json
import logging
import traceback
from dataclasses import asdict

from .batch import InvoiceBatch
from .check_env import check_env
from .config import load_config, LayoutConfig
from .export import export_excel
from .invoice_parser import InvoiceParser
from .layout import group_rows
from .models import Invoice, TextToken
from .pdf_reader import tokenize_pdf

logger = logging.getLogger(__name__)
DEFAULT_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def emit(payload: dict):
    # stdout is a line protocol for the desktop shell; logs go to stderr
    print(json.dumps(payload, ensure_ascii=False), flush=True)


def list_pdfs(folder: str):
    return sorted(
        os.path.join(folder, f) for f in os.listdir(folder) if f.lower().endswith('.pdf')
    )


def setup_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Chinese VAT e-invoice layout parser")
    parser.add_argument("--config", help="JSON file overriding layout thresholds")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    parse_cmd = subparsers.add_parser("parse", help="Batch parse PDFs")
    source = parse_cmd.add_mutually_exclusive_group(required=True)
    source.add_argument("--folder", help="Folder containing PDFs")
    source.add_argument("--files", nargs="+", help="PDF files, processed in the given order")

    text_cmd = subparsers.add_parser("parse-text", help="Parse pages of text tokens read from stdin")
    text_cmd.add_argument("--filename", required=True, help="Name recorded on the invoices")

    export_cmd = subparsers.add_parser("export", help="Export invoices read from stdin to Excel")
    export_cmd.add_argument("--output", required=True, help="Output Excel file path")
    export_cmd.add_argument("--details", action="store_true", help="Add a sheet with line items")
    export_cmd.add_argument("--fields", nargs="+", help="Summary columns to export")

    dump_cmd = subparsers.add_parser("dump", help="Dump positioned text rows of a PDF")
    dump_cmd.add_argument("--file", required=True, help="PDF file path")

    subparsers.add_parser("check-env", help="Check that the parser dependencies import")
    return parser


def run_parse(args, config: LayoutConfig):
    files = args.files or list_pdfs(args.folder)
    batch = InvoiceBatch(
        parser=InvoiceParser(config),
        on_progress=lambda stats: emit({"type": "progress", "data": asdict(stats)}),
    )
    stats = batch.run(files)
    logger.info("Parsed %d file(s): %d normal, %d duplicate, %d failed",
                len(files), stats.success_count, stats.duplicate_count, stats.fail_count)
    emit({
        "type": "result",
        "data": {
            "invoices": [inv.to_dict() for inv in batch.get_invoices()],
            "stats": asdict(stats),
        }
    })


def run_parse_text(args, config: LayoutConfig):
    # [[{"text", "x", "y", "width", "height", "pageIndex", "fontName"}, ...], ...]
    input_data = sys.stdin.read()
    if not input_data:
        raise ValueError("No input data provided")

    pages = [[TextToken.from_dict(item) for item in page] for page in json.loads(input_data)]
    invoices = InvoiceParser(config).parse_pages(pages, args.filename)
    emit({"type": "result", "data": [inv.to_dict() for inv in invoices]})


def run_export(args):
    input_data = sys.stdin.read()
    if not input_data:
        raise ValueError("No input data provided")

    invoices = [Invoice.from_dict(inv) for inv in json.loads(input_data)]
    export_excel(invoices, args.output, with_details=args.details, fields=args.fields)
    emit({"success": True, "file_path": args.output})


def run_dump(args, config: LayoutConfig):
    pages = tokenize_pdf(args.file, config=config)
    out = []
    for page_index, tokens in enumerate(pages):
        rows = group_rows(tokens, config.row_tolerance)
        out.append({
            "page": page_index + 1,
            "rows": [
                [{"text": t.text, "x": round(t.x, 2), "y": round(t.y, 2), "width": round(t.width, 2)}
                 for t in row]
                for row in rows
            ],
        })
    emit({"success": True, "file": args.file, "pages": out})


def main(argv=None):
    parser = setup_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format=DEFAULT_LOG_FORMAT,
        stream=sys.stderr,
    )

    try:
        config = load_config(args.config) if args.config else LayoutConfig()

        if args.command == "parse":
            run_parse(args, config)
        elif args.command == "parse-text":
            run_parse_text(args, config)
        elif args.command == "export":
            run_export(args)
        elif args.command == "dump":
            run_dump(args, config)
        elif args.command == "check-env":
            emit(check_env())
        else:
            parser.print_help()
            return 1

    except Exception as e:
        traceback.print_exc(file=sys.stderr)
        emit({
            "type": "error",
            "message": str(e)
        })
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
