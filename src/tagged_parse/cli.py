import argparse
import logging
import sys
import time
from pathlib import Path
from typing import List, Optional

from .dump import dump_structure_tree
from .errors import TaggedParseError
from .parser import MarkdownParser, ParserConfig

_logger = logging.getLogger(__name__)


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tagged-parse",
        description="Convert a PDF to Markdown using its structure tree or its page layout.",
    )
    parser.add_argument("pdf_path", help="Path to the input PDF file")
    parser.add_argument(
        "-o", "--output", help="Markdown output path (default: <pdf>.md next to the input)"
    )
    parser.add_argument(
        "--strategy",
        choices=["auto", "structure", "layout"],
        default="auto",
        help="Conversion path; auto uses the structure tree when present",
    )
    parser.add_argument(
        "--tags",
        action="store_true",
        help="Also write a structure tree dump to <pdf>.tags.txt",
    )
    parser.add_argument(
        "--tables",
        action="store_true",
        help="Detect ruled tables on the layout path (pdfplumber)",
    )
    parser.add_argument("--quiet", action="store_true", help="Hide progress bars")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_arg_parser().parse_args(argv)

    # Minimal logging setup when running as a script
    if not logging.getLogger().handlers:
        logging.basicConfig(
            level=logging.DEBUG if args.verbose else logging.INFO,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        )

    pdf_path = Path(args.pdf_path).resolve()
    output_path = Path(args.output) if args.output else pdf_path.with_suffix(".md")

    config = ParserConfig(
        strategy=args.strategy,
        detect_tables=args.tables,
        show_progress=not args.quiet,
    )
    parser = MarkdownParser(config)

    started = time.perf_counter()
    try:
        markdown = parser.convert_pdf(pdf_path)
        output_path.write_text(markdown, encoding="utf-8")
        if args.tags:
            tags_path = pdf_path.with_suffix(".tags.txt")
            tags_path.write_text(dump_structure_tree(pdf_path), encoding="utf-8")
            print(f"Structure tree written to {tags_path}")
    except (FileNotFoundError, TaggedParseError) as e:
        _logger.error("Conversion failed: %s", e)
        return 1
    elapsed = time.perf_counter() - started

    strategy = parser.last_strategy.value if parser.last_strategy else "unknown"
    print(f"Strategy: {strategy}")
    print(f"Pages: {parser.last_page_count}")
    print(f"Markdown written to {output_path}")
    print(f"Elapsed: {elapsed:.2f}s")
    return 0


if __name__ == "__main__":
    sys.exit(main())
