"""Command-line front end.

Usage:
    styled-md2docx input.md output.docx [--style styles.json] [--set heading.sizes.h2=18]
"""

from __future__ import annotations

import argparse
import logging
import os
import sys

from styled_md2docx.assembler import markdown_to_docx
from styled_md2docx.errors import StyledDocxError
from styled_md2docx.styles import load_style_file, overrides_from_pairs


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="styled-md2docx",
        description="Convert Markdown to a styled DOCX document",
    )
    parser.add_argument("input", help="Input Markdown file")
    parser.add_argument("output", help="Output DOCX file")
    parser.add_argument("--style", dest="style_file", default=None,
                        help="Style file: JSON object or 'dotted.path: value' lines")
    parser.add_argument("--set", dest="overrides", action="append", default=[], metavar="PATH=VALUE",
                        help="Override one style value, e.g. --set paragraph.size=14 (repeatable)")
    parser.add_argument("--no-remote-images", dest="remote_images", action="store_false",
                        help="Do not download http(s) images; they become placeholders")
    parser.add_argument("--verbose", "-v", action="store_true", help="Log conversion details")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")

    if not os.path.isfile(args.input):
        print(f"Error: Input file not found: {args.input}")
        return 1

    styles = {}
    if args.style_file:
        if not os.path.isfile(args.style_file):
            print(f"Error: Style file not found: {args.style_file}")
            return 1
        try:
            styles = load_style_file(args.style_file)
        except ValueError as exc:
            print(f"Error: Invalid style file {args.style_file}: {exc}")
            return 1
        print(f"  Style file: {args.style_file}")

    overrides = overrides_from_pairs(args.overrides)
    if overrides:
        print(f"  Style overrides: {', '.join(args.overrides)}")

    print(f"Reading: {os.path.abspath(args.input)}")
    try:
        model = markdown_to_docx(args.input, args.output, styles=styles, overrides=overrides,
                                 allow_remote_images=args.remote_images)
    except StyledDocxError as exc:
        print(f"Error: {exc}")
        return 1

    print(f"Saved: {os.path.abspath(args.output)}")
    print(f"  Paragraphs: {len(model.paragraphs)}, tables: {len(model.tables)}, "
          f"footnotes: {len(model.footnotes)}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
