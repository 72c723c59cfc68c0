#!/usr/bin/env python3
"""
tsmerge CLI

Merge a TypeScript file and every local file it imports into one text
blob, with import/export statements removed and a header before each file.
"""

import argparse
import logging
import sys
from pathlib import Path

from exporters import to_ascii, to_json
from scanner.builder import merge_from


def parse_args(args=None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="tsmerge",
        description="Merge a TypeScript file and its local imports into a single text.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  tsmerge src/index.ts                   # Merged source on stdout
  tsmerge src/index.ts -o merged.ts      # Merged source to a file
  tsmerge src/index.ts -f tree           # Show the import tree that was merged
  tsmerge src/index.ts -f json           # JSON manifest of merged files
        """,
    )

    # Positional arguments
    parser.add_argument(
        "file",
        help="File to start merging from",
    )

    # Output options
    parser.add_argument(
        "-o", "--output",
        type=str,
        default=None,
        help="Output file path (default: stdout)",
    )

    parser.add_argument(
        "-f", "--format",
        choices=["text", "tree", "json"],
        default="text",
        help="Output format: merged source text, import tree, or JSON manifest (default: text)",
    )

    # Tree-specific options
    parser.add_argument(
        "--ascii-style",
        choices=["tree", "ascii"],
        default="tree",
        help="Tree output style: 'tree' (Unicode) or 'ascii' (pure ASCII)",
    )

    parser.add_argument(
        "--relative-to",
        type=str,
        default=None,
        help="Base path for relative path display in tree and JSON output "
             "(default: current directory)",
    )

    parser.add_argument(
        "--ignore-external",
        action="store_true",
        help="Hide external (third-party) imports from tree output",
    )

    parser.add_argument(
        "--ignore-unresolved",
        action="store_true",
        help="Hide unresolved imports from tree output",
    )

    parser.add_argument(
        "--include-content",
        action="store_true",
        help="Include the merged text in JSON output",
    )

    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Log resolution details to stderr",
    )

    return parser.parse_args(args)


def main(args=None):
    """Main entry point."""
    parsed = parse_args(args)

    logging.basicConfig(
        level=logging.DEBUG if parsed.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    start = Path(parsed.file).resolve()
    base = Path(parsed.relative_to).resolve() if parsed.relative_to else Path.cwd()

    # Merge; any failure discards partial work
    try:
        result = merge_from(start)
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    # Generate output
    if parsed.format == "tree":
        output = to_ascii(
            graph=result.graph,
            root=base,
            style=parsed.ascii_style,
            include_external=not parsed.ignore_external,
            include_unresolved=not parsed.ignore_unresolved,
        )
    elif parsed.format == "json":
        output = to_json(
            result=result,
            root=base,
            include_content=parsed.include_content,
        )
    else:  # text (default)
        output = result.text

    # Write output
    if parsed.output:
        try:
            output_path = Path(parsed.output)
            output_path.write_text(output, encoding="utf-8")
            print(f"Output written to: {output_path} ({len(result.graph)} file(s))", file=sys.stderr)
        except Exception as e:
            print(f"Error writing output: {e}", file=sys.stderr)
            return 1
    elif parsed.format == "text":
        # Byte-identical to the merged text
        sys.stdout.write(output)
    else:
        print(output)

    return 0


if __name__ == "__main__":
    sys.exit(main())
