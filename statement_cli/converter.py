"""
statement-convert: re-emit a statement file in another format.

Usage:
  statement-convert -i in.sta -if mt940 -o out.xml -of camt053
  cat export.csv | statement-convert -if csv -of mt940 > out.sta

Exit status: 0 on success, 1 on a parse or conversion error, 2 when the
input cannot be read, the output cannot be written or the configuration
is invalid.
"""

from __future__ import annotations

import argparse

from statement_cli.common import (
    EXIT_FAILURE,
    EXIT_IO,
    EXIT_OK,
    STDIO,
    add_common_arguments,
    format_argument,
    read_source,
    report_error,
    setup,
    write_target,
)
from statement_codecs.conversion import convert
from statement_kernel.exceptions import StatementError, StatementIOError
from statement_kernel.logging_config import get_logger

logger = get_logger("cli.converter")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="statement-convert",
        description="Convert a bank statement between MT940, CAMT.053 and CSV.",
    )
    parser.add_argument("-i", "--input", default=STDIO, help="Input file (default: stdin)")
    parser.add_argument("-o", "--output", default=STDIO, help="Output file (default: stdout)")
    parser.add_argument(
        "-if", "--input-format", required=True, type=format_argument,
        help="mt940, camt053 or csv",
    )
    parser.add_argument(
        "-of", "--output-format", required=True, type=format_argument,
        help="mt940, camt053 or csv",
    )
    add_common_arguments(parser)
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        config = setup(args)
        data = read_source(args.input)
        output = convert(data, args.input_format, args.output_format, config)
        write_target(args.output, output)
    except StatementIOError as e:
        report_error(e)
        return EXIT_IO
    except StatementError as e:
        logger.error("conversion_failed", exc_info=e)
        report_error(e)
        return EXIT_FAILURE
    return EXIT_OK


if __name__ == "__main__":
    raise SystemExit(main())
