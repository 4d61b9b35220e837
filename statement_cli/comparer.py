"""
statement-compare: reconcile the transactions of two statement files.

Usage:
  statement-compare -f1 bank.sta -fmt1 mt940 -f2 ledger.csv -fmt2 csv -v

Exit status: 0 when the statements agree under the ``--fail-on`` policy,
1 when they differ or a file cannot be parsed, 2 when a file cannot be
read or the configuration is invalid.
"""

from __future__ import annotations

import argparse
import sys
from typing import TextIO

from statement_cli.common import (
    EXIT_FAILURE,
    EXIT_IO,
    EXIT_OK,
    add_common_arguments,
    format_argument,
    read_source,
    report_error,
    setup,
)
from statement_codecs.conversion import parse_statement
from statement_engines.reconciliation import Diff, MismatchPolicy, Side, compare
from statement_kernel.exceptions import StatementError, StatementIOError
from statement_kernel.logging_config import get_logger

logger = get_logger("cli.comparer")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="statement-compare",
        description="Compare the transactions of two bank statements.",
    )
    parser.add_argument("-f1", "--file1", required=True, help="First statement file")
    parser.add_argument("-fmt1", "--format1", required=True, type=format_argument)
    parser.add_argument("-f2", "--file2", required=True, help="Second statement file")
    parser.add_argument("-fmt2", "--format2", required=True, type=format_argument)
    parser.add_argument(
        "-v", "--verbose", action="store_true",
        help="Also report narrative and reference differences in matched pairs",
    )
    parser.add_argument(
        "--fail-on",
        default=MismatchPolicy.UNMATCHED.value,
        choices=[p.value for p in MismatchPolicy],
        help="What makes the exit status non-zero (default: unmatched)",
    )
    add_common_arguments(parser)
    return parser


def _describe(txn) -> str:
    ref = txn.bank_reference or txn.customer_reference or "-"
    return f"{txn.value_date.isoformat()} {txn.amount} {txn.currency} {ref} {txn.narrative_text}".rstrip()


def write_report(diff: Diff, out: TextIO, *, verbose: bool) -> None:
    print(f"Matched:        {diff.matched_count}", file=out)
    print(f"Only in file 1: {len(diff.only_left)}", file=out)
    print(f"Only in file 2: {len(diff.only_right)}", file=out)
    print(
        f"Match rate:     {diff.match_rate(Side.LEFT)}% of file 1, "
        f"{diff.match_rate(Side.RIGHT)}% of file 2",
        file=out,
    )
    for unmatched in diff.only_left:
        print(f"  < [{unmatched.index}] {_describe(unmatched.transaction)}", file=out)
    for unmatched in diff.only_right:
        print(f"  > [{unmatched.index}] {_describe(unmatched.transaction)}", file=out)
    if verbose:
        print(f"Field mismatches: {diff.mismatch_count}", file=out)
        for pair in diff.matched:
            for mismatch in pair.mismatches:
                print(
                    f"  ~ [{pair.left_index}/{pair.right_index}] {mismatch.field_name}: "
                    f"{mismatch.left!r} != {mismatch.right!r}",
                    file=out,
                )


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        config = setup(args)
        left = parse_statement(read_source(args.file1), args.format1, config)
        right = parse_statement(read_source(args.file2), args.format2, config)
        diff = compare(left, right, verbose=args.verbose)
    except StatementIOError as e:
        report_error(e)
        return EXIT_IO
    except StatementError as e:
        logger.error("compare_failed", exc_info=e)
        report_error(e)
        return EXIT_FAILURE

    write_report(diff, sys.stdout, verbose=args.verbose)
    return EXIT_FAILURE if diff.has_differences(MismatchPolicy(args.fail_on)) else EXIT_OK


if __name__ == "__main__":
    raise SystemExit(main())
