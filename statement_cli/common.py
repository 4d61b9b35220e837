"""Shared plumbing for the command-line tools: I/O, configuration, logging."""

from __future__ import annotations

import argparse
import logging
import sys
import uuid
from dataclasses import replace
from pathlib import Path

import yaml

from statement_codecs.base import Format
from statement_config import get_codec_config
from statement_config.schema import CodecConfig
from statement_kernel.exceptions import StatementIOError, UnsupportedFormatError
from statement_kernel.logging_config import LogContext, configure_logging

STDIO = "-"

EXIT_OK = 0
EXIT_FAILURE = 1  # parse, conversion or compare error; differences found
EXIT_IO = 2  # unreadable input, unwritable output, bad configuration


def add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--config", help="Codec configuration YAML (default: shipped default set)")
    parser.add_argument("--config-set", default="default", help="Name of a shipped configuration set")
    parser.add_argument(
        "--lenient",
        action="store_true",
        help="Accept statements whose balances do not add up",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Structured log level on stderr (default: WARNING)",
    )


def setup(args: argparse.Namespace) -> CodecConfig:
    """Configure logging and load the codec configuration named by ``args``."""
    configure_logging(level=getattr(logging, args.log_level))
    LogContext.set(correlation_id=str(uuid.uuid4()))
    try:
        config = get_codec_config(args.config, set_name=args.config_set)
    except (OSError, ValueError, KeyError, yaml.YAMLError) as e:
        raise StatementIOError(args.config or args.config_set, str(e)) from e
    if args.lenient:
        config = replace(config, lenient_balances=True)
    return config


def read_source(path: str) -> bytes:
    """Bytes of ``path``, or of stdin when ``path`` is ``-``."""
    if path == STDIO:
        return sys.stdin.buffer.read()
    try:
        return Path(path).read_bytes()
    except OSError as e:
        raise StatementIOError(path, e.strerror or str(e)) from e


def write_target(path: str, data: bytes) -> None:
    """Write ``data`` to ``path``, or to stdout when ``path`` is ``-``."""
    if path == STDIO:
        sys.stdout.buffer.write(data)
        sys.stdout.flush()
        return
    try:
        Path(path).write_bytes(data)
    except OSError as e:
        raise StatementIOError(path, e.strerror or str(e)) from e


def report_error(exc: Exception) -> None:
    code = getattr(exc, "code", type(exc).__name__)
    print(f"error [{code}]: {exc}", file=sys.stderr)


def format_argument(value: str) -> Format:
    """argparse ``type=`` for format names and their aliases."""
    try:
        return Format.from_name(value)
    except UnsupportedFormatError as e:
        raise argparse.ArgumentTypeError(str(e)) from e
