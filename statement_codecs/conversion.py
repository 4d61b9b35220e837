"""
Conversion layer -- parse, serialize and convert between statement formats.

Responsibility:
    Route raw bytes to the right codec, and move statements from one
    format to another through the canonical model.

Architecture position:
    Codecs -- the only module the CLI and library callers need to import
    for format work.  Uses ``statement_config`` for the default
    configuration and the registry for codec lookup.

Invariants enforced:
    - Conversion never mutates a parsed statement; canonicalizing for a
      target produces new Transaction and Statement values.
    - Extension keys the target codec does not recognize are dropped and
      counted in a debug record, never raised as errors.
    - Mandatory canonical fields the target cannot carry raise
      UnsupportedFieldMappingError from the target writer.

Failure modes:
    - UnsupportedFormatError for unknown format names.
    - Any ParseError from the source codec, unmodified.
    - ConversionError from the target codec, unmodified.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import replace

from statement_codecs.base import Format, StatementCodec
from statement_codecs.registry import get_codec
from statement_config import get_codec_config
from statement_config.schema import CodecConfig
from statement_kernel.domain.statement import Statement
from statement_kernel.exceptions import MissingMandatoryFieldError
from statement_kernel.logging_config import LogContext, get_logger

logger = get_logger("codecs.conversion")


def _config(config: CodecConfig | None) -> CodecConfig:
    return config if config is not None else get_codec_config()


def parse_statements(
    data: bytes,
    format: Format | str,
    config: CodecConfig | None = None,
) -> list[Statement]:
    """Decode every statement in ``data`` using the codec for ``format``."""
    return get_codec(format, _config(config)).parse(data)


def parse_statement(
    data: bytes,
    format: Format | str,
    config: CodecConfig | None = None,
) -> Statement:
    """First statement in ``data``."""
    statements = parse_statements(data, format, config)
    if not statements:
        raise MissingMandatoryFieldError("statement")
    return statements[0]


def serialize(
    statements: Statement | Sequence[Statement],
    format: Format | str,
    config: CodecConfig | None = None,
) -> bytes:
    """Encode one statement or a sequence of statements as ``format``."""
    if isinstance(statements, Statement):
        statements = [statements]
    return get_codec(format, _config(config)).write(list(statements))


def canonicalize_for(
    statement: Statement,
    codec: StatementCodec,
    *,
    strict: bool = True,
) -> tuple[Statement, list[str]]:
    """
    Copy of ``statement`` keeping only extension keys ``codec`` can carry.

    Returns the new statement and the sorted list of dropped keys.
    """
    dropped: set[str] = set()

    def keep(extensions) -> dict[str, str]:
        kept = {}
        for key, value in extensions.items():
            if codec.recognizes_extension(key):
                kept[key] = value
            else:
                dropped.add(key)
        return kept

    transactions = tuple(
        txn.with_extensions(keep(txn.extensions)) for txn in statement.transactions
    )
    result = replace(
        statement,
        transactions=transactions,
        extensions=keep(statement.extensions),
        strict=strict,
    )
    return result, sorted(dropped)


def convert(
    source: bytes,
    source_format: Format | str,
    target_format: Format | str,
    config: CodecConfig | None = None,
) -> bytes:
    """
    Parse ``source`` as ``source_format`` and re-emit it as ``target_format``.

    Raises:
        ParseError: The source could not be decoded.
        ConversionError: The target cannot represent the statement.
    """
    config = _config(config)
    source_fmt = Format.from_name(source_format)
    target_fmt = Format.from_name(target_format)

    with LogContext.bind(source_format=source_fmt.value, target_format=target_fmt.value):
        statements = get_codec(source_fmt, config).parse(source)
        target = get_codec(target_fmt, config)

        canonical: list[Statement] = []
        for statement in statements:
            with LogContext.bind(statement_id=statement.statement_id):
                converted, dropped = canonicalize_for(
                    statement, target, strict=not config.lenient_balances
                )
                if dropped:
                    logger.debug(
                        "extensions_dropped",
                        extra={"dropped_count": len(dropped), "dropped_keys": dropped},
                    )
            canonical.append(converted)

        output = target.write(canonical)
        logger.info(
            "conversion_completed",
            extra={
                "statement_count": len(canonical),
                "transaction_count": sum(len(s.transactions) for s in canonical),
                "output_bytes": len(output),
            },
        )
        return output
