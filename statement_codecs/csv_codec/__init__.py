"""CSV codec driven by a configurable column mapping."""

from __future__ import annotations

from collections.abc import Sequence

from statement_codecs.base import Format, check_input_size, decode_text
from statement_codecs.csv_codec.parser import CsvParser
from statement_codecs.csv_codec.writer import CsvWriter
from statement_config.schema import CodecConfig
from statement_kernel.domain.statement import Statement
from statement_kernel.logging_config import get_logger

logger = get_logger("codecs.csv")


class CsvCodec:
    """Parse and write CSV according to ``CodecConfig.csv``."""

    format = Format.CSV

    def __init__(self, config: CodecConfig):
        self.config = config
        self.options = config.csv

    def parse(self, data: bytes) -> list[Statement]:
        check_input_size(data, self.config.max_input_bytes)
        text = decode_text(data, self.options.encoding)
        return CsvParser(self.options, lenient_balances=self.config.lenient_balances).parse(text)

    def write(self, statements: Sequence[Statement]) -> bytes:
        text = CsvWriter(self.options).write(statements)
        logger.debug(
            "statement_written",
            extra={"format": self.format.value, "statement_count": len(statements)},
        )
        return text.encode(self.options.encoding)

    def recognizes_extension(self, key: str) -> bool:
        return key in self.options.extension_keys


__all__ = ["CsvCodec", "CsvParser", "CsvWriter"]
