"""MT940 (SWIFT customer statement) codec."""

from __future__ import annotations

from collections.abc import Sequence

from statement_codecs.base import Format, check_input_size, decode_text
from statement_codecs.mt940.parser import Mt940Parser, Mt940State, TagRecord, tokenize
from statement_codecs.mt940.writer import Mt940Writer
from statement_config.schema import CodecConfig
from statement_kernel.domain.statement import Statement
from statement_kernel.logging_config import get_logger

logger = get_logger("codecs.mt940")

EXTENSION_PREFIX = "mt940."


class Mt940Codec:
    """Parse and write MT940 according to ``CodecConfig.mt940``."""

    format = Format.MT940

    def __init__(self, config: CodecConfig):
        self.config = config
        self.options = config.mt940

    def parse(self, data: bytes) -> list[Statement]:
        check_input_size(data, self.config.max_input_bytes)
        text = decode_text(data, self.options.encoding)
        parser = Mt940Parser(self.options, lenient_balances=self.config.lenient_balances)
        return parser.parse(text)

    def write(self, statements: Sequence[Statement]) -> bytes:
        text = Mt940Writer(self.options).write(statements)
        logger.debug(
            "statement_written",
            extra={"format": self.format.value, "statement_count": len(statements)},
        )
        return text.encode(self.options.encoding)

    def recognizes_extension(self, key: str) -> bool:
        return key.startswith(EXTENSION_PREFIX)


__all__ = ["Mt940Codec", "Mt940Parser", "Mt940State", "Mt940Writer", "TagRecord", "tokenize"]
