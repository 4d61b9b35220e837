"""CAMT.053 (ISO 20022 bank-to-customer statement) codec."""

from __future__ import annotations

from collections.abc import Sequence

from statement_codecs.base import Format, check_input_size
from statement_codecs.camt053.parser import Camt053Parser
from statement_codecs.camt053.writer import Camt053Writer
from statement_config.schema import CodecConfig
from statement_kernel.domain.statement import Statement
from statement_kernel.logging_config import get_logger

logger = get_logger("codecs.camt053")

EXTENSION_PREFIXES = ("camt053.", "fx.")


class Camt053Codec:
    """Parse and write CAMT.053 according to ``CodecConfig.camt053``."""

    format = Format.CAMT053

    def __init__(self, config: CodecConfig):
        self.config = config
        self.options = config.camt053

    def parse(self, data: bytes) -> list[Statement]:
        check_input_size(data, self.config.max_input_bytes)
        return Camt053Parser(lenient_balances=self.config.lenient_balances).parse(data)

    def write(self, statements: Sequence[Statement]) -> bytes:
        data = Camt053Writer(self.options).write(statements)
        logger.debug(
            "statement_written",
            extra={"format": self.format.value, "statement_count": len(statements)},
        )
        return data

    def recognizes_extension(self, key: str) -> bool:
        return key.startswith(EXTENSION_PREFIXES)


__all__ = ["Camt053Codec", "Camt053Parser", "Camt053Writer"]
