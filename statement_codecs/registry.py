"""Format -> codec lookup."""

from __future__ import annotations

from statement_codecs.base import Format, StatementCodec
from statement_codecs.camt053 import Camt053Codec
from statement_codecs.csv_codec import CsvCodec
from statement_codecs.mt940 import Mt940Codec
from statement_config.schema import CodecConfig

_CODECS = {
    Format.MT940: Mt940Codec,
    Format.CAMT053: Camt053Codec,
    Format.CSV: CsvCodec,
}


def get_codec(format: Format | str, config: CodecConfig) -> StatementCodec:
    """
    Codec instance for ``format`` bound to ``config``.

    Raises:
        UnsupportedFormatError: If ``format`` names no known format.
    """
    return _CODECS[Format.from_name(format)](config)
