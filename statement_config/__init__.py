"""
statement_config -- codec configuration entrypoint.

Responsibility:
    Provides ``get_codec_config()`` for obtaining a validated
    ``CodecConfig``: either the shipped default set, a named shipped set,
    or an explicit YAML file.

Architecture position:
    Configuration -- sits above ``statement_kernel`` and below
    ``statement_codecs`` / ``statement_cli``.  The kernel never imports
    from this package.

Failure modes:
    - ``FileNotFoundError`` -- named set or explicit path does not exist.
    - ``ValueError`` / ``KeyError`` -- structural validation failures
      raised by the loader.

Audit relevance:
    Every successful call emits a ``STATEMENT_CONFIG_TRACE`` log entry
    with the config id, version and checksum.
"""

from __future__ import annotations

from pathlib import Path

from statement_config.loader import load_codec_config
from statement_config.schema import (
    Camt053Options,
    CodecConfig,
    CsvColumn,
    CsvOptions,
    Mt940Options,
)
from statement_kernel.logging_config import get_logger

_logger = get_logger("config")

# Shipped configuration sets directory
_DEFAULT_CONFIG_DIR = Path(__file__).parent / "sets"


def get_codec_config(
    path: Path | str | None = None,
    *,
    set_name: str = "default",
) -> CodecConfig:
    """Load a codec configuration.

    Args:
        path: Explicit YAML file.  When given, ``set_name`` is ignored.
        set_name: Name of a shipped set under ``statement_config/sets``.

    Raises:
        FileNotFoundError: If the file or named set does not exist.
        ValueError: If the configuration is structurally invalid.
    """
    source = Path(path) if path is not None else _DEFAULT_CONFIG_DIR / f"{set_name}.yaml"
    if not source.is_file():
        raise FileNotFoundError(f"Codec configuration not found: {source}")

    config = load_codec_config(source)

    _logger.info(
        "STATEMENT_CONFIG_TRACE",
        extra={
            "trace_type": "STATEMENT_CONFIG_TRACE",
            "config_id": config.config_id,
            "config_version": config.version,
            "checksum": config.checksum,
            "source": str(source),
        },
    )
    return config


def available_sets() -> list[str]:
    """Names of the shipped configuration sets."""
    return sorted(p.stem for p in _DEFAULT_CONFIG_DIR.glob("*.yaml"))


__all__ = [
    "Camt053Options",
    "CodecConfig",
    "CsvColumn",
    "CsvOptions",
    "Mt940Options",
    "available_sets",
    "get_codec_config",
]
