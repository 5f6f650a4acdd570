"""structlog ロガー設定"""

from __future__ import annotations

import logging
import sys

import structlog

from .config import LogSection


def new_logger(
    level: str = "INFO",
    format: str = "json",
    name: str = "k1s0_multiflag",
) -> structlog.stdlib.BoundLogger:
    """structlog を標準 logging 経由で出力するよう設定し、ロガーを返す。

    ライブラリ内の各モジュールは structlog.get_logger(__name__) を使うため、
    この関数の呼び出し後はリゾルバーのログも同じ形式で出力される。

    Args:
        level: ログレベル ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
        format: 出力形式 ("json" or "text")
        name: 返すロガーの名前
    """
    log_level = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=log_level)
    logging.getLogger("k1s0_multiflag").setLevel(log_level)

    processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]
    if format == "json":
        processors += [
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(ensure_ascii=False),
        ]
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )
    return structlog.stdlib.get_logger(name)


def configure_logging(section: LogSection) -> structlog.stdlib.BoundLogger:
    """設定ファイルの log セクションからロガーを設定する。"""
    return new_logger(level=section.level, format=section.format)
