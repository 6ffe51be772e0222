"""Structured logging setup.

構造化ログの初期化をまとめる。ストア・フロー・API のすべてのログは
ここで構成した structlog 経由で JSON として出力される。
"""

import logging

import structlog
from structlog import contextvars as structlog_contextvars

from .config import settings


def configure_logging(level: str | None = None) -> None:
    """Configure structlog for application-wide logging.

    アプリ全体のロギング設定を行う。標準 logging を設定値のレベルで初期化し、
    structlog で ISO タイムスタンプと JSON 形式の出力を有効化する。
    """
    # stdlib 側の出力に余計なプレフィックス（"INFO:logger:" など）を付けない
    # ため、フォーマットはメッセージのみ(%(message)s)に固定する。
    logging.basicConfig(
        level=getattr(logging, (level or settings.log_level).upper(), logging.INFO),
        format="%(message)s",
        handlers=[logging.StreamHandler()],
        force=True,
    )
    structlog.configure(
        processors=[
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.add_log_level,
            structlog_contextvars.merge_contextvars,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
    )


logger = structlog.get_logger()
