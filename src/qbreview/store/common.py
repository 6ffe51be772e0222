from __future__ import annotations

import re
from datetime import date

_HEX_ID = re.compile(r"[0-9A-Fa-f]+")


def encode_hex_id(value: str) -> int:
    """問題ID・セットID（"114C05" など）を 16 進数として整数化する。

    V2 形式ではキー長と値の両方を詰めて保存するため、ID は数値で持つ。
    16 進数として解釈できない文字列は保存前に ValueError とする。
    """

    text = str(value)
    if not _HEX_ID.fullmatch(text):
        raise ValueError(f"id must be hexadecimal digits only: {value!r}")
    return int(text, 16)


def decode_hex_id(value: int) -> str:
    """Inverse of :func:`encode_hex_id` (upper case, no leading zeros)."""

    return format(int(value), "X")


def encode_compact_date(value: date) -> int:
    """日付を YYYYMMDD 形式の整数に変換する。"""

    return value.year * 10000 + value.month * 100 + value.day


def decode_compact_date(value: int) -> date:
    ivalue = int(value)
    return date(ivalue // 10000, (ivalue // 100) % 100, ivalue % 100)


def iso_date_to_compact(value: str) -> int:
    """V1 の "YYYY-MM-DD" 文字列を区切りを除いて整数化する。"""

    return int(str(value).replace("-", ""), 10)
