"""エポックミリ秒を扱う時刻ヘルパー。"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def to_epoch_millis(value: datetime) -> int:
    """datetime をエポックミリ秒へ変換する。naive な値は UTC とみなす。"""

    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return (value - _EPOCH) // timedelta(milliseconds=1)


def now_millis() -> int:
    return to_epoch_millis(datetime.now(timezone.utc))
