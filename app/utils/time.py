from datetime import datetime, timezone


def utcnow() -> datetime:
    """현재 UTC 시각 (timezone-aware)"""
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """DB에서 naive datetime으로 읽힌 값을 UTC로 간주하여 aware로 변환"""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
