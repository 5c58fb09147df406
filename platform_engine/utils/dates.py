from datetime import datetime, timezone

UTC = timezone.utc

def now_utc() -> datetime:
    return datetime.now(tz=UTC)

def to_utc(dt: datetime) -> datetime:
    """Naive считаем уже UTC, aware приводим к UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)

def parse_dt(value: str) -> datetime:
    # ISO-8601, в т.ч. с суффиксом "Z" от JS-клиентов
    raw = value.strip()
    if raw.endswith("Z"):
        raw = raw[:-1] + "+00:00"
    return to_utc(datetime.fromisoformat(raw))
