from datetime import datetime, timedelta, timezone


def next_review_date(attempts: int, now: datetime | None = None) -> datetime:
    """Drills that took fewer attempts come back later."""

    now = now or datetime.now(timezone.utc)
    if attempts <= 1:
        return now + timedelta(days=7)
    if attempts <= 3:
        return now + timedelta(days=3)
    return now + timedelta(days=1)
