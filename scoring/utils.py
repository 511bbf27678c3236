"""
Scoring utility functions.
Duration, averaging and calendar bucketing helpers shared by the commit, review and
reviewer aggregators. All calendar keys are computed in UTC.
"""
import math
from datetime import datetime, timezone
from typing import Dict, List, Optional, Iterable, Tuple

MS_PER_DAY = 24 * 60 * 60 * 1000
DAYS_PER_WEEK = 7
DAYS_PER_MONTH = 365 / 12


def millis_between(start: Optional[datetime], end: Optional[datetime]) -> Optional[int]:
    """Return end - start in milliseconds, or None when either side is missing."""
    if start is None or end is None:
        return None
    return int(round((end - start).total_seconds() * 1000))


def days_between(start: datetime, end: datetime) -> int:
    """Whole days between two instants, truncated toward zero."""
    return int((end - start).total_seconds() / 86400)


def pr_duration_days(created_at: Optional[datetime], closed_at: Optional[datetime], now: Optional[datetime] = None) -> int:
    """Inclusive lifetime of a pull request in days (open pull requests run until now). Minimum 1."""
    if created_at is None:
        return 1
    end = closed_at or now or datetime.now(timezone.utc)
    return max(1, days_between(created_at, end) + 1)


def mean(values: List[float]) -> float:
    return sum(values) / len(values) if values else 0.0


def mean_interval(timestamps: List[datetime]) -> float:
    """Mean gap in milliseconds between consecutive sorted timestamps (0 for fewer than two)."""
    if len(timestamps) < 2:
        return 0.0
    ordered = sorted(timestamps)
    gaps = [millis_between(a, b) for a, b in zip(ordered, ordered[1:])]
    return sum(gaps) / len(gaps)


def span_millis(timestamps: List[datetime]) -> int:
    """Milliseconds between the earliest and the latest timestamp (0 when empty)."""
    if not timestamps:
        return 0
    return millis_between(min(timestamps), max(timestamps))


def rate_averages(count: int, duration_days: int) -> Tuple[float, float, float]:
    """Return (per day, per week, per month) averages of count over duration_days."""
    per_day = count / duration_days if duration_days else 0.0
    return per_day, per_day * DAYS_PER_WEEK, per_day * DAYS_PER_MONTH


def week_number(moment: datetime) -> int:
    """
    Week of year, 1-indexed, weeks starting on Sunday:
    ceil((days since 1 January + weekday of 1 January + 1) / 7) with Sunday = 0.
    1 January always falls in week 1.
    """
    moment = moment.astimezone(timezone.utc)
    jan_first = datetime(moment.year, 1, 1, tzinfo=timezone.utc)
    day_offset = (moment.date() - jan_first.date()).days
    jan_first_weekday = (jan_first.weekday() + 1) % 7
    return math.ceil((day_offset + jan_first_weekday + 1) / 7)


def day_key(moment: datetime) -> str:
    return moment.astimezone(timezone.utc).date().isoformat()


def week_key(moment: datetime) -> str:
    moment = moment.astimezone(timezone.utc)
    return f"{moment.year}-W{week_number(moment)}"


def month_key(moment: datetime) -> str:
    return day_key(moment)[:7]


def bucket_counts(timestamps: Iterable[datetime]) -> Tuple[Dict[str, int], Dict[str, int], Dict[str, int]]:
    """Count timestamps per calendar day, week and month."""
    per_day: Dict[str, int] = {}
    per_week: Dict[str, int] = {}
    per_month: Dict[str, int] = {}
    for ts in timestamps:
        if ts is None:
            continue
        per_day[day_key(ts)] = per_day.get(day_key(ts), 0) + 1
        per_week[week_key(ts)] = per_week.get(week_key(ts), 0) + 1
        per_month[month_key(ts)] = per_month.get(month_key(ts), 0) + 1
    return per_day, per_week, per_month


def reviews_by_id(reviews) -> Dict:
    return {r.id: r for r in reviews or [] if r.id is not None}


def is_addressed(comment, known_reviews: Dict) -> bool:
    """A review comment is addressed when it replies to another comment and its review is known."""
    return comment.in_reply_to_id is not None and comment.review_id in known_reviews


def count_addressed(review_comments, known_reviews: Dict) -> Tuple[int, int]:
    """Return (addressed, ignored); the two always sum to len(review_comments)."""
    addressed = sum(1 for c in review_comments or [] if is_addressed(c, known_reviews))
    return addressed, len(review_comments or []) - addressed
