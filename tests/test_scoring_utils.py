import unittest
from datetime import datetime, timezone, timedelta

from scoring.utils import (
    MS_PER_DAY,
    millis_between,
    pr_duration_days,
    mean_interval,
    rate_averages,
    week_number,
    week_key,
    day_key,
    month_key,
    bucket_counts,
    count_addressed,
)
from fakes import ts, make_comment, make_review


class TestDurations(unittest.TestCase):
    def test_millis_between(self):
        self.assertEqual(millis_between(ts('2024-01-01T00:00:00Z'), ts('2024-01-02T00:00:00Z')), MS_PER_DAY)
        self.assertIsNone(millis_between(None, ts('2024-01-02T00:00:00Z')))

    def test_pr_duration_is_inclusive(self):
        self.assertEqual(pr_duration_days(ts('2024-01-01T00:00:00Z'), ts('2024-01-10T00:00:00Z')), 10)
        self.assertEqual(pr_duration_days(ts('2024-01-01T00:00:00Z'), ts('2024-01-01T05:00:00Z')), 1)

    def test_open_pr_runs_until_now(self):
        now = ts('2024-01-05T12:00:00Z')
        self.assertEqual(pr_duration_days(ts('2024-01-01T00:00:00Z'), None, now=now), 5)

    def test_mean_interval_sorts_first(self):
        stamps = [ts('2024-01-04T00:00:00Z'), ts('2024-01-01T00:00:00Z'), ts('2024-01-02T00:00:00Z')]
        self.assertEqual(mean_interval(stamps), 1.5 * MS_PER_DAY)
        self.assertEqual(mean_interval(stamps[:1]), 0.0)

    def test_rate_averages_ratios(self):
        day, week, month = rate_averages(3, 10)
        self.assertEqual(day, 0.3)
        self.assertEqual(week, day * 7)
        self.assertEqual(month, day * (365 / 12))


class TestBucketing(unittest.TestCase):
    def test_first_day_of_year_is_week_one(self):
        for year in range(2000, 2040):
            moment = datetime(year, 1, 1, tzinfo=timezone.utc)
            self.assertEqual(week_number(moment), 1, year)
            self.assertEqual(week_key(moment), f"{year}-W1")

    def test_week_advances_on_sunday(self):
        # 2024-01-01 is a Monday; Sunday 2024-01-07 starts week 2
        self.assertEqual(week_number(ts('2024-01-06T23:59:59Z')), 1)
        self.assertEqual(week_number(ts('2024-01-07T00:00:00Z')), 2)

    def test_keys_are_utc(self):
        moment = datetime(2024, 3, 1, 1, 0, tzinfo=timezone(timedelta(hours=5)))
        self.assertEqual(day_key(moment), '2024-02-29')
        self.assertEqual(month_key(moment), '2024-02')

    def test_bucket_counts(self):
        stamps = [ts('2024-01-01T01:00:00Z'), ts('2024-01-01T05:00:00Z'), ts('2024-02-10T00:00:00Z'), None]
        per_day, per_week, per_month = bucket_counts(stamps)
        self.assertEqual(per_day, {'2024-01-01': 2, '2024-02-10': 1})
        self.assertEqual(per_week, {'2024-W1': 2, '2024-W6': 1})
        self.assertEqual(per_month, {'2024-01': 2, '2024-02': 1})


class TestAddressedClassifier(unittest.TestCase):
    def test_addressed_plus_ignored_is_total(self):
        known = {1: make_review(1, 'bob', '2024-01-02T00:00:00Z')}
        comments = [
            make_comment(10, 'bob', '2024-01-02T00:00:00Z', review_id=1),
            make_comment(11, 'alice', '2024-01-03T00:00:00Z', review_id=1, in_reply_to_id=10),
            make_comment(12, 'alice', '2024-01-03T00:00:00Z', review_id=99, in_reply_to_id=10),
            make_comment(13, 'alice', '2024-01-03T00:00:00Z', review_id=None, in_reply_to_id=10),
        ]
        addressed, ignored = count_addressed(comments, known)
        self.assertEqual((addressed, ignored), (1, 3))
        self.assertEqual(addressed + ignored, len(comments))


if __name__ == '__main__':
    unittest.main()
