"""Tests for renewal threshold evaluation."""

import unittest
from datetime import datetime, timedelta, timezone

from certstore.status import check_expiration

NOW = datetime(2024, 6, 1, 12, 0, 0, tzinfo=timezone.utc)


class TestCheckExpiration(unittest.TestCase):

    def test_due_iff_remaining_days_within_threshold(self):
        for threshold in (0, 1, 7, 30, 60):
            for hours in range(-72, 24 * 90, 7):
                not_after = NOW + timedelta(hours=hours)
                status = check_expiration(threshold, not_after, now=NOW)
                expected_days = (not_after - NOW) // timedelta(days=1)
                self.assertEqual(status.days_remaining, expected_days)
                self.assertEqual(
                    status.renewal_due, expected_days <= threshold,
                    f"threshold={threshold} hours={hours}",
                )

    def test_not_due(self):
        status = check_expiration(30, NOW + timedelta(days=60), now=NOW)
        self.assertEqual(status.days_remaining, 60)
        self.assertEqual(status.days_until_renewal, 30)
        self.assertFalse(status.renewal_due)

    def test_exactly_at_threshold_is_due(self):
        status = check_expiration(30, NOW + timedelta(days=30), now=NOW)
        self.assertEqual(status.days_until_renewal, 0)
        self.assertTrue(status.renewal_due)

    def test_one_day_past_threshold(self):
        status = check_expiration(30, NOW + timedelta(days=31), now=NOW)
        self.assertEqual(status.days_until_renewal, 1)
        self.assertFalse(status.renewal_due)

    def test_partial_day_rounds_down(self):
        status = check_expiration(30, NOW + timedelta(days=30, hours=23), now=NOW)
        self.assertEqual(status.days_remaining, 30)
        self.assertTrue(status.renewal_due)

    def test_expired(self):
        status = check_expiration(30, NOW - timedelta(hours=1), now=NOW)
        self.assertEqual(status.days_remaining, -1)
        self.assertTrue(status.renewal_due)

    def test_zero_threshold(self):
        self.assertFalse(check_expiration(0, NOW + timedelta(days=1), now=NOW).renewal_due)
        self.assertTrue(check_expiration(0, NOW + timedelta(hours=23), now=NOW).renewal_due)

    def test_naive_datetimes_are_utc(self):
        naive_now = NOW.replace(tzinfo=None)
        status = check_expiration(30, naive_now + timedelta(days=45), now=naive_now)
        self.assertEqual(status.days_remaining, 45)
        self.assertEqual(status.not_after.tzinfo, timezone.utc)

    def test_other_timezone(self):
        plus_two = timezone(timedelta(hours=2))
        not_after = (NOW + timedelta(days=10)).astimezone(plus_two)
        status = check_expiration(5, not_after, now=NOW)
        self.assertEqual(status.days_remaining, 10)
        self.assertEqual(status.not_after, NOW + timedelta(days=10))

    def test_defaults_to_current_time(self):
        status = check_expiration(30, datetime.now(timezone.utc) + timedelta(days=90, hours=1))
        self.assertEqual(status.days_remaining, 90)

    def test_to_dict(self):
        data = check_expiration(30, NOW + timedelta(days=10), now=NOW).to_dict()
        self.assertEqual(data, {
            "not_after": "2024-06-11T12:00:00+00:00",
            "days_remaining": 10,
            "days_until_renewal": -20,
            "renewal_due": True,
        })


if __name__ == "__main__":
    unittest.main()
