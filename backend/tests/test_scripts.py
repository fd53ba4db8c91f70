"""Tests for the seed and verification scripts."""
from collections import Counter

from seed import sample_standups
from verify_ledger import find_duplicate_days, find_orphans


def test_sample_standups_cover_distinct_days(alice, calendar):
    standups = sample_standups(alice, calendar)

    buckets = Counter(standup.day_bucket for standup in standups)
    assert len(buckets) == 3
    assert calendar.today().isoformat() in buckets
    assert all(standup.user_id == alice.id for standup in standups)


def test_verify_finds_no_duplicates_and_reports_orphans(test_session, alice, backdate):
    backdate(alice.id)
    backdate(alice.id, days_ago=1)
    orphan = backdate(777)

    assert find_duplicate_days(test_session) == []
    assert find_orphans(test_session) == [orphan.id]
