"""Tests for the shared data types."""

from datetime import datetime, timezone

from stashbox.models import Entry, UsageStats


def test_entry_paths():
    entry = Entry(key="u1/A/B/1-x.txt", owner_id="u1", logical_name="x.txt", parent_path=("A", "B"))
    assert entry.parent_folder == "A/B"
    assert entry.path == "A/B/x.txt"

    root = Entry(key="u1/1-y.txt", owner_id="u1", logical_name="y.txt")
    assert root.parent_folder == ""
    assert root.path == "y.txt"


def test_entry_to_dict():
    modified = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
    entry = Entry(
        key="u1/Docs/.foldermarker",
        owner_id="u1",
        logical_name="Docs",
        is_folder=True,
        content_type="application/x-directory",
        last_modified=modified,
    )

    assert entry.to_dict() == {
        'key': "u1/Docs/.foldermarker",
        'owner_id': "u1",
        'name': "Docs",
        'parent_folder': "",
        'is_folder': True,
        'size': 0,
        'type': "application/x-directory",
        'url': "",
        'share_token': None,
        'last_modified': "2024-01-02T03:04:05+00:00",
    }


def test_usage_stats():
    stats = UsageStats(used=1, limit=3)
    assert stats.available == 2
    assert stats.percent_used == 33.33

    over = UsageStats(used=5, limit=3)
    assert over.available == 0

    assert UsageStats(used=0, limit=0).percent_used == 100.0
