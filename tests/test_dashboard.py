import pytest

from mindwell.apps.api.services import dashboard


@pytest.fixture
def mood_rows(monkeypatch):
    rows = [
        {"score": 2, "timestamp": "2026-10-17T08:00:00+00:00", "note": None},
        {"score": 3, "timestamp": "2026-10-17T12:00:00+00:00", "note": "better"},
    ]

    async def fake_rows(*args, **kwargs):
        return rows

    async def fake_scalar(*args, **kwargs):
        return 0

    async def fake_activities(user_id):
        return []

    async def fake_counts(user_id):
        return 8, 1

    monkeypatch.setattr(dashboard, "q", fake_rows)
    monkeypatch.setattr(dashboard, "scalar", fake_scalar)
    monkeypatch.setattr(dashboard, "moods_today", fake_rows)
    monkeypatch.setattr(dashboard, "recent_moods", fake_rows)
    monkeypatch.setattr(dashboard, "activities_today", fake_activities)
    monkeypatch.setattr(dashboard, "completion_counts", fake_counts)
    return rows


@pytest.mark.asyncio
async def test_dashboard_rounds_half_up(mood_rows):
    stats = await dashboard.dashboard_stats("u1")

    assert stats["moodScore"] == 3
    assert stats["completionRate"] == 13
    assert stats["totalActivities"] == 0


@pytest.mark.asyncio
async def test_mood_trends_average_rounds_half_up(mood_rows):
    trends = await dashboard.mood_trends("u1", days=7)

    assert trends["averageScore"] == 3
    assert trends["totalEntries"] == 2
