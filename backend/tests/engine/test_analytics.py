"""Tests for quote_engine.proposal.analytics: device split, view and funnel stats."""

import pytest

from quote_engine.proposal import ViewEvent, classify_device, funnel_stats, view_stats

IPHONE = "Mozilla/5.0 (iPhone; CPU iPhone OS 17_0 like Mac OS X) Mobile/15E148"
ANDROID_PHONE = "Mozilla/5.0 (Linux; Android 14; Pixel 8) Mobile Safari/537.36"
ANDROID_TABLET = "Mozilla/5.0 (Linux; Android 13; SM-X200) Safari/537.36"
IPAD = "Mozilla/5.0 (iPad; CPU OS 17_0 like Mac OS X)"
DESKTOP = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) Chrome/120.0"


class TestClassifyDevice:
    @pytest.mark.parametrize("ua, expected", [
        (IPHONE, "mobile"),
        (ANDROID_PHONE, "mobile"),
        (ANDROID_TABLET, "tablet"),
        (IPAD, "tablet"),
        (DESKTOP, "desktop"),
        (None, "desktop"),
        ("", "desktop"),
    ])
    def test_user_agents(self, ua, expected):
        assert classify_device(ua) == expected


class TestViewStats:
    def test_empty(self):
        stats = view_stats([])
        assert stats["total_views"] == 0
        assert stats["unique_views"] == 0
        assert stats["avg_duration"] == 0.0
        assert stats["devices"] == {"mobile": 0, "tablet": 0, "desktop": 0}

    def test_counts(self):
        views = [
            ViewEvent(ip_address="1.1.1.1", device_type="mobile", duration_seconds=30),
            ViewEvent(ip_address="1.1.1.1", device_type="mobile", duration_seconds=60),
            ViewEvent(ip_address="2.2.2.2", device_type="desktop", duration_seconds=90),
        ]
        stats = view_stats(views)
        assert stats["total_views"] == 3
        assert stats["unique_views"] == 2
        assert stats["avg_duration"] == pytest.approx(60.0)
        assert stats["devices"] == {"mobile": 2, "tablet": 0, "desktop": 1}


class TestFunnelStats:
    def test_rates(self):
        statuses = ["draft", "sent", "sent", "viewed", "accepted", "rejected", "expired"]
        stats = funnel_stats(statuses, days_to_accept=[2, 3])
        assert stats["total"] == 7
        assert stats["by_status"]["sent"] == 2
        assert stats["by_status"]["expired"] == 1
        # sent-or-later: 2 sent + viewed + accepted + rejected = 5
        # viewed-or-decided: 3
        assert stats["rates"]["view"] == 60.0
        assert stats["rates"]["accept"] == pytest.approx(33.3)
        assert stats["avg_days_to_accept"] == 2.5

    def test_empty(self):
        stats = funnel_stats([])
        assert stats["total"] == 0
        assert stats["rates"] == {"view": 0.0, "accept": 0.0}
        assert set(stats["by_status"]) == {
            "draft", "sent", "viewed", "accepted", "rejected", "expired",
        }
