"""
Range resolution tests.

Verifies:
- today/yesterday bounds follow the shop's local calendar day
- 1ms outside either bound is excluded
- week/month/year starts, grand from the epoch, custom ranges
- invalid zones fall back to the default without raising
"""

from datetime import datetime, timedelta
from zoneinfo import ZoneInfo

import pytest

from shopdesk.services.reporting_service import DateRange, ReportError, resolve_range
from shopdesk.services.timezone_service import (
    end_of_day_utc,
    local_date,
    resolve_timezone,
    start_of_day_utc,
    utc_offset_minutes,
)
from shopdesk.time_utils import EPOCH, to_utc_z


ONE_MS = timedelta(milliseconds=1)

ZONES = [
    "Asia/Karachi",
    "UTC",
    "America/New_York",
    "Asia/Kolkata",
    "Australia/Adelaide",
    "Pacific/Kiritimati",
    "Pacific/Pago_Pago",
]

INSTANTS = [
    datetime(2024, 3, 15, 20, 0, 0),
    datetime(2024, 3, 10, 6, 59, 59),   # just before US DST start
    datetime(2024, 3, 10, 7, 0, 0),     # US DST start
    datetime(2024, 11, 3, 5, 30, 0),    # US DST end
    datetime(2024, 12, 31, 23, 59, 59),
    datetime(2024, 2, 29, 0, 0, 0),
]


class TestTodayRange:

    @pytest.mark.parametrize("zone", ZONES)
    @pytest.mark.parametrize("instant", INSTANTS)
    def test_contains_now(self, zone, instant):
        bounds = resolve_range("today", zone, now=instant)
        assert bounds.contains(instant)

    @pytest.mark.parametrize("zone", ZONES)
    @pytest.mark.parametrize("instant", INSTANTS)
    def test_excludes_one_ms_outside(self, zone, instant):
        bounds = resolve_range("today", zone, now=instant)
        assert not bounds.contains(bounds.start - ONE_MS)
        assert not bounds.contains(bounds.end + ONE_MS)

    @pytest.mark.parametrize("zone", ZONES)
    @pytest.mark.parametrize("instant", INSTANTS)
    def test_bounds_are_local_midnights(self, zone, instant):
        tz = ZoneInfo(zone)
        bounds = resolve_range("today", zone, now=instant)
        today = local_date(instant, tz)
        assert local_date(bounds.start, tz) == today
        assert local_date(bounds.end, tz) == today
        assert local_date(bounds.start - ONE_MS, tz) == today - timedelta(days=1)
        assert local_date(bounds.end + ONE_MS, tz) == today + timedelta(days=1)

    @pytest.mark.parametrize("zone", ZONES)
    @pytest.mark.parametrize("instant", INSTANTS)
    def test_last_microsecond_belongs_to_today(self, zone, instant):
        tz = ZoneInfo(zone)
        bounds = resolve_range("today", zone, now=instant)
        late = bounds.start + timedelta(days=1) - timedelta(microseconds=500)
        if local_date(late, tz) != local_date(instant, tz):
            pytest.skip("DST day is shorter than 24 hours")
        assert bounds.contains(late)
        assert not resolve_range("today", zone, now=bounds.end + ONE_MS).contains(late)

    def test_consecutive_days_leave_no_gap(self):
        today = resolve_range("today", "UTC", now=datetime(2024, 3, 15, 12, 0))
        tomorrow = resolve_range("today", "UTC", now=datetime(2024, 3, 16, 12, 0))
        late = datetime(2024, 3, 15, 23, 59, 59, 999500)

        assert today.contains(late)
        assert not tomorrow.contains(late)
        assert tomorrow.start - today.end == timedelta(microseconds=1)

    def test_karachi_day_starts_at_19_utc(self, fixed_now):
        bounds = resolve_range("today", "Asia/Karachi", now=fixed_now)
        # 20:00 UTC is already the 16th in Karachi (UTC+5)
        assert bounds.start == datetime(2024, 3, 15, 19, 0, 0)
        assert bounds.end == datetime(2024, 3, 16, 18, 59, 59, 999999)
        assert bounds.to_dict() == {
            "start": "2024-03-15T19:00:00Z",
            "end": "2024-03-16T18:59:59.999Z",
        }

    def test_dst_day_is_23_hours(self):
        # 2024-03-10 in New York loses an hour
        bounds = resolve_range("today", "America/New_York", now=datetime(2024, 3, 10, 12, 0))
        assert bounds.start == datetime(2024, 3, 10, 5, 0)
        assert bounds.end == datetime(2024, 3, 11, 3, 59, 59, 999999)


class TestNamedRanges:

    def test_yesterday(self, fixed_now):
        bounds = resolve_range("yesterday", "Asia/Karachi", now=fixed_now)
        assert bounds.start == datetime(2024, 3, 14, 19, 0)
        assert bounds.end == datetime(2024, 3, 15, 18, 59, 59, 999999)

    def test_week_starts_monday(self, fixed_now):
        # Karachi date is Saturday 2024-03-16; Monday is the 11th
        bounds = resolve_range("1week", "Asia/Karachi", now=fixed_now)
        assert bounds.start == datetime(2024, 3, 10, 19, 0)
        assert bounds.end == datetime(2024, 3, 16, 18, 59, 59, 999999)

    def test_month_starts_on_first(self, fixed_now):
        bounds = resolve_range("1month", "Asia/Karachi", now=fixed_now)
        assert bounds.start == datetime(2024, 2, 29, 19, 0)

    def test_year_starts_jan_first(self, fixed_now):
        bounds = resolve_range("1year", "Asia/Karachi", now=fixed_now)
        assert bounds.start == datetime(2023, 12, 31, 19, 0)

    @pytest.mark.parametrize("zone", ZONES + ["Not/AZone"])
    @pytest.mark.parametrize("selector", ["grand", "all"])
    def test_grand_starts_at_epoch(self, zone, selector, fixed_now):
        bounds = resolve_range(selector, zone, now=fixed_now)
        assert bounds.start == EPOCH
        assert to_utc_z(bounds.start) == "1970-01-01T00:00:00Z"
        assert bounds.contains(fixed_now)

    def test_rolling_seven_days_includes_today(self, fixed_now):
        bounds = resolve_range("7days", "Asia/Karachi", now=fixed_now)
        assert bounds.start == datetime(2024, 3, 9, 19, 0)
        assert bounds.end == datetime(2024, 3, 16, 18, 59, 59, 999999)

    def test_unknown_selector_means_today(self, fixed_now):
        assert resolve_range("fortnight", "Asia/Karachi", now=fixed_now) == \
            resolve_range("today", "Asia/Karachi", now=fixed_now)

    def test_selector_is_case_insensitive(self, fixed_now):
        assert resolve_range(" Yesterday ", "UTC", now=fixed_now) == \
            resolve_range("yesterday", "UTC", now=fixed_now)


class TestCustomRange:

    def test_start_and_end(self, fixed_now):
        bounds = resolve_range("custom", "UTC", "2024-01-01", "2024-01-31", now=fixed_now)
        assert bounds == DateRange(datetime(2024, 1, 1), datetime(2024, 1, 31, 23, 59, 59, 999999))

    def test_start_only_runs_to_today(self, fixed_now):
        bounds = resolve_range("custom", "UTC", "2024-03-01", None, now=fixed_now)
        assert bounds.start == datetime(2024, 3, 1)
        assert bounds.end == datetime(2024, 3, 15, 23, 59, 59, 999999)

    def test_end_only_runs_from_epoch(self, fixed_now):
        bounds = resolve_range("custom", "UTC", None, "2024-01-31", now=fixed_now)
        assert bounds.start == EPOCH

    def test_neither_means_today(self, fixed_now):
        assert resolve_range("custom", "UTC", now=fixed_now) == resolve_range("today", "UTC", now=fixed_now)

    def test_start_after_end_rejected(self, fixed_now):
        with pytest.raises(ReportError):
            resolve_range("custom", "UTC", "2024-02-01", "2024-01-01", now=fixed_now)

    def test_malformed_date_rejected(self, fixed_now):
        with pytest.raises(ReportError):
            resolve_range("custom", "UTC", "yesterday-ish", None, now=fixed_now)


class TestTimezoneResolution:

    def test_invalid_zone_falls_back_to_default(self, caplog, fixed_now):
        with caplog.at_level("WARNING"):
            bounds = resolve_range("today", "Mars/Olympus_Mons", now=fixed_now)
        assert bounds == resolve_range("today", "Asia/Karachi", now=fixed_now)
        assert "Invalid timezone" in caplog.text

    @pytest.mark.parametrize("value", [None, "", "   ", 42])
    def test_unusable_values_use_default(self, value):
        assert resolve_timezone(value) == ZoneInfo("Asia/Karachi")

    def test_invalid_default_uses_utc(self):
        assert resolve_timezone("nope", default="also-nope") == ZoneInfo("UTC")

    def test_offset_follows_dst(self):
        tz = ZoneInfo("America/New_York")
        assert utc_offset_minutes(tz, datetime(2024, 1, 15, 12, 0)) == -300
        assert utc_offset_minutes(tz, datetime(2024, 7, 15, 12, 0)) == -240

    def test_day_bounds_round_trip(self):
        tz = ZoneInfo("Asia/Kolkata")
        day = datetime(2024, 6, 1).date()
        assert start_of_day_utc(day, tz) == datetime(2024, 5, 31, 18, 30)
        assert end_of_day_utc(day, tz) == datetime(2024, 6, 1, 18, 29, 59, 999999)
