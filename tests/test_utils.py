from datetime import datetime

import pytest

from cuesync.utils import as_epoch_ms, fmt_clock, fmt_countdown, fmt_time, hr_time, iso_ms, now_ms


def test_now_ms_is_epoch_milliseconds():
    assert now_ms() > 1_600_000_000_000


def test_hr_time_is_a_monotonic_string():
    a, b = hr_time(), hr_time()
    assert a.isdigit()
    assert int(b) >= int(a)


def test_iso_ms():
    assert iso_ms(0) == "1970-01-01T00:00:00.000+00:00"


@pytest.mark.parametrize("value,expected", [
    (1_700_000_000_000, 1_700_000_000_000),
    (1_700_000_000_000.7, 1_700_000_000_000),
    (0, 0),
    (None, None),
    ("1700000000000", None),
    (True, None),
    (float("nan"), None),
    (float("-inf"), None),
    (10**17, None),
    (-10**17, None),
    (-86_400_000, -86_400_000),
])
def test_as_epoch_ms(value, expected):
    assert as_epoch_ms(value) == expected


class TestFormatting:
    def test_fmt_time(self):
        assert fmt_time(0) == "0:00"
        assert fmt_time(75.9) == "1:15"

    @pytest.mark.parametrize("ms,expected", [
        (0, "00:00"),
        (-500, "00:00"),
        (1, "00:01"),
        (59_001, "01:00"),
        (90_000, "01:30"),
        (3_600_000, "1:00:00"),
        (3_725_000, "1:02:05"),
    ])
    def test_fmt_countdown_rounds_up(self, ms, expected):
        assert fmt_countdown(ms) == expected

    def test_fmt_clock(self):
        assert fmt_clock(None) == "--:--:--"
        stamp = datetime(2024, 3, 1, 20, 15, 7).timestamp() * 1000
        assert fmt_clock(stamp) == "20:15:07"
