from datetime import datetime

import pytest

from cuesync.commands import HELP, parse_command, parse_target

NOW = 1_700_000_000_000.4
TODAY = datetime(2024, 5, 17, 9, 30)


class TestParseTarget:
    def test_now_uses_synced_clock(self):
        assert parse_target("now", NOW) == 1_700_000_000_000

    @pytest.mark.parametrize("text,delta", [
        ("+30", 30_000),
        ("+30s", 30_000),
        ("+ 5m", 300_000),
        ("+1.5h", 5_400_000),
        ("+0.5s", 500),
    ])
    def test_relative(self, text, delta):
        assert parse_target(text, NOW) == int(NOW + delta)

    def test_clock_time_is_today_local(self):
        expected = int(datetime(2024, 5, 17, 20, 5).timestamp() * 1000)
        assert parse_target("20:05", NOW, TODAY) == expected
        assert parse_target("20:05:30", NOW, TODAY) == expected + 30_000

    def test_past_clock_time_is_kept(self):
        expected = int(datetime(2024, 5, 17, 8, 0).timestamp() * 1000)
        assert parse_target("8:00", NOW, TODAY) == expected

    @pytest.mark.parametrize("text", ["24:00", "12:60", "tomorrow", "+", "-5m", "12"])
    def test_unreadable(self, text):
        assert parse_target(text, NOW, TODAY) is None


class TestParseCommand:
    def test_setup(self):
        result = parse_command("setup +10s", NOW)
        assert result["command"] == "setup"
        assert result["target_ms"] == int(NOW + 10_000)
        assert result["error"] is None

    def test_setup_aliases(self):
        assert parse_command("AT now", NOW)["command"] == "setup"
        assert parse_command("start 20:00", NOW, TODAY)["command"] == "setup"

    def test_setup_bad_target(self):
        result = parse_command("setup whenever", NOW)
        assert result["command"] is None
        assert "whenever" in result["error"]

    def test_load_keeps_path_case(self):
        result = parse_command("load ~/Movies/My Film.MKV", NOW)
        assert result["command"] == "load"
        assert result["path"] == "~/Movies/My Film.MKV"

    def test_load_strips_quotes(self):
        assert parse_command("open '/tmp/a b.mp4'", NOW)["path"] == "/tmp/a b.mp4"

    @pytest.mark.parametrize("text,command", [
        ("reset", "reconfigure"),
        ("Reconfigure", "reconfigure"),
        ("join", "join"),
        ("leave", "leave"),
        ("sync", "resync"),
        ("resume", "play"),
        ("pause", "pause"),
        ("info", "status"),
        ("?", "help"),
        ("q", "quit"),
        ("exit", "quit"),
    ])
    def test_keywords(self, text, command):
        assert parse_command(text, NOW)["command"] == command

    def test_blank_is_nothing(self):
        result = parse_command("   ", NOW)
        assert result["command"] is None
        assert result["error"] is None

    def test_unknown(self):
        result = parse_command("dance", NOW)
        assert result["command"] is None
        assert "dance" in result["error"]
        assert result["raw"] == "dance"


def test_help_covers_every_keyword():
    listed = " ".join(cmd for cmd, _ in HELP)
    for word in ("setup", "reconfigure", "load", "join", "leave", "pause", "play", "resync", "status", "quit"):
        assert word in listed
