"""Tests for settings loading."""
from datetime import time

from clinic_scheduler.config import Settings, parse_hhmm


class TestSettings:
    def test_timezone_from_environment(self, monkeypatch):
        monkeypatch.setenv("TIMEZONE", "America/Monterrey")

        assert Settings(_env_file=None).TIMEZONE == "America/Monterrey"

    def test_unknown_variables_are_ignored(self, monkeypatch):
        monkeypatch.delenv("TIMEZONE", raising=False)
        monkeypatch.setenv("CLINIC_TZ", "America/Tijuana")

        settings = Settings(_env_file=None)

        assert settings.TIMEZONE == "America/Mexico_City"
        assert not hasattr(settings, "CLINIC_TZ")

    def test_lunch_break(self, monkeypatch):
        monkeypatch.setenv("LUNCH_BREAK_START", "13:30")
        monkeypatch.setenv("LUNCH_BREAK_END", "14:30")

        assert Settings(_env_file=None).lunch_break == (time(13, 30), time(14, 30))

    def test_parse_hhmm(self):
        assert parse_hhmm(" 09:05 ") == time(9, 5)
