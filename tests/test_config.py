"""
Tests for costing settings.
"""
import json

from lot_costing.config import CostingSettings, load_settings


class TestCostingSettings:
    """Test settings normalization."""

    def test_defaults(self):
        """Test defaults when the section is missing."""
        settings = CostingSettings.from_settings({})
        assert settings == CostingSettings()
        assert settings.burn_rate_window_days == 7
        assert settings.aging_threshold_days == 90
        assert settings.no_consumption_days_cap == 999
        assert settings.exclude_zero_days is False

    def test_value_entries(self):
        """Test {"value": ...} entries and bare values."""
        settings = CostingSettings.from_settings({
            "costing": {
                "burn_rate_window_days": {"value": 14},
                "exclude_zero_days": {"value": "true"},
                "aging_threshold_days": 120,
            }
        })
        assert settings.burn_rate_window_days == 14
        assert settings.exclude_zero_days is True
        assert settings.aging_threshold_days == 120

    def test_clamping(self):
        """Test out-of-range values are clamped."""
        settings = CostingSettings.from_settings({
            "costing": {
                "burn_rate_window_days": {"value": 0},
                "no_consumption_days_cap": {"value": 10 ** 9},
            }
        })
        assert settings.burn_rate_window_days == 1
        assert settings.no_consumption_days_cap == 99999

    def test_invalid_values_fall_back(self):
        """Test non-numeric and non-boolean values use defaults."""
        settings = CostingSettings.from_settings({
            "costing": {
                "burn_rate_window_days": {"value": "abc"},
                "exclude_zero_days": {"value": "maybe"},
            }
        })
        assert settings.burn_rate_window_days == 7
        assert settings.exclude_zero_days is False

    def test_high_never_below_critical(self):
        """Test tier bounds stay ordered."""
        settings = CostingSettings.from_settings({"costing": {"critical_days": 10, "high_days": 3}})
        assert settings.high_days == 10

    def test_round_trip(self):
        """Test to_settings output reads back to the same settings."""
        original = CostingSettings(burn_rate_window_days=30, include_write_offs_in_burn_rate=True)
        assert CostingSettings.from_settings(original.to_settings()) == original


class TestLoadSettings:
    """Test settings file loading."""

    def test_missing_file(self, tmp_path):
        """Test missing file yields defaults."""
        assert load_settings(tmp_path / "settings.json") == CostingSettings()

    def test_corrupt_file(self, tmp_path):
        """Test unreadable JSON yields defaults."""
        path = tmp_path / "settings.json"
        path.write_text("{not json", encoding="utf-8")
        assert load_settings(path) == CostingSettings()

    def test_non_object_file(self, tmp_path):
        """Test a JSON list yields defaults."""
        path = tmp_path / "settings.json"
        path.write_text("[1, 2]", encoding="utf-8")
        assert load_settings(path) == CostingSettings()

    def test_valid_file(self, tmp_path):
        """Test values are read from the costing section."""
        path = tmp_path / "settings.json"
        path.write_text(json.dumps({"costing": {"critical_days": {"value": 3}}, "other": {}}), encoding="utf-8")
        settings = load_settings(path)
        assert settings.critical_days == 3
        assert settings.high_days == 14
