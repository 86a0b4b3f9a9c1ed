from __future__ import annotations

import pytest

from dashboard.config import DEFAULT_GATE_SECRET_B64, ConfigError, load_config


def test_defaults() -> None:
    config = load_config({})

    assert config.data_source_url == "http://127.0.0.1:8000/rest/v1"
    assert config.polling_mode == "always-on"
    assert config.gated is False
    assert config.row_cap == 100
    assert config.poll_interval_seconds == 5.0
    assert config.default_threshold == 10
    assert config.display_timezone is None
    assert config.gate_secret_b64 == DEFAULT_GATE_SECRET_B64
    assert config.log_level == "INFO"


def test_gated_unbounded_variant() -> None:
    config = load_config(
        {
            "POLLING_MODE": "Gated",
            "ROW_CAP": "none",
            "DATA_SOURCE_URL": "https://abc.supabase.co/rest/v1/",
            "DISPLAY_TIMEZONE": "Europe/Berlin",
            "LOG_LEVEL": "debug",
        }
    )

    assert config.gated is True
    assert config.row_cap is None
    assert config.data_source_url == "https://abc.supabase.co/rest/v1"
    assert config.display_timezone == "Europe/Berlin"
    assert config.log_level == "DEBUG"


def test_configs_compare_by_value() -> None:
    assert load_config({"ROW_CAP": "50"}) == load_config({"ROW_CAP": "50"})
    assert load_config({"ROW_CAP": "50"}) != load_config({"ROW_CAP": "60"})


def test_threshold_outside_input_range_is_kept() -> None:
    assert load_config({"DEFAULT_THRESHOLD": "150"}).default_threshold == 150
    assert load_config({"DEFAULT_THRESHOLD": "-1"}).default_threshold == -1


@pytest.mark.parametrize(
    "env",
    [
        {"POLLING_MODE": "sometimes"},
        {"ROW_CAP": "0"},
        {"ROW_CAP": "lots"},
        {"POLL_INTERVAL_SECONDS": "-1"},
        {"POLL_INTERVAL_SECONDS": "fast"},
        {"DEFAULT_THRESHOLD": "ten"},
        {"DISPLAY_TIMEZONE": "Mars/Olympus_Mons"},
        {"LOG_LEVEL": "LOUD"},
    ],
)
def test_invalid_values_raise_config_error(env) -> None:
    with pytest.raises(ConfigError):
        load_config(env)
