from pathlib import Path

import pytest

from risebot.config import DEFAULT_CHAIN_ID, DEFAULT_WETH, Settings, parse_amount_range, parse_delay_range
from risebot.errors import ConfigurationError
from risebot.utils import load_settings

ROOT = Path(__file__).resolve().parent.parent


def test_sample_settings_file_loads():
    """The shipped settings.yaml is valid as-is."""

    settings = Settings.from_dict(load_settings(str(ROOT / "settings.yaml")))

    assert settings.chain_id == DEFAULT_CHAIN_ID
    assert settings.weth_address == DEFAULT_WETH
    assert settings.usdc_address is None
    assert settings.tasks_id == ("1", "2", "5", "6")
    assert settings.amount_transfer == (0.001, 0.01)
    assert settings.unit_timeout == 86400


def test_missing_settings_file(tmp_path):
    with pytest.raises(ConfigurationError):
        load_settings(str(tmp_path / "missing.yaml"))


def test_defaults_from_empty_mapping():
    settings = Settings.from_dict({})

    assert settings.amount_safety_margin == 0.85
    assert settings.slippage_factor == 0.968
    assert settings.priority_fee_gwei == 1.5
    assert settings.tokens_faucet == ("ETH",)


def test_max_concurrency_depends_on_proxy_mode():
    raw = {"SETTINGS": {"MAX_THREADS": 8, "MAX_THREADS_NO_PROXY": 2, "USE_PROXY": True}}
    assert Settings.from_dict(raw).max_concurrency == 8

    raw["SETTINGS"]["USE_PROXY"] = False
    assert Settings.from_dict(raw).max_concurrency == 2


def test_captcha_key_follows_provider():
    raw = {"CAPTCHA": {"TYPE_CAPTCHA": "CapMonster", "API_KEY_2CAPTCHA": "two", "API_KEY_CAPMONSTER": "cm"}}

    settings = Settings.from_dict(raw)

    assert settings.captcha_provider == "capmonster"
    assert settings.captcha_api_key == "cm"


@pytest.mark.parametrize("raw", [
    {"SETTINGS": {"MAX_THREADS": 0}},
    {"SETTINGS": {"MAX_THREADS": "many"}},
    {"AMOUNTS": {"AMOUNT_TRANSFER": [0.5, 0.1]}},
    {"AMOUNTS": {"AMOUNT_SAFETY_MARGIN": 1.5}},
    {"CONTRACTS": {"USDC": "not-an-address"}},
    {"SETTINGS": {"DELAY_BETWEEN_REQUESTS": [5, 1]}},
])
def test_invalid_values_rejected(raw):
    with pytest.raises(ConfigurationError):
        Settings.from_dict(raw)


def test_non_mapping_rejected():
    with pytest.raises(ConfigurationError):
        Settings.from_dict(["SETTINGS"])


class TestRequireContracts:
    def test_swaps_need_usdc_and_router(self):
        settings = Settings.from_dict({})

        with pytest.raises(ConfigurationError, match="USDC"):
            settings.require_contracts(["7"])

    def test_gateway_needed_for_deposit(self):
        with pytest.raises(ConfigurationError, match="GATEWAY"):
            Settings.from_dict({}).require_contracts(["4"])

    def test_run_all_checks_configured_tasks(self):
        settings = Settings.from_dict({"TASKS": {"TASKS_ID": [2, 3]}})

        with pytest.raises(ConfigurationError):
            settings.require_contracts(["9"])

    def test_wrap_needs_nothing_extra(self):
        Settings.from_dict({}).require_contracts(["5", "6", "2"])


def test_parse_ranges():
    assert parse_amount_range([1, 2]) == (1.0, 2.0)
    assert parse_amount_range(0.5) == (0.5, 0.5)
    assert parse_amount_range(None, 0.1) == (0.1, 0.1)
    assert parse_delay_range([3, 7], (1, 5)) == (3, 7)
    assert parse_delay_range(None, (1, 5)) == (1, 5)


@pytest.mark.parametrize("delay", [[0.5, 2], [1, 2.5], 1.5, "3", [True, 2]])
def test_fractional_or_non_numeric_delays_rejected(delay):
    with pytest.raises(ConfigurationError):
        Settings.from_dict({"SETTINGS": {"DELAY_BETWEEN_REQUESTS": delay}})


def test_whole_float_delays_accepted():
    settings = Settings.from_dict({"SETTINGS": {"DELAY_BETWEEN_REQUESTS": [1.0, 3.0], "DELAY_START_BOT": 4}})

    assert settings.delay_between_requests == (1, 3)
    assert settings.delay_start_bot == (4, 4)
