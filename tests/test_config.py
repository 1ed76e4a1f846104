import pytest

from siteproof.config import DEFAULT_MODEL, AIConfig, RetryPolicy
from siteproof.errors import ConfigurationError

ENV_VARS = (
    "ANTHROPIC_API_KEY",
    "SITEPROOF_MODEL",
    "SITEPROOF_MAX_TOKENS",
    "SITEPROOF_MAX_ITERATIONS",
    "SITEPROOF_TEMPERATURE",
    "SITEPROOF_TIMEOUT",
    "SITEPROOF_MAX_RETRIES",
    "SITEPROOF_LOG_LEVEL",
    "SITEPROOF_TOKEN_CHECK",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def test_defaults():
    config = AIConfig.from_env()
    assert config.api_key is None
    assert config.model == DEFAULT_MODEL
    assert config.max_tokens == 4096
    assert config.max_iterations == 10
    assert config.timeout == 60.0
    assert (config.compliance_temperature, config.weather_temperature, config.schedule_temperature) == (0.2, 0.2, 0.3)
    assert config.retry == RetryPolicy()


def test_reads_environment(monkeypatch):
    monkeypatch.setenv("ANTHROPIC_API_KEY", " sk-test ")
    monkeypatch.setenv("SITEPROOF_MAX_ITERATIONS", "4")
    monkeypatch.setenv("SITEPROOF_TEMPERATURE", "0.5")
    monkeypatch.setenv("SITEPROOF_MAX_RETRIES", "5")
    monkeypatch.setenv("SITEPROOF_LOG_LEVEL", "debug")
    monkeypatch.setenv("SITEPROOF_TOKEN_CHECK", "off")

    config = AIConfig.from_env()
    assert config.require_api_key() == "sk-test"
    assert config.max_iterations == 4
    assert config.temperature == 0.5
    assert config.retry.max_attempts == 5
    assert config.log_level == "DEBUG"
    assert config.check_token_budget is False


@pytest.mark.parametrize(
    "name, value",
    [
        ("SITEPROOF_MAX_ITERATIONS", "0"),
        ("SITEPROOF_MAX_ITERATIONS", "many"),
        ("SITEPROOF_TEMPERATURE", "1.5"),
        ("SITEPROOF_TIMEOUT", "-3"),
    ],
)
def test_invalid_values_fall_back(monkeypatch, name, value):
    monkeypatch.setenv(name, value)
    default = AIConfig()
    config = AIConfig.from_env()
    assert (config.max_iterations, config.temperature, config.timeout) == (
        default.max_iterations, default.temperature, default.timeout
    )


def test_missing_key():
    with pytest.raises(ConfigurationError):
        AIConfig.from_env().require_api_key()


def test_backoff_is_capped():
    policy = RetryPolicy(initial_delay=1.0, max_delay=5.0, backoff_factor=3.0)
    assert [policy.delay_for(n) for n in range(4)] == [1.0, 3.0, 5.0, 5.0]
