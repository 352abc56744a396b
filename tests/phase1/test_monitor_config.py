import pytest

from compliance_watch.common.enums import PriorityTier
from compliance_watch.config import ConfigError, MonitorConfig, load_monitor_config


ENV_KEYS = [
    "FIRECRAWL_API_KEY",
    "CLASSIFIER_PROVIDER",
    "ANTHROPIC_API_KEY",
    "OPENAI_API_KEY",
    "OPENAI_BASE_URL",
    "CLASSIFIER_MODEL",
    "MEANINGFUL_THRESHOLD",
    "FETCH_TIMEOUT_SECONDS",
    "CLASSIFY_TIMEOUT_SECONDS",
    "DISPATCH_INTERVAL_MINUTES",
    "MAX_TICK_SECONDS",
    "MAX_WORKERS",
    "MAX_DISPATCH_PER_TICK",
    "BACKOFF_FACTOR",
    "MAX_BACKOFF_MULTIPLIER",
    "SNAPSHOT_HISTORY_LIMIT",
    "PRIORITY_INTERVALS",
    "ONLY_MAIN_CONTENT",
    "NOTIFY_ONLY_IF_MEANINGFUL",
    "REDIS_URL",
    "MONITOR_API_URL",
    "AUDIT_LOG_LIMIT",
]


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    for key in ENV_KEYS:
        # setenv first so values loaded from .env are undone at teardown
        monkeypatch.setenv(key, "")
        monkeypatch.delenv(key)
    return monkeypatch


def test_defaults_without_environment(clean_env):
    config = load_monitor_config()
    assert config.meaningful_threshold == 70.0
    assert config.classifier_provider == "anthropic"
    assert config.redis_url is None
    assert config.notify_only_if_meaningful is True
    policy = config.schedule_policy()
    assert policy.base_interval(PriorityTier.critical) == 1440
    assert policy.backoff_factor == 2.0


def test_environment_overrides(clean_env):
    clean_env.setenv("MEANINGFUL_THRESHOLD", "80")
    clean_env.setenv("CLASSIFIER_PROVIDER", "OpenAI")
    clean_env.setenv("PRIORITY_INTERVALS", "critical=720,low=20000")
    clean_env.setenv("BACKOFF_FACTOR", "3")
    clean_env.setenv("ONLY_MAIN_CONTENT", "yes")
    clean_env.setenv("MAX_WORKERS", "8")
    config = load_monitor_config()
    assert config.meaningful_threshold == 80.0
    assert config.classifier_provider == "openai"
    assert config.only_main_content is True
    assert config.max_workers == 8
    policy = config.schedule_policy()
    assert policy.base_interval(PriorityTier.critical) == 720
    assert policy.base_interval(PriorityTier.low) == 20000
    assert policy.backoff_multiplier(2) == 9.0


def test_dotenv_file_is_loaded(clean_env, tmp_path):
    (tmp_path / ".env").write_text("MEANINGFUL_THRESHOLD=65\n")
    config = load_monitor_config()
    assert config.meaningful_threshold == 65.0


@pytest.mark.parametrize(
    "key,value",
    [
        ("MEANINGFUL_THRESHOLD", "120"),
        ("MEANINGFUL_THRESHOLD", "high"),
        ("CLASSIFIER_PROVIDER", "gemini"),
        ("FETCH_TIMEOUT_SECONDS", "0"),
        ("MAX_WORKERS", "0"),
        ("BACKOFF_FACTOR", "1"),
        ("PRIORITY_INTERVALS", "critical"),
    ],
)
def test_invalid_values_raise_config_error(clean_env, key, value):
    clean_env.setenv(key, value)
    with pytest.raises(ConfigError):
        load_monitor_config()


def test_missing_api_keys_are_not_errors():
    MonitorConfig(firecrawl_api_key="", anthropic_api_key="").validate()


def test_callback_url_and_audit_limit(clean_env):
    config = load_monitor_config()
    assert config.monitor_api_url == "http://127.0.0.1:8010"
    assert config.audit_log_limit == 10000

    clean_env.setenv("MONITOR_API_URL", "http://localhost:9000")
    clean_env.setenv("AUDIT_LOG_LIMIT", "50")
    config = load_monitor_config()
    assert config.monitor_api_url == "http://localhost:9000"
    assert config.audit_log_limit == 50


@pytest.mark.parametrize(
    "key,value",
    [
        ("MONITOR_API_URL", "https://monitor.example.com"),
        ("AUDIT_LOG_LIMIT", "0"),
    ],
)
def test_invalid_callback_settings_raise_config_error(clean_env, key, value):
    clean_env.setenv(key, value)
    with pytest.raises(ConfigError):
        load_monitor_config()
