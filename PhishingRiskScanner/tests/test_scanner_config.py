import pytest

from scanner_config import DEFAULT_DB_PATH, ScannerConfig, load_config

ENV_NAMES = [
    "VIRUSTOTAL_API_KEY",
    "GOOGLE_SAFE_BROWSING_API_KEY",
    "WEBSCANNER_GSB_API_KEY",
    "WEBSCANNER_SKIP_REMOTE_REPUTATION",
    "WEBSCANNER_REPUTATION_TIMEOUT",
    "WEBSCANNER_PROBE_TIMEOUT",
    "WEBSCANNER_DB_PATH",
    "SECRET_KEY",
    "LOG_LEVEL",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    # setenv first so teardown also removes values loaded from .env files
    for name in ENV_NAMES:
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)


def test_defaults_without_environment(tmp_path):
    config = load_config(tmp_path / "missing.env")

    assert config == ScannerConfig()
    assert config.database_path == DEFAULT_DB_PATH
    assert config.probe_timeout == 5.0


def test_reads_credentials_and_settings(monkeypatch, tmp_path):
    monkeypatch.setenv("VIRUSTOTAL_API_KEY", " vt ")
    monkeypatch.setenv("WEBSCANNER_GSB_API_KEY", "gsb-alias")
    monkeypatch.setenv("WEBSCANNER_SKIP_REMOTE_REPUTATION", "1")
    monkeypatch.setenv("WEBSCANNER_REPUTATION_TIMEOUT", "2.5")
    monkeypatch.setenv("WEBSCANNER_PROBE_TIMEOUT", "-1")
    monkeypatch.setenv("LOG_LEVEL", "debug")

    config = load_config(tmp_path / "missing.env")

    assert config.virustotal_api_key == "vt"
    assert config.safe_browsing_api_key == "gsb-alias"
    assert config.skip_remote_reputation is True
    assert config.reputation_timeout == 2.5
    assert config.probe_timeout == 5.0
    assert config.log_level == "DEBUG"


def test_primary_safe_browsing_variable_wins(monkeypatch, tmp_path):
    monkeypatch.setenv("GOOGLE_SAFE_BROWSING_API_KEY", "primary")
    monkeypatch.setenv("WEBSCANNER_GSB_API_KEY", "alias")
    assert load_config(tmp_path / "missing.env").safe_browsing_api_key == "primary"


def test_env_file_is_loaded_without_overriding(monkeypatch, tmp_path):
    env_file = tmp_path / ".env"
    env_file.write_text("VIRUSTOTAL_API_KEY=from-file\nSECRET_KEY=file-secret\n", encoding="utf-8")
    monkeypatch.setenv("SECRET_KEY", "from-env")

    config = load_config(env_file)

    assert config.virustotal_api_key == "from-file"
    assert config.secret_key == "from-env"


def test_config_is_immutable():
    config = ScannerConfig()
    with pytest.raises(AttributeError):
        config.virustotal_api_key = "changed"
