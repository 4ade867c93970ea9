import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

DEFAULT_SECRET_KEY = "dev-phishing-risk-scanner"
DEFAULT_DB_PATH = "scan_history.db"


@dataclass(frozen=True)
class ScannerConfig:
    virustotal_api_key: str = ""
    safe_browsing_api_key: str = ""
    skip_remote_reputation: bool = False
    reputation_timeout: float = 10.0
    probe_timeout: float = 5.0
    database_path: str = DEFAULT_DB_PATH
    secret_key: str = DEFAULT_SECRET_KEY
    log_level: str = "INFO"


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError:
        return default
    return value if value > 0 else default


def load_config(env_file: str | Path | None = None) -> ScannerConfig:
    """Build the process-wide configuration from the environment.

    A `.env` file is read first (without overriding variables that are
    already set), so keys can live next to the checkout during development.
    """
    load_dotenv(env_file or Path.cwd() / ".env", override=False)

    gsb_key = os.environ.get("GOOGLE_SAFE_BROWSING_API_KEY", "") or os.environ.get("WEBSCANNER_GSB_API_KEY", "")
    return ScannerConfig(
        virustotal_api_key=os.environ.get("VIRUSTOTAL_API_KEY", "").strip(),
        safe_browsing_api_key=gsb_key.strip(),
        skip_remote_reputation=os.environ.get("WEBSCANNER_SKIP_REMOTE_REPUTATION", "").lower() == "1",
        reputation_timeout=_env_float("WEBSCANNER_REPUTATION_TIMEOUT", 10.0),
        probe_timeout=_env_float("WEBSCANNER_PROBE_TIMEOUT", 5.0),
        database_path=os.environ.get("WEBSCANNER_DB_PATH", "").strip() or DEFAULT_DB_PATH,
        secret_key=os.environ.get("SECRET_KEY", "").strip() or DEFAULT_SECRET_KEY,
        log_level=(os.environ.get("LOG_LEVEL", "") or "INFO").strip().upper(),
    )
