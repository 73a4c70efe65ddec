from dotenv import load_dotenv
load_dotenv()

import os
from dataclasses import dataclass, field
from pathlib import Path

PACKAGE_DIR = Path(__file__).resolve().parent
DEFAULT_SAMPLE_PATH = PACKAGE_DIR / "sample_data" / "employee_data.sql"


def _env_bool(name, default):
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class Settings:
    """Runtime configuration, read from the environment (and .env)"""

    base_url: str = "https://llmfoundry.straive.com"
    token_url: str = "https://llmfoundry.straive.com/token"
    api_key: str = ""
    model: str = "gpt-4o-mini"
    max_tokens: int = 2000
    temperature: float = 0.2
    timeout: float = 120.0
    sample_path: Path = DEFAULT_SAMPLE_PATH
    secret_key: str = field(default_factory=lambda: os.urandom(24).hex())
    host: str = "127.0.0.1"
    port: int = 5001
    open_browser: bool = True
    session_ttl: float = 3600.0
    max_sessions: int = 1000
    log_level: str = "INFO"

    @classmethod
    def from_env(cls):
        defaults = cls()
        return cls(
            base_url=os.getenv("LLM_BASE_URL", defaults.base_url),
            token_url=os.getenv("LLM_TOKEN_URL", defaults.token_url),
            api_key=os.getenv("LLM_API_KEY", ""),
            model=os.getenv("LLM_MODEL", defaults.model),
            max_tokens=int(os.getenv("LLM_MAX_TOKENS", defaults.max_tokens)),
            temperature=float(os.getenv("LLM_TEMPERATURE", defaults.temperature)),
            timeout=float(os.getenv("LLM_TIMEOUT", defaults.timeout)),
            sample_path=Path(os.getenv("SAMPLE_SQL_PATH", str(defaults.sample_path))),
            secret_key=os.getenv("FLASK_SECRET_KEY") or defaults.secret_key,
            host=os.getenv("SQLPG_HOST", defaults.host),
            port=int(os.getenv("SQLPG_PORT", defaults.port)),
            open_browser=_env_bool("SQLPG_OPEN_BROWSER", defaults.open_browser),
            session_ttl=float(os.getenv("SQLPG_SESSION_TTL", defaults.session_ttl)),
            max_sessions=int(os.getenv("SQLPG_MAX_SESSIONS", defaults.max_sessions)),
            log_level=os.getenv("SQLPG_LOG_LEVEL", defaults.log_level).upper(),
        )
