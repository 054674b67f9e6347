import os
from functools import lru_cache
from pathlib import Path


class Settings:
    def __init__(
        self,
        database_url: str,
        timezone: str,
        auth_secret: str,
        token_max_age_hours: int,
        encryption_key: str,
        encryption_key_from_env: bool,
        llm_timeout_secs: float,
        llm_max_retries: int,
        llm_retry_delay_secs: float,
        llm_cache_ttl_secs: int,
        llm_cache_max_size: int,
        scheduler_enabled: bool,
    ) -> None:
        self.database_url = database_url
        self.timezone = timezone
        self.auth_secret = auth_secret
        self.token_max_age_hours = token_max_age_hours
        self.encryption_key = encryption_key
        self.encryption_key_from_env = encryption_key_from_env
        self.llm_timeout_secs = llm_timeout_secs
        self.llm_max_retries = llm_max_retries
        self.llm_retry_delay_secs = llm_retry_delay_secs
        self.llm_cache_ttl_secs = llm_cache_ttl_secs
        self.llm_cache_max_size = llm_cache_max_size
        self.scheduler_enabled = scheduler_enabled


def _ensure_data_dir() -> Path:
    root = Path(os.getenv("FINANCE_DATA_DIR", "./data")).resolve()
    root.mkdir(parents=True, exist_ok=True)
    return root


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    data_dir = _ensure_data_dir()
    default_db = data_dir / "financial.db"
    database_url = os.getenv("FINANCE_DATABASE_URL", f"sqlite:///{default_db}")
    timezone = os.getenv("FINANCE_TIMEZONE", "UTC")
    auth_secret = os.getenv(
        "FINANCE_AUTH_SECRET",
        "5f0c9b8e2a7d41c3b6e98d0a4f1c27e3a9b8d6c5e4f3a2b1c0d9e8f7a6b5c4d3",
    )
    token_max_age_hours = int(os.getenv("FINANCE_TOKEN_MAX_AGE_HOURS", "24"))
    env_key = os.getenv("FINANCE_ENCRYPTION_KEY")
    encryption_key = env_key or (
        "3b1f5e7a9c2d4f6081a3c5e7092b4d6f8a1c3e5f7092b4d6e8f0a2c4e6081a3c"
    )
    llm_timeout_secs = float(os.getenv("FINANCE_LLM_TIMEOUT_SECS", "30"))
    llm_max_retries = int(os.getenv("FINANCE_LLM_MAX_RETRIES", "3"))
    llm_retry_delay_secs = float(os.getenv("FINANCE_LLM_RETRY_DELAY_SECS", "1"))
    llm_cache_ttl_secs = int(os.getenv("FINANCE_LLM_CACHE_TTL_SECS", "3600"))
    llm_cache_max_size = int(os.getenv("FINANCE_LLM_CACHE_MAX_SIZE", "100"))
    scheduler_enabled = _env_flag("FINANCE_SCHEDULER_ENABLED", "true")
    return Settings(
        database_url=database_url,
        timezone=timezone,
        auth_secret=auth_secret,
        token_max_age_hours=token_max_age_hours,
        encryption_key=encryption_key,
        encryption_key_from_env=env_key is not None,
        llm_timeout_secs=llm_timeout_secs,
        llm_max_retries=llm_max_retries,
        llm_retry_delay_secs=llm_retry_delay_secs,
        llm_cache_ttl_secs=llm_cache_ttl_secs,
        llm_cache_max_size=llm_cache_max_size,
        scheduler_enabled=scheduler_enabled,
    )
