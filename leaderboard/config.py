import os
from dataclasses import dataclass
from typing import Mapping, Optional

from dotenv import load_dotenv

from leaderboard.constants import RefreshConstants, ShutdownConstants, UIConstants


def _get_bool(env: Mapping[str, str], key: str, default: bool) -> bool:
    value = env.get(key)
    if value is None or value.strip() == '':
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


def _get_number(env: Mapping[str, str], key: str, default, cast):
    value = env.get(key)
    if value is None or value.strip() == '':
        return default
    try:
        return cast(value.strip())
    except ValueError:
        raise ValueError(f"{key} must be a number, got '{value}'")


@dataclass(frozen=True)
class Config:
    """Server configuration settings, built once at startup and passed around"""

    # SSH listener settings
    host: str = 'localhost'
    port: int = 23234
    host_key_path: str = '.ssh/id_ed25519'
    generate_host_key: bool = True

    # Database settings
    database_url: Optional[str] = None
    create_schema: bool = False

    # Refresh and shutdown settings
    refresh_interval: float = RefreshConstants.DEFAULT_INTERVAL_SECONDS
    shutdown_timeout: float = ShutdownConstants.DEFAULT_TIMEOUT_SECONDS
    fetch_timeout: float = RefreshConstants.DEFAULT_FETCH_TIMEOUT_SECONDS
    fetch_retries: int = 1
    tie_break: str = 'earliest'

    # Display settings
    title: str = 'LIVE Leaderboard'
    table_height: int = UIConstants.TABLE_HEIGHT

    # Logging settings
    debug: bool = False
    log_dir: Optional[str] = 'logs'

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> 'Config':
        """Build configuration from the environment (and a .env file if present)"""
        if env is None:
            load_dotenv()
            env = os.environ

        # DATABASE_ENDPOINT is the historical name, DATABASE_URL the fallback
        database_url = env.get('DATABASE_ENDPOINT') or env.get('DATABASE_URL') or None
        log_dir = env.get('LEADERBOARD_LOG_DIR', cls.log_dir)

        return cls(
            host=env.get('LEADERBOARD_HOST', cls.host),
            port=_get_number(env, 'LEADERBOARD_PORT', cls.port, int),
            host_key_path=env.get('LEADERBOARD_HOST_KEY_PATH', cls.host_key_path),
            generate_host_key=_get_bool(env, 'LEADERBOARD_GENERATE_HOST_KEY', cls.generate_host_key),
            database_url=database_url,
            create_schema=_get_bool(env, 'LEADERBOARD_CREATE_SCHEMA', cls.create_schema),
            refresh_interval=_get_number(env, 'LEADERBOARD_REFRESH_INTERVAL', cls.refresh_interval, float),
            shutdown_timeout=_get_number(env, 'LEADERBOARD_SHUTDOWN_TIMEOUT', cls.shutdown_timeout, float),
            fetch_timeout=_get_number(env, 'LEADERBOARD_FETCH_TIMEOUT', cls.fetch_timeout, float),
            fetch_retries=_get_number(env, 'LEADERBOARD_FETCH_RETRIES', cls.fetch_retries, int),
            tie_break=env.get('LEADERBOARD_TIE_BREAK', cls.tie_break).strip().lower(),
            title=env.get('LEADERBOARD_TITLE', cls.title),
            table_height=_get_number(env, 'LEADERBOARD_TABLE_HEIGHT', cls.table_height, int),
            debug=_get_bool(env, 'DEBUG', cls.debug),
            log_dir=log_dir or None,
        )

    def validate(self):
        """Validate that configuration values are usable"""
        from leaderboard.utils.ranking import RankingUtility

        if not 0 < self.port < 65536:
            raise ValueError(f"LEADERBOARD_PORT must be between 1 and 65535, got {self.port}")
        if not self.host_key_path:
            raise ValueError("LEADERBOARD_HOST_KEY_PATH is required")
        if self.refresh_interval <= 0:
            raise ValueError("LEADERBOARD_REFRESH_INTERVAL must be positive")
        if self.shutdown_timeout < 0:
            raise ValueError("LEADERBOARD_SHUTDOWN_TIMEOUT must not be negative")
        if self.fetch_timeout <= 0:
            raise ValueError("LEADERBOARD_FETCH_TIMEOUT must be positive")
        if self.fetch_retries < 1:
            raise ValueError("LEADERBOARD_FETCH_RETRIES must be at least 1")
        if self.table_height < 1:
            raise ValueError("LEADERBOARD_TABLE_HEIGHT must be at least 1")
        if not RankingUtility.validate_tie_break(self.tie_break):
            raise ValueError(
                f"LEADERBOARD_TIE_BREAK must be one of {', '.join(RankingUtility.TIE_BREAKS)}, "
                f"got '{self.tie_break}'"
            )
