# config.py
from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv


def _maybe_load_env_file() -> None:
    """
    Load .env from the project root (same folder as this config.py).
    Never overwrites already-set environment variables.
    """
    dotenv_path = Path(__file__).resolve().parent / ".env"
    if dotenv_path.exists():
        load_dotenv(dotenv_path=dotenv_path, override=False)


@dataclass(frozen=True)
class MySqlConfig:
    host: str
    port: int
    user: str
    password: str
    database: str
    minsize: int = 1
    maxsize: int = 5
    connect_timeout: int = 10


@dataclass(frozen=True)
class BalancerConfig:
    default_team_size: int = 5
    max_teams: int = 20
    team_cache_ttl_seconds: int = 3600
    team_cache_max_entries: int = 64
    report_max_attempts: int = 3


@dataclass(frozen=True)
class BotConfig:
    token: str
    dev_guild_id: int | None
    default_announce_channel_id: int | None
    command_prefix: str
    log_level: str
    mysql: MySqlConfig
    balancer: BalancerConfig = field(default_factory=BalancerConfig)


def _getenv(name: str, default: str | None = None) -> str | None:
    v = os.getenv(name)
    if v is None:
        return default
    v = v.strip()
    return v if v else default


def _int_or_none(value: str | None, var_name: str) -> int | None:
    if value is None:
        return None
    try:
        return int(value)
    except ValueError as e:
        raise ValueError(f"{var_name} must be an integer, got: {value!r}") from e


def _int(value: str | None, var_name: str, default: int) -> int:
    if value is None:
        return default
    try:
        return int(value)
    except ValueError as e:
        raise ValueError(f"{var_name} must be an integer, got: {value!r}") from e


def load_balancer_config() -> BalancerConfig:
    team_size = _int(_getenv("TEAM_SIZE"), "TEAM_SIZE", 5)
    max_teams = _int(_getenv("MAX_TEAMS"), "MAX_TEAMS", 20)
    ttl = _int(_getenv("TEAM_CACHE_TTL"), "TEAM_CACHE_TTL", 3600)
    max_entries = _int(_getenv("TEAM_CACHE_MAX"), "TEAM_CACHE_MAX", 64)
    attempts = _int(_getenv("REPORT_MAX_ATTEMPTS"), "REPORT_MAX_ATTEMPTS", 3)

    if team_size < 1:
        raise ValueError("TEAM_SIZE must be >= 1")
    if not 2 <= max_teams <= 64:
        raise ValueError("MAX_TEAMS must be between 2 and 64")
    if ttl < 1:
        raise ValueError("TEAM_CACHE_TTL must be >= 1")
    if max_entries < 1:
        raise ValueError("TEAM_CACHE_MAX must be >= 1")
    if attempts < 1:
        raise ValueError("REPORT_MAX_ATTEMPTS must be >= 1")

    return BalancerConfig(
        default_team_size=team_size,
        max_teams=max_teams,
        team_cache_ttl_seconds=ttl,
        team_cache_max_entries=max_entries,
        report_max_attempts=attempts,
    )


def load_mysql_config() -> MySqlConfig:
    minsize = _int(_getenv("DB_POOL_MIN"), "DB_POOL_MIN", 1)
    maxsize = _int(_getenv("DB_POOL_MAX"), "DB_POOL_MAX", 5)
    if minsize < 1:
        raise ValueError("DB_POOL_MIN must be >= 1")
    if maxsize < minsize:
        raise ValueError("DB_POOL_MAX must be >= DB_POOL_MIN")

    return MySqlConfig(
        host=_getenv("DB_HOST", "127.0.0.1") or "127.0.0.1",
        port=_int(_getenv("DB_PORT"), "DB_PORT", 3306),
        user=_getenv("DB_USER", "root") or "root",
        password=_getenv("DB_PASSWORD", "") or "",
        database=_getenv("DB_NAME", "d2_inhouse") or "d2_inhouse",
        minsize=minsize,
        maxsize=maxsize,
        connect_timeout=_int(_getenv("DB_CONNECT_TIMEOUT"), "DB_CONNECT_TIMEOUT", 10),
    )


def load_config() -> BotConfig:
    _maybe_load_env_file()

    token = (_getenv("DISCORD_TOKEN") or "").strip()
    if not token:
        raise RuntimeError("Missing DISCORD_TOKEN environment variable.")

    return BotConfig(
        token=token,
        dev_guild_id=_int_or_none(_getenv("DEV_GUILD_ID"), "DEV_GUILD_ID"),
        default_announce_channel_id=_int_or_none(_getenv("ANNOUNCE_CHANNEL_ID"), "ANNOUNCE_CHANNEL_ID"),
        command_prefix=_getenv("COMMAND_PREFIX", "!") or "!",
        log_level=(_getenv("LOG_LEVEL", "INFO") or "INFO").upper(),
        mysql=load_mysql_config(),
        balancer=load_balancer_config(),
    )
