# config.py
"""
Configuration for the trade leaderboard bot.

You keep:
- secrets (bot token) in environment variables or a .env file
- public config (channel IDs, schedule, list sizes) here as defaults

load_config() reads everything once at startup into an immutable BotConfig
that is passed to whatever needs it.
"""

import os
from dataclasses import dataclass
from datetime import time
from pathlib import Path
from typing import Mapping, Optional, Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv


WEEKDAYS = ["monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"]

# Channel defaults (override with TRADE_LOG_CHANNEL / LEADERBOARD_CHANNEL)
DEFAULT_TRADE_LOG_CHANNEL_ID = 1395887706755829770
DEFAULT_LEADERBOARD_CHANNEL_ID = 1395887166890184845


@dataclass(frozen=True)
class BotConfig:
    """Everything the bot needs to know, read once at process start."""

    # ==== Discord ====
    discord_token: Optional[str] = None
    trade_log_channel_id: int = DEFAULT_TRADE_LOG_CHANNEL_ID
    leaderboard_channel_id: int = DEFAULT_LEADERBOARD_CHANNEL_ID
    guild_id: Optional[int] = None

    # ==== Leaderboards ====
    weekly_top_n: int = 10
    alltime_top_n: int = 25
    weekly_window_days: int = 7
    pnl_clamp: float = 5000.0
    excluded_traders: Tuple[str, ...] = ()

    # ==== Schedule (local time in `timezone`) ====
    timezone: str = "Europe/Amsterdam"
    daily_post_time: time = time(21, 0)
    weekly_post_day: int = 6  # Sunday
    weekly_post_time: time = time(21, 0)

    # ==== History backfill ====
    fetch_page_delay: float = 1.0
    backfill_max_messages: int = 20000
    backfill_time_budget: float = 600.0
    backfill_on_startup: bool = False

    # ==== Storage ====
    trade_store_file: Path = Path("trades.json")

    @property
    def tzinfo(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)

    @property
    def daily_time_local(self) -> time:
        return self.daily_post_time.replace(tzinfo=self.tzinfo)

    @property
    def weekly_time_local(self) -> time:
        return self.weekly_post_time.replace(tzinfo=self.tzinfo)

    @property
    def weekly_day_name(self) -> str:
        return WEEKDAYS[self.weekly_post_day].capitalize()


def _get_channel_id(env: Mapping[str, str], env_name: str, default: Optional[int]) -> Optional[int]:
    """Get channel ID from environment or use default."""
    val = env.get(env_name)
    if val:
        try:
            return int(val)
        except ValueError:
            print(f"[config] Warning: Invalid {env_name} value '{val}', using default")
    return default


def _get_int(env: Mapping[str, str], env_name: str, default: int, minimum: int = 1) -> int:
    val = env.get(env_name)
    if val:
        try:
            parsed = int(val)
            if parsed >= minimum:
                return parsed
        except ValueError:
            pass
        print(f"[config] Warning: Invalid {env_name} value '{val}', using {default}")
    return default


def _get_float(env: Mapping[str, str], env_name: str, default: float) -> float:
    val = env.get(env_name)
    if val:
        try:
            parsed = float(val)
            if parsed >= 0:
                return parsed
        except ValueError:
            pass
        print(f"[config] Warning: Invalid {env_name} value '{val}', using {default}")
    return default


def _get_bool(env: Mapping[str, str], env_name: str, default: bool) -> bool:
    val = env.get(env_name)
    if val is None or val == "":
        return default
    return val.strip().lower() in ("1", "true", "yes", "on")


def _get_time(env: Mapping[str, str], env_name: str, default: time) -> time:
    """Parse 'HH:MM' (24h)."""
    val = env.get(env_name)
    if val:
        try:
            hour, minute = val.strip().split(":")
            return time(int(hour), int(minute))
        except ValueError:
            print(f"[config] Warning: Invalid {env_name} value '{val}' (expected HH:MM), using {default:%H:%M}")
    return default


def _get_weekday(env: Mapping[str, str], env_name: str, default: int) -> int:
    """Accept 'sunday', 'sun' or 0-6 (Monday = 0)."""
    val = (env.get(env_name) or "").strip().lower()
    if not val:
        return default
    if val.isdigit() and 0 <= int(val) <= 6:
        return int(val)
    for i, name in enumerate(WEEKDAYS):
        if name.startswith(val[:3]) and len(val) >= 3:
            return i
    print(f"[config] Warning: Invalid {env_name} value '{val}', using {WEEKDAYS[default]}")
    return default


def _get_timezone(env: Mapping[str, str], env_name: str, default: str) -> str:
    val = env.get(env_name)
    if val:
        try:
            ZoneInfo(val)
            return val
        except (ZoneInfoNotFoundError, ValueError):
            print(f"[config] Warning: Unknown timezone '{val}', using {default}")
    return default


def _get_list(env: Mapping[str, str], env_name: str) -> Tuple[str, ...]:
    val = env.get(env_name) or ""
    return tuple(item.strip() for item in val.split(",") if item.strip())


def load_config(env: Optional[Mapping[str, str]] = None) -> BotConfig:
    """
    Build the BotConfig.

    Args:
        env: Mapping to read from. Defaults to os.environ after loading .env
    """
    if env is None:
        load_dotenv()
        env = os.environ

    defaults = BotConfig()
    return BotConfig(
        discord_token=env.get("DISCORD_BOT_TOKEN") or env.get("DISCORD_TOKEN"),
        trade_log_channel_id=_get_channel_id(env, "TRADE_LOG_CHANNEL", defaults.trade_log_channel_id),
        leaderboard_channel_id=_get_channel_id(env, "LEADERBOARD_CHANNEL", defaults.leaderboard_channel_id),
        guild_id=_get_channel_id(env, "GUILD_ID", None) or _get_channel_id(env, "SERVER_ID", None),
        weekly_top_n=_get_int(env, "WEEKLY_TOPN", defaults.weekly_top_n),
        alltime_top_n=_get_int(env, "ALLTIME_TOPN", defaults.alltime_top_n),
        weekly_window_days=_get_int(env, "WEEKLY_WINDOW_DAYS", defaults.weekly_window_days),
        pnl_clamp=_get_float(env, "PNL_CLAMP", defaults.pnl_clamp),
        excluded_traders=_get_list(env, "EXCLUDED_TRADERS"),
        timezone=_get_timezone(env, "TZ", defaults.timezone),
        daily_post_time=_get_time(env, "DAILY_POST_TIME", defaults.daily_post_time),
        weekly_post_day=_get_weekday(env, "WEEKLY_POST_DAY", defaults.weekly_post_day),
        weekly_post_time=_get_time(env, "WEEKLY_POST_TIME", defaults.weekly_post_time),
        fetch_page_delay=_get_float(env, "FETCH_PAGE_DELAY", defaults.fetch_page_delay),
        backfill_max_messages=_get_int(env, "BACKFILL_MAX_MESSAGES", defaults.backfill_max_messages),
        backfill_time_budget=_get_float(env, "BACKFILL_TIME_BUDGET", defaults.backfill_time_budget),
        backfill_on_startup=_get_bool(env, "BACKFILL_ON_STARTUP", defaults.backfill_on_startup),
        trade_store_file=Path(env.get("TRADE_STORE_FILE") or defaults.trade_store_file),
    )
