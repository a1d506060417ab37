import asyncio
import io
from datetime import datetime, timedelta, timezone
from typing import Optional

import discord
from discord import app_commands
from discord.ext import commands, tasks

from config import BotConfig, load_config
from discord_output import create_leaderboard_embeds, create_trade_logged_embed, embeds_size
from history import backfill, message_to_trade, report_backfill_error
from leaderboard import (
    LeaderboardSnapshot,
    build_alltime_snapshot,
    build_totals_snapshot,
    build_weekly_snapshot,
    trades_to_frame,
)
from publisher import publish_pinned
from trade_entry import InvalidTradeInput, build_manual_trade
from trade_store import JsonTradeStore


CONFIG: BotConfig = load_config()
STORE = JsonTradeStore(CONFIG.trade_store_file)

BACKFILL_TASK: Optional[asyncio.Task] = None


class LeaderboardBot(commands.Bot):
    def __init__(self, config: BotConfig):
        intents = discord.Intents.default()
        intents.message_content = True
        super().__init__(command_prefix="!", intents=intents)
        self.config = config

    async def setup_hook(self):
        if self.config.guild_id:
            guild = discord.Object(id=self.config.guild_id)
            self.tree.copy_global_to(guild=guild)
            await self.tree.sync(guild=guild)
            print(f"Slash commands synced to guild {self.config.guild_id}!")
        else:
            await self.tree.sync()
            print("Slash commands synced!")


bot = LeaderboardBot(CONFIG)


# ==== Leaderboard building / posting ====

def weekly_snapshot(now: Optional[datetime] = None) -> LeaderboardSnapshot:
    return build_weekly_snapshot(
        STORE.all(),
        top_n=CONFIG.weekly_top_n,
        days=CONFIG.weekly_window_days,
        excluded=CONFIG.excluded_traders,
        now=now,
    )


def alltime_snapshot(now: Optional[datetime] = None) -> LeaderboardSnapshot:
    return build_alltime_snapshot(
        STORE.all(),
        top_n=CONFIG.alltime_top_n,
        excluded=CONFIG.excluded_traders,
        now=now,
    )


def totals_snapshot(now: Optional[datetime] = None) -> LeaderboardSnapshot:
    return build_totals_snapshot(STORE.all(), excluded=CONFIG.excluded_traders, now=now)


async def post_snapshot(snapshot: LeaderboardSnapshot) -> bool:
    """Send a leaderboard to the leaderboard channel and pin it."""
    channel = bot.get_channel(CONFIG.leaderboard_channel_id)
    if channel is None:
        print(f"[leaderboard] WARNING: Leaderboard channel {CONFIG.leaderboard_channel_id} not found")
        return False

    embeds = create_leaderboard_embeds(snapshot)
    try:
        await publish_pinned(channel, embeds, snapshot.marker, bot_user_id=bot.user.id if bot.user else None)
    except discord.Forbidden:
        print(f"[leaderboard] ERROR: Missing permissions for leaderboard channel")
        return False
    except discord.HTTPException as e:
        print(f"[leaderboard] ERROR: HTTP error posting {snapshot.marker}: {e}")
        return False

    rows = sum(len(s.entries) for s in snapshot.sections)
    print(f"[leaderboard] Posted {snapshot.marker} ({rows} rows, {embeds_size(embeds)} chars)")
    return True


async def run_backfill(days: Optional[int] = None):
    channel = bot.get_channel(CONFIG.trade_log_channel_id)
    if channel is None:
        print(f"[backfill] WARNING: Trade log channel {CONFIG.trade_log_channel_id} not found")
        return None

    since = datetime.now(timezone.utc) - timedelta(days=days) if days else None
    print(f"[backfill] Scanning trade log channel{f' (last {days} days)' if days else ''}...")
    return await backfill(
        channel,
        STORE,
        since=since,
        max_messages=CONFIG.backfill_max_messages,
        page_delay=CONFIG.fetch_page_delay,
        time_budget=CONFIG.backfill_time_budget,
        ignore_author_id=bot.user.id if bot.user else None,
        clamp=CONFIG.pnl_clamp,
    )


# ==== Events ====

@bot.event
async def on_ready():
    """
    Bot startup - console output only.
    Starts the scheduled leaderboard loops and, if enabled, a history backfill.
    """
    global BACKFILL_TASK

    print(f"[startup] Logged in as {bot.user} (ID: {bot.user.id})")
    print(f"[startup] Connected to {len(bot.guilds)} server(s)")
    print(f"[startup] {len(STORE)} trades in store")

    if not bot.get_channel(CONFIG.trade_log_channel_id):
        print(f"[startup] WARNING: Trade log channel {CONFIG.trade_log_channel_id} not found")
    if not bot.get_channel(CONFIG.leaderboard_channel_id):
        print(f"[startup] WARNING: Leaderboard channel {CONFIG.leaderboard_channel_id} not found")

    if not daily_leaderboard_loop.is_running():
        daily_leaderboard_loop.start()
        print(f"[startup] Daily leaderboard scheduled at {CONFIG.daily_post_time:%H:%M} {CONFIG.timezone}")
    if not weekly_leaderboard_loop.is_running():
        weekly_leaderboard_loop.start()
        print(f"[startup] Weekly leaderboard scheduled on {CONFIG.weekly_day_name} {CONFIG.weekly_post_time:%H:%M} {CONFIG.timezone}")

    if CONFIG.backfill_on_startup and (BACKFILL_TASK is None or BACKFILL_TASK.done()):
        BACKFILL_TASK = asyncio.create_task(run_backfill())
        BACKFILL_TASK.add_done_callback(report_backfill_error)

    print("[startup] Leaderboard bot is online and ready")


@bot.event
async def on_message(message: discord.Message):
    """Passive scan: every trade report in the trade log channel is stored."""
    if message.channel.id != CONFIG.trade_log_channel_id:
        return
    if bot.user and message.author.id == bot.user.id:
        return

    trade = message_to_trade(message, CONFIG.pnl_clamp)
    if trade is None:
        return
    if STORE.insert(trade):
        print(f"[store] {trade.trader}: {trade.symbol or '?'} {trade.pnl_percent:+.2f}% (msg {trade.source_id})")


# ==== Slash commands ====

@bot.tree.command(name="help", description="Show all available commands.")
async def help_command(interaction: discord.Interaction):
    commands_text = f"""
**Trade Leaderboard - Commands**

**Leaderboards:**
`/lb_weekly` - Top {CONFIG.weekly_top_n} of the last {CONFIG.weekly_window_days} days
`/lb_alltime` - Top {CONFIG.alltime_top_n} all-time (wins & losses)
`/totals` - Total +/- PnL % per trader (best to worst)

**Trades:**
`/addtrade symbol side entry exit [leverage] [pnl]` - Log a trade by hand
  Example: `/addtrade BTC LONG 100 110 10`
`/export` - Download all stored trades as CSV

**System:**
`/backfill [days]` - Re-scan the trade log channel
`/debug` - Bot health and status check
"""
    await interaction.response.send_message(commands_text, ephemeral=True)


async def _post_from_command(interaction: discord.Interaction, snapshot: LeaderboardSnapshot, label: str):
    await interaction.response.defer(ephemeral=True)
    try:
        ok = await post_snapshot(snapshot)
        if ok:
            await interaction.followup.send(f"{label} posted in <#{CONFIG.leaderboard_channel_id}>.", ephemeral=True)
        else:
            await interaction.followup.send(f"Could not post {label}. Check the bot's channel permissions.", ephemeral=True)
    except Exception as e:
        print(f"[/{snapshot.marker}] Error: {e}")
        await interaction.followup.send(f"Error posting {label}: {str(e)}", ephemeral=True)


@bot.tree.command(name="lb_weekly", description="Post the weekly top trades.")
async def lb_weekly(interaction: discord.Interaction):
    await _post_from_command(interaction, weekly_snapshot(), "Weekly leaderboard")


@bot.tree.command(name="lb_alltime", description="Post the all-time best and worst trades.")
async def lb_alltime(interaction: discord.Interaction):
    await _post_from_command(interaction, alltime_snapshot(), "All-time leaderboard")


@bot.tree.command(name="totals", description="Post total +/- PnL % per trader (best to worst).")
async def totals(interaction: discord.Interaction):
    await _post_from_command(interaction, totals_snapshot(), "Trader totals")


@bot.tree.command(name="addtrade", description="Log a trade by hand.")
@app_commands.describe(
    symbol="Ticker, e.g. BTC",
    side="LONG or SHORT",
    entry="Entry price (12.5k style allowed)",
    exit="Exit price",
    leverage="Leverage multiplier (default 1)",
    pnl="Optional PnL % override, e.g. 12.3",
)
@app_commands.choices(side=[
    app_commands.Choice(name="LONG", value="LONG"),
    app_commands.Choice(name="SHORT", value="SHORT"),
])
async def addtrade(
    interaction: discord.Interaction,
    symbol: str,
    side: app_commands.Choice[str],
    entry: str,
    exit: str,
    leverage: app_commands.Range[int, 1, 1000] = 1,
    pnl: Optional[str] = None,
):
    try:
        trade = build_manual_trade(
            trader=interaction.user.display_name,
            symbol=symbol,
            side=side.value,
            entry=entry,
            exit=exit,
            leverage=leverage,
            pnl=pnl,
            source_id=f"cmd:{interaction.id}",
            timestamp=interaction.created_at,
            clamp=CONFIG.pnl_clamp,
        )
    except InvalidTradeInput as e:
        await interaction.response.send_message(str(e), ephemeral=True)
        return

    STORE.insert(trade)
    print(f"[/addtrade] {trade.trader}: {trade.symbol} {trade.side.value} {trade.pnl_percent:+.2f}%")
    await interaction.response.send_message(embed=create_trade_logged_embed(trade))


@bot.tree.command(name="backfill", description="Re-scan the trade log channel for trades.")
@app_commands.describe(days="Only scan the last N days (default: whole history)")
async def backfill_cmd(interaction: discord.Interaction, days: app_commands.Range[int, 1, 3650] = None):
    global BACKFILL_TASK

    if BACKFILL_TASK is not None and not BACKFILL_TASK.done():
        await interaction.response.send_message("A backfill is already running.", ephemeral=True)
        return

    await interaction.response.defer(ephemeral=True)
    BACKFILL_TASK = asyncio.create_task(run_backfill(days))
    try:
        result = await BACKFILL_TASK
    except (discord.HTTPException, OSError) as e:
        print(f"[/backfill] Error: {e}")
        await interaction.followup.send(f"Backfill stopped by an error: {str(e)}", ephemeral=True)
        return

    if result is None:
        await interaction.followup.send("Trade log channel not found.", ephemeral=True)
    else:
        await interaction.followup.send(result.summary(), ephemeral=True)


@bot.tree.command(name="export", description="Export all stored trades to a CSV file.")
async def export_cmd(interaction: discord.Interaction):
    await interaction.response.defer(ephemeral=True)
    try:
        trades = STORE.all()
        if not trades:
            await interaction.followup.send("**No trades stored yet.**", ephemeral=True)
            return

        output = io.StringIO()
        trades_to_frame(trades).to_csv(output, index=False)
        data = io.BytesIO(output.getvalue().encode("utf-8"))
        filename = f"trades_{datetime.now(timezone.utc):%Y%m%d}.csv"
        await interaction.followup.send(
            f"**{len(trades)} trades**",
            file=discord.File(data, filename=filename),
            ephemeral=True,
        )
    except Exception as e:
        print(f"[/export] Error: {e}")
        await interaction.followup.send(f"Error exporting trades: {str(e)}", ephemeral=True)


@bot.tree.command(name="debug", description="Show bot health and status summary.")
async def debug_cmd(interaction: discord.Interaction):
    """Health and status check for the bot."""
    import platform

    log_ch = bot.get_channel(CONFIG.trade_log_channel_id)
    lb_ch = bot.get_channel(CONFIG.leaderboard_channel_id)
    backfill_status = "Running" if BACKFILL_TASK is not None and not BACKFILL_TASK.done() else "Idle"

    msg = (
        "**Trade Leaderboard - Debug Info**\n\n"
        f"**Status:** Online as {bot.user.name if bot.user else 'N/A'}\n"
        f"**Trades stored:** {len(STORE)}\n"
        f"**Backfill:** {backfill_status}\n\n"
        f"**Channels:**\n"
        f"  Trade log: {'OK' if log_ch else 'NOT FOUND'} | Leaderboard: {'OK' if lb_ch else 'NOT FOUND'}\n\n"
        f"**Schedule ({CONFIG.timezone}):**\n"
        f"  Daily: {CONFIG.daily_post_time:%H:%M} ({'Running' if daily_leaderboard_loop.is_running() else 'Stopped'})\n"
        f"  Weekly: {CONFIG.weekly_day_name} {CONFIG.weekly_post_time:%H:%M} ({'Running' if weekly_leaderboard_loop.is_running() else 'Stopped'})\n\n"
        f"**Excluded traders:** {', '.join(CONFIG.excluded_traders) or 'none'}\n"
        f"**System:** Python {platform.python_version()}, discord.py {discord.__version__}"
    )
    await interaction.response.send_message(msg, ephemeral=True)


# ==== Scheduled posts ====

@tasks.loop(time=CONFIG.daily_time_local)
async def daily_leaderboard_loop():
    """Daily post: top trades of the last week."""
    print("[leaderboard] Running daily leaderboard...")
    await post_snapshot(weekly_snapshot())


@tasks.loop(time=CONFIG.weekly_time_local)
async def weekly_leaderboard_loop():
    """Weekly post: all-time best/worst trades plus trader totals."""
    if datetime.now(CONFIG.tzinfo).weekday() != CONFIG.weekly_post_day:
        return
    print("[leaderboard] Running weekly leaderboard...")
    await post_snapshot(alltime_snapshot())
    await post_snapshot(totals_snapshot())


@daily_leaderboard_loop.before_loop
@weekly_leaderboard_loop.before_loop
async def before_leaderboard_loops():
    await bot.wait_until_ready()


def main():
    if not CONFIG.discord_token:
        print("\n" + "=" * 60)
        print("❌ ERROR: DISCORD_BOT_TOKEN not found!")
        print("=" * 60)
        print("\nSet DISCORD_BOT_TOKEN in your environment or in a .env file.")
        print("Get your token from: https://discord.com/developers/applications")
        print("=" * 60 + "\n")
        raise ValueError("DISCORD_BOT_TOKEN not found.")

    print("Starting Trade Leaderboard Bot...")
    print("Connecting to Discord...\n")

    try:
        bot.run(CONFIG.discord_token)
    except discord.LoginFailure:
        print("\n" + "=" * 60)
        print("❌ ERROR: Invalid Discord Token!")
        print("=" * 60)
        print("\nYour DISCORD_BOT_TOKEN is invalid.")
        print("Please verify the token at: https://discord.com/developers/applications")
        print("=" * 60 + "\n")


if __name__ == "__main__":
    main()
