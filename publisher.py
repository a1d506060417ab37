"""
Posting and pinning leaderboards.

Each leaderboard kind keeps exactly one pinned message: the newest post.
Earlier pins of the same kind (found by the marker in their embed footer)
are unpinned when a new one goes up.
"""

from __future__ import annotations

from typing import List, Optional

import discord


def has_marker(message, marker: str) -> bool:
    for embed in getattr(message, "embeds", None) or []:
        footer = getattr(getattr(embed, "footer", None), "text", None) or ""
        if footer.startswith(marker):
            return True
    return False


async def send_block(channel, embeds: Optional[List[discord.Embed]] = None, content: Optional[str] = None):
    """Send one message. Send errors propagate to the caller."""
    if embeds:
        return await channel.send(content=content, embeds=embeds)
    return await channel.send(content=content)


async def pin(message) -> bool:
    try:
        await message.pin()
        return True
    except discord.Forbidden:
        print(f"[discord] ERROR: Missing permissions to pin message {message.id}")
    except discord.HTTPException as e:
        print(f"[discord] ERROR: HTTP exception pinning message {message.id}: {e}")
    return False


async def unpin(message) -> bool:
    try:
        await message.unpin()
        return True
    except discord.Forbidden:
        print(f"[discord] ERROR: Missing permissions to unpin message {message.id}")
    except discord.HTTPException as e:
        print(f"[discord] ERROR: HTTP exception unpinning message {message.id}: {e}")
    return False


async def publish_pinned(channel, embeds: List[discord.Embed], marker: str, bot_user_id: Optional[int] = None):
    """
    Send a leaderboard, unpin older copies of it and pin the new one.

    Pin housekeeping failures are logged and never undo the post.

    Returns:
        The sent message
    """
    message = await send_block(channel, embeds=embeds)

    try:
        pinned = await channel.pins()
    except discord.HTTPException as e:
        print(f"[discord] ERROR: Could not list pins in channel {channel.id}: {e}")
        pinned = []

    for old in pinned:
        if old.id == message.id:
            continue
        if bot_user_id is not None and getattr(old.author, "id", None) != bot_user_id:
            continue
        if has_marker(old, marker):
            await unpin(old)

    await pin(message)
    return message
