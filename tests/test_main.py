"""
Tests for the slash command surface.
"""

import re

import main


class TestCommands:
    """Test registered slash commands."""

    def test_all_commands_registered(self):
        names = {c.name for c in main.bot.tree.get_commands()}
        assert {"help", "lb_weekly", "lb_alltime", "totals", "addtrade", "backfill", "export", "debug"} <= names

    def test_leaderboard_descriptions_do_not_hard_code_sizes(self):
        """Test list sizes and windows come from config, not command text."""
        for name in ("lb_weekly", "lb_alltime", "totals"):
            description = main.bot.tree.get_command(name).description
            assert not re.search(r"\d", description), description
