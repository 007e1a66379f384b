"""
Beacon: a Discord bot that keeps slash command registrations in step with
the guilds it has joined and routes interactions to command modules.
"""

__version__ = "1.0.0"
