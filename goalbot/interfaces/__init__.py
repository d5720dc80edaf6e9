"""User-facing surfaces: command parsing and the Discord bot."""
