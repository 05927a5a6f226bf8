"""Config upload relay: validate, store best-effort, queue for a Discord webhook."""

__version__ = "0.1.0"
