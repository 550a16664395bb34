"""Telegram bot relaying messages and calendar-driven notifications."""

__version__ = "0.1.0"
