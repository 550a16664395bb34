"""
Main entry point for the calendar notification bot.

Polls the Telegram Bot API for messages, echoes them back, remembers every
chat that wrote in, and notifies those chats on each calendar event date.
"""
from binbot.app import run


if __name__ == "__main__":
    run()
