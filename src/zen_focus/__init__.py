"""Zen Focus - an offline Pomodoro focus timer with durable statistics."""

__version__ = "0.1.0"
