"""
Task Notification Engine

Decides when task notifications fire, persists them durably and delivers
them across email, push, in-app and SMS channels with retry, quiet hours
and per-user preferences.
"""

__version__ = "1.0.0"
