"""Webex GitHub Bot: relays GitHub webhook events into a Webex space."""

__version__ = "0.1.0"
