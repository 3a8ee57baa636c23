"""Twitch chat relay.

Joins one Twitch chat channel over IRC and relays its traffic to stdout,
named pipes or a ZeroMQ bus, sending lines from the matching input back
into the channel.
"""

__version__ = "0.1.0"
