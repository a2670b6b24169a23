"""
Relay Core - shared infrastructure for correlay services.

Settings, logging and Redis client helpers. Nothing in here knows about
correlation records; the protocol lives in the correlation package.
"""
