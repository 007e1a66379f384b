"""
Core infrastructure layer for Beacon.

Configuration, structured logging, secrets and the exception hierarchy.
Nothing here knows about Discord.
"""
