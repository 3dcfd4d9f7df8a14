"""Upstream transports used by the default resolver."""
