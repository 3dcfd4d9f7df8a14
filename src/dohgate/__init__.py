"""dohgate: a caching DNS-over-HTTPS (RFC 8484) gateway."""

from __future__ import annotations

__all__ = ["__version__"]

__version__ = "0.1.0"
