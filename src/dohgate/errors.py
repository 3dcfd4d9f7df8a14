"""Exception types shared by the DoH gateway.

Brief:
  Each error kind maps onto a single HTTP outcome in the gateway:
    - ClientInputError -> its own 4xx status (400/404/405)
    - ResolutionError  -> 502
    - CacheBackendError -> treated as a cache miss, never surfaced
"""

from __future__ import annotations


class DohGatewayError(Exception):
    """Base class for gateway errors."""


class ClientInputError(DohGatewayError):
    """Brief: The inbound request cannot be turned into a DNS query.

    Inputs:
      - message: Internal description (logged, never sent to the client).
      - status: HTTP status code to answer with (default 400).

    Outputs:
      - ClientInputError instance.
    """

    def __init__(self, message: str, status: int = 400) -> None:
        super().__init__(message)
        self.status = int(status)


class ResolutionError(DohGatewayError):
    """No upstream produced a usable DNS answer."""


class CacheBackendError(DohGatewayError):
    """The cache backend could not serve a lookup or store."""
