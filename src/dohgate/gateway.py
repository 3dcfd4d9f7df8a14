"""Gateway orchestrator: decode, cache lookup, resolve, cache store, respond.

Brief:
  DohGateway turns a DohRequest into a DohResponse. OPTIONS is answered
  before anything else is touched; GET/POST go through the cache and, on a
  miss, the resolver collaborator. Only successful answers are cached.
"""

from __future__ import annotations

import asyncio
import functools
import inspect
import logging
from typing import Any, Awaitable, Callable, Literal, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from .binding import (
    DEFAULT_DOH_PATH,
    DohRequest,
    DohResponse,
    cache_key_for,
    check_route,
    decode_query,
    dns_message_response,
    error_response,
    preflight_response,
)
from .codec import describe_query
from .errors import ClientInputError, ResolutionError
from .plugins.cache.base import CachePlugin

logger = logging.getLogger(__name__)

Resolver = Callable[
    [bytes, Optional[Mapping[str, Any]]], Union[bytes, Awaitable[bytes]]
]


class GatewaySettings(BaseModel):
    """Brief: Typed settings for the DoH endpoint.

    Inputs:
      - path: HTTP path served (default /dns-query).
      - content_type_policy: 'strict' (400 on a non-DNS POST content type)
        or 'lenient' (accept any).
      - cache_max_age: Seconds advertised in Cache-Control on answers; 0
        omits the header.

    Outputs:
      - GatewaySettings instance.
    """

    path: str = DEFAULT_DOH_PATH
    content_type_policy: Literal["strict", "lenient"] = "strict"
    cache_max_age: int = Field(default=60, ge=0)

    model_config = ConfigDict(extra="forbid")


def _is_async_callable(fn: object) -> bool:
    return inspect.iscoroutinefunction(fn) or inspect.iscoroutinefunction(
        getattr(fn, "__call__", None)
    )


class DohGateway:
    """Brief: Glue the HTTP binding, a response cache and a resolver.

    Inputs:
      - resolver: Callable (query_bytes, metadata) -> response_bytes, plain or
        async. Raises ResolutionError when no upstream is usable; an empty
        result means the query was dropped or timed out.
      - cache: CachePlugin instance owned by this gateway.
      - settings: Optional GatewaySettings.

    Outputs:
      - DohGateway instance; call ``await gateway.handle(request)``.

    Example:
      >>> from dohgate.plugins.cache import InMemoryTTLCache
      >>> gw = DohGateway(lambda q, meta: q, InMemoryTTLCache())
    """

    def __init__(
        self,
        resolver: Resolver,
        cache: CachePlugin,
        *,
        settings: Optional[GatewaySettings] = None,
    ) -> None:
        self.resolver = resolver
        self.cache = cache
        self.settings = settings or GatewaySettings()

    async def handle(self, request: DohRequest) -> DohResponse:
        """Brief: Answer one inbound request.

        Inputs:
          - request: DohRequest with its body already read.

        Outputs:
          - DohResponse: 204 for OPTIONS, 200 with a DNS message, or an error
            status (400/404/405/500/502/504) with a plain-text body.
        """

        try:
            check_route(request, self.settings.path)
        except ClientInputError as exc:
            logger.debug("Rejected %s %s: %s", request.method, request.url, exc)
            return error_response(exc.status)

        if request.method == "OPTIONS":
            return preflight_response()

        try:
            query = decode_query(
                request, content_type_policy=self.settings.content_type_policy
            )
        except ClientInputError as exc:
            logger.debug("Rejected %s %s: %s", request.method, request.url, exc)
            return error_response(exc.status)

        key = cache_key_for(request, query)
        debug = logger.isEnabledFor(logging.DEBUG)
        summary = describe_query(query) if debug else None

        cached = self._lookup(key)
        if cached is not None:
            if debug:
                logger.debug("DoH %s %s: cache hit", request.method, summary)
            return cached

        if debug:
            logger.debug("DoH %s %s: cache miss", request.method, summary)
        try:
            answer = await self._resolve(query, request.metadata)
        except ResolutionError as exc:
            logger.warning(
                "Resolution failed for %s: %s", summary or describe_query(query), exc
            )
            return error_response(502)
        except Exception:
            logger.exception("Resolver raised for %s", summary or describe_query(query))
            return error_response(500)

        if not answer:
            logger.info("Resolver dropped query %s", summary or describe_query(query))
            return error_response(504)

        response = dns_message_response(
            answer, cache_max_age=self.settings.cache_max_age
        )
        self._store(key, response)
        return response

    async def _resolve(
        self, query: bytes, metadata: Optional[Mapping[str, Any]]
    ) -> bytes:
        if _is_async_callable(self.resolver):
            result = await self.resolver(query, metadata)  # type: ignore[misc]
        else:
            loop = asyncio.get_running_loop()
            result = await loop.run_in_executor(
                None, functools.partial(self.resolver, query, metadata)
            )
        return bytes(result or b"")

    def _lookup(self, key: str) -> Optional[DohResponse]:
        # A broken cache backend degrades to a miss.
        try:
            record = self.cache.lookup(key)
        except Exception as exc:
            logger.warning("Cache lookup failed for %s: %s", key, exc)
            return None
        return record.to_response() if record is not None else None

    def _store(self, key: str, response: DohResponse) -> None:
        try:
            self.cache.store(key, response)
        except Exception as exc:
            logger.warning("Cache store failed for %s: %s", key, exc)
