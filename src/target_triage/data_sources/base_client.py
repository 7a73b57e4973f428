"""
Shared HTTP plumbing for the triage data providers.

Every provider client (Open Targets, ChEMBL, PubMed, ClinicalTrials.gov)
goes through `BaseClient._request`, which layers a disk cache, a token
bucket and a bounded retry loop over a single aiohttp session.
"""

import asyncio
import hashlib
import json
import logging
import math
import time
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from pathlib import Path
from typing import Any

import aiohttp
from pydantic import BaseModel

from target_triage.constants import (
    CACHE_TTL,
    DEFAULT_CACHE_DIR,
    DEFAULT_MAX_RETRIES,
    DEFAULT_TIMEOUT,
)

logger = logging.getLogger("target_triage.data_sources")


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


class RetryConfig(BaseModel):
    """When and how long to wait before re-sending a provider request."""

    max_retries: int = DEFAULT_MAX_RETRIES
    base_delay: float = 1.0  # seconds
    max_delay: float = 30.0  # seconds, also caps Retry-After
    backoff_factor: float = 2.0
    retryable_status_codes: set[int] = {429, 500, 502, 503, 504}


class RateLimitConfig(BaseModel):
    requests_per_second: float = 5.0
    burst: int = 10


class CacheConfig(BaseModel):
    enabled: bool = True
    directory: Path = DEFAULT_CACHE_DIR
    ttl_seconds: int = CACHE_TTL


class ClientConfig(BaseModel):
    """Per-client knobs. Built from Settings by the orchestrator."""

    retry: RetryConfig = RetryConfig()
    rate_limit: RateLimitConfig = RateLimitConfig()
    cache: CacheConfig = CacheConfig()
    timeout_seconds: float = DEFAULT_TIMEOUT


# ---------------------------------------------------------------------------
# Rate limiting
# ---------------------------------------------------------------------------


class TokenBucketRateLimiter:
    """
    Token bucket shared by one or more clients of the same provider.

    The bucket holds up to `burst` tokens and refills at
    `requests_per_second`. `acquire()` takes one token, sleeping first if
    none is left. Calls are serialized on a lock, so ``burst=1`` gives an
    even spacing of ``1 / requests_per_second`` between requests.
    """

    def __init__(self, config: RateLimitConfig):
        self.rate = config.requests_per_second
        self.max_tokens = config.burst
        self.tokens = float(config.burst)
        self.last_refill = time.monotonic()
        self._lock = asyncio.Lock()

    @classmethod
    def per_second(cls, requests_per_second: float) -> "TokenBucketRateLimiter":
        """Single-slot limiter: no burst, fixed spacing."""
        return cls(RateLimitConfig(requests_per_second=requests_per_second, burst=1))

    @property
    def min_interval(self) -> float:
        return 1.0 / self.rate

    def _refill(self) -> None:
        now = time.monotonic()
        self.tokens = min(self.max_tokens, self.tokens + (now - self.last_refill) * self.rate)
        self.last_refill = now

    async def acquire(self) -> None:
        async with self._lock:
            self._refill()
            if self.tokens >= 1.0:
                self.tokens -= 1.0
                return

            wait = (1.0 - self.tokens) / self.rate
            logger.debug("Rate limiter: waiting %.2fs for a token", wait)
            await asyncio.sleep(wait)
            self.tokens = 0.0
            self.last_refill = time.monotonic()


# ---------------------------------------------------------------------------
# Response cache
# ---------------------------------------------------------------------------


class DiskCache:
    """
    One JSON file per cached provider response.

    Files are named by a SHA-256 of the namespace plus request parameters
    and store ``{"data", "cached_at", "ttl"}``. Stale or unreadable files
    are deleted on read and reported as a miss.
    """

    def __init__(self, config: CacheConfig):
        self.enabled = config.enabled
        self.directory = config.directory
        self.ttl = config.ttl_seconds

    @staticmethod
    def make_key(namespace: str, params: dict[str, Any]) -> str:
        raw = json.dumps({"ns": namespace, **params}, sort_keys=True, default=str)
        return hashlib.sha256(raw.encode()).hexdigest()

    def _path(self, namespace: str, params: dict[str, Any]) -> Path:
        return self.directory / f"{self.make_key(namespace, params)}.json"

    async def get(self, namespace: str, params: dict[str, Any]) -> Any | None:
        if not self.enabled:
            return None
        path = self._path(namespace, params)
        if not path.exists():
            return None

        try:
            entry = json.loads(path.read_text())
            age = (datetime.now() - datetime.fromisoformat(entry["cached_at"])).total_seconds()
            if age > entry.get("ttl", self.ttl):
                logger.debug("Stale cache entry for %s (%.0fs old)", namespace, age)
                path.unlink(missing_ok=True)
                return None
            data = entry["data"]
        except (json.JSONDecodeError, KeyError, ValueError):
            logger.debug("Dropping unreadable cache entry %s", path.name)
            path.unlink(missing_ok=True)
            return None

        logger.debug("Cache hit for %s", namespace)
        return data

    async def set(
        self,
        namespace: str,
        params: dict[str, Any],
        data: Any,
        ttl: int | None = None,
    ) -> None:
        if not self.enabled:
            return
        self.directory.mkdir(parents=True, exist_ok=True)
        entry = {"data": data, "cached_at": datetime.now().isoformat(), "ttl": ttl or self.ttl}
        self._path(namespace, params).write_text(json.dumps(entry, default=str))


# ---------------------------------------------------------------------------
# Request metadata, errors and results
# ---------------------------------------------------------------------------


class RequestContext(BaseModel):
    """Which provider call a request belongs to. Only used in log lines."""

    source: str  # "open_targets", "chembl", "pubmed", "clinical_trials"
    method: str  # client method name, e.g. "get_association_score"
    params: dict[str, Any] = {}


class DataSourceError(Exception):
    """A provider call failed. The message is prefixed with ``[source]``."""

    def __init__(self, source: str, message: str, status_code: int | None = None):
        self.source = source
        self.status_code = status_code
        super().__init__(f"[{source}] {message}")


class RateLimitError(DataSourceError):
    """The provider kept answering 429."""


class PartialResult(BaseModel):
    """
    Outcome of `_request`.

    ``is_complete=False`` means every attempt failed and ``data`` is None.
    Provider clients turn that into either an empty answer or a
    DataSourceError via `BaseClient._require`.
    """

    data: Any
    is_complete: bool = True
    errors: list[str] = []
    cached: bool = False
    elapsed_seconds: float = 0.0


# ---------------------------------------------------------------------------
# Base client
# ---------------------------------------------------------------------------


class BaseClient(ABC):
    """
    Common base for the provider clients.

    Subclasses name themselves through `_source_name` and build their typed
    methods on `_rest_get()` or `_graphql()`.
    """

    def __init__(
        self,
        config: ClientConfig | None = None,
        rate_limiter: TokenBucketRateLimiter | None = None,
    ):
        self.config = config or ClientConfig()
        self.rate_limiter = rate_limiter or TokenBucketRateLimiter(self.config.rate_limit)
        self.cache = DiskCache(self.config.cache)
        self._session: aiohttp.ClientSession | None = None

    @property
    @abstractmethod
    def _source_name(self) -> str:
        """Short provider id used in logs and error prefixes."""
        ...

    # -- Session ---------------------------------------------------------------

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            timeout = aiohttp.ClientTimeout(total=self.config.timeout_seconds)
            self._session = aiohttp.ClientSession(timeout=timeout)
        return self._session

    async def close(self) -> None:
        if self._session and not self._session.closed:
            await self._session.close()

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        await self.close()

    # -- Retry timing ----------------------------------------------------------

    def _backoff_delay(self, attempt: int) -> float:
        retry = self.config.retry
        return min(retry.base_delay * retry.backoff_factor**attempt, retry.max_delay)

    def _retry_after_delay(self, header: str | None, attempt: int) -> float:
        """Seconds to wait after a 429.

        Retry-After may be delta-seconds or an HTTP-date. A missing or
        unparseable value falls back to the backoff schedule. The result is
        clamped to ``[0, retry.max_delay]``.
        """
        delay = None
        if header:
            try:
                delay = float(header)
            except ValueError:
                try:
                    when = parsedate_to_datetime(header)
                except (TypeError, ValueError):
                    when = None
                if when is not None:
                    if when.tzinfo is None:
                        when = when.replace(tzinfo=timezone.utc)
                    delay = (when - datetime.now(timezone.utc)).total_seconds()

        if delay is None or not math.isfinite(delay):
            logger.debug("Ignoring Retry-After=%r, using backoff", header)
            delay = self._backoff_delay(attempt)
        return min(max(delay, 0.0), self.config.retry.max_delay)

    # -- Request loop ----------------------------------------------------------

    async def _request(
        self,
        method: str,
        url: str,
        *,
        params: dict[str, Any] | None = None,
        json_body: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        cache_namespace: str | None = None,
        cache_params: dict[str, Any] | None = None,
        cache_ttl: int | None = None,
        context: RequestContext | None = None,
    ) -> PartialResult:
        """
        Send one provider request, going through cache, limiter and retries.

        Parameters
        ----------
        method : str
            "GET" or "POST".
        url : str
            Absolute endpoint URL.
        params : dict, optional
            Query string.
        json_body : dict, optional
            POST payload (GraphQL query and variables).
        headers : dict, optional
            Extra request headers.
        cache_namespace, cache_params : optional
            Both must be set for the response to be read from or written to
            the disk cache.
        cache_ttl : int, optional
            TTL for this entry instead of the cache default.
        context : RequestContext, optional
            Provider and method names for log lines.

        Returns
        -------
        PartialResult
            Parsed JSON on success, or ``is_complete=False`` once retries
            on 429/5xx, timeouts or connection errors run out.

        Raises
        ------
        DataSourceError
            Straight away on any other 4xx.
        """
        ctx = context or RequestContext(source=self._source_name, method="unknown")
        use_cache = bool(cache_namespace and cache_params)

        if use_cache:
            cached = await self.cache.get(cache_namespace, cache_params)
            if cached is not None:
                return PartialResult(data=cached, cached=True)

        retry = self.config.retry
        last_error: Exception | None = None
        start = time.monotonic()

        for attempt in range(retry.max_retries + 1):
            delay = self._backoff_delay(attempt)
            try:
                await self.rate_limiter.acquire()
                session = await self._get_session()
                logger.info(
                    "%s.%s attempt=%d %s %s",
                    ctx.source,
                    ctx.method,
                    attempt + 1,
                    method.upper(),
                    url,
                )

                if method.upper() == "GET":
                    resp = await session.get(url, params=params, headers=headers)
                else:
                    resp = await session.post(url, json=json_body, params=params, headers=headers)

                if resp.status in retry.retryable_status_codes:
                    body = await resp.text()
                    logger.warning(
                        "%s.%s got HTTP %d: %s", ctx.source, ctx.method, resp.status, body[:200]
                    )
                    error_cls = RateLimitError if resp.status == 429 else DataSourceError
                    last_error = error_cls(
                        ctx.source, f"HTTP {resp.status}: {body[:200]}", status_code=resp.status
                    )
                    if resp.status == 429:
                        delay = self._retry_after_delay(resp.headers.get("Retry-After"), attempt)

                elif resp.status >= 400:
                    body = await resp.text()
                    raise DataSourceError(
                        ctx.source, f"HTTP {resp.status}: {body[:500]}", status_code=resp.status
                    )

                else:
                    data = await resp.json(content_type=None)
                    elapsed = time.monotonic() - start
                    logger.info("%s.%s ok in %.2fs", ctx.source, ctx.method, elapsed)
                    if use_cache:
                        await self.cache.set(cache_namespace, cache_params, data, ttl=cache_ttl)
                    return PartialResult(data=data, elapsed_seconds=elapsed)

            except asyncio.TimeoutError:
                elapsed = time.monotonic() - start
                last_error = DataSourceError(ctx.source, f"Timeout after {elapsed:.1f}s")
                logger.warning(
                    "%s.%s timed out on attempt %d (%.1fs)",
                    ctx.source,
                    ctx.method,
                    attempt + 1,
                    elapsed,
                )

            except aiohttp.ClientError as e:
                last_error = DataSourceError(ctx.source, f"Connection error: {e}")
                logger.warning(
                    "%s.%s connection error on attempt %d: %s",
                    ctx.source,
                    ctx.method,
                    attempt + 1,
                    e,
                )

            if attempt < retry.max_retries:
                await asyncio.sleep(delay)

        elapsed = time.monotonic() - start
        logger.error(
            "%s.%s gave up after %d attempts (%.1fs): %s",
            ctx.source,
            ctx.method,
            retry.max_retries + 1,
            elapsed,
            last_error,
        )
        return PartialResult(
            data=None,
            is_complete=False,
            errors=[str(last_error)],
            elapsed_seconds=elapsed,
        )

    # -- Helpers for subclasses ------------------------------------------------

    async def _rest_get(
        self,
        url: str,
        params: dict[str, Any],
        *,
        cache_namespace: str | None = None,
        cache_ttl: int | None = None,
        context: RequestContext | None = None,
    ) -> PartialResult:
        """JSON GET. ChEMBL, PubMed and ClinicalTrials.gov all use this."""
        return await self._request(
            "GET",
            url,
            params=params,
            headers={"Accept": "application/json"},
            cache_namespace=cache_namespace,
            cache_params={"url": url, **params},
            cache_ttl=cache_ttl,
            context=context,
        )

    async def _graphql(
        self,
        url: str,
        query: str,
        variables: dict[str, Any],
        *,
        cache_namespace: str | None = None,
        cache_ttl: int | None = None,
        context: RequestContext | None = None,
    ) -> PartialResult:
        """GraphQL POST. Raises DataSourceError if the response has ``errors``."""
        result = await self._request(
            "POST",
            url,
            json_body={"query": query, "variables": variables},
            headers={"Content-Type": "application/json"},
            cache_namespace=cache_namespace,
            cache_params={"query_hash": hashlib.md5(query.encode()).hexdigest(), **variables},
            cache_ttl=cache_ttl,
            context=context,
        )

        if result.data and result.data.get("errors"):
            source = context.source if context else self._source_name
            messages = [e.get("message", str(e)) for e in result.data["errors"]]
            raise DataSourceError(source, f"GraphQL errors: {messages}")

        return result

    def _require(self, result: PartialResult, what: str) -> Any:
        """Unwrap `result`, raising DataSourceError if it is incomplete."""
        if not result.is_complete:
            raise DataSourceError(self._source_name, f"Failed to fetch {what}: {result.errors}")
        return result.data

    def _ctx(self, method: str, **params: Any) -> RequestContext:
        return RequestContext(source=self._source_name, method=method, params=params)
