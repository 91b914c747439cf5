"""
DirectoryClient - async HTTP client for a mirrored directory service.

Combines:
- ProviderRegistry for the set of interchangeable mirrors
- HealthProber for startup discovery of a healthy mirror
- Failover execution across mirrors with an optional fallback result
- TTLCache instances for idempotent read families
"""

import asyncio
from dataclasses import dataclass
from datetime import timedelta
from enum import Enum
from typing import Any, Awaitable, Callable, TypeVar

import httpx
from loguru import logger

from radiodir.services.cache import TTLCache
from radiodir.services.errors import (
    ProviderNotFoundError,
    ProviderRequestError,
    RequestTimeoutError,
    ServiceError,
)
from radiodir.services.prober import HealthProber
from radiodir.services.providers import Provider, ProviderRegistry
from radiodir.settings import Settings, global_settings

T = TypeVar("T")

PROBE_PATH = "/json/stations/topvote/1"


class InitState(str, Enum):
    """One-shot initialization states."""

    UNINITIALIZED = "UNINITIALIZED"
    INITIALIZING = "INITIALIZING"
    INITIALIZED = "INITIALIZED"


@dataclass
class ClientCaches:
    """One cache per read family; key spaces are independent."""

    station_search: TTLCache[Any]
    top_stations: TTLCache[Any]
    latest_stations: TTLCache[Any]

    def all(self) -> list[TTLCache[Any]]:
        return [self.station_search, self.top_stations, self.latest_stations]


class DirectoryClient:
    """
    Failover HTTP client shared by every directory operation.

    Usage:
        async with DirectoryClient() as client:
            data = await client.execute(lambda: client.get("/json/countries"))

        # Degrade to an empty list when every mirror is down
        stations = await client.execute(fetch_latest, fallback=lambda: [])
    """

    def __init__(
        self,
        settings: Settings | None = None,
        providers: list[Provider] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._settings = settings or global_settings
        self._debug = self._settings.debug
        self._transport = transport

        self.registry = ProviderRegistry(providers)
        self._default_provider = self.registry.default()
        self._current = self._default_provider

        self._headers = {
            "User-Agent": self._settings.user_agent,
            "Accept-Charset": "UTF-8",
        }

        self.prober = HealthProber(self.registry, probe=self.probe, debug=self._debug)

        self._state = InitState.UNINITIALIZED
        self._init_task: asyncio.Task[None] | None = None

        ttl = timedelta(seconds=self._settings.cache_ttl_seconds)
        max_size = self._settings.cache_max_size
        self.caches = ClientCaches(
            station_search=TTLCache("station_search", max_size, ttl, debug=self._debug),
            top_stations=TTLCache("top_stations", max_size, ttl, debug=self._debug),
            latest_stations=TTLCache("latest_stations", max_size, ttl, debug=self._debug),
        )

        # HTTP client (lazy initialization)
        self._http_client: httpx.AsyncClient | None = None

    @property
    def current_provider(self) -> Provider:
        """The provider operations are currently sent to."""
        return self._current

    @property
    def state(self) -> InitState:
        return self._state

    @property
    def debug(self) -> bool:
        return self._debug

    async def _get_http_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                timeout=httpx.Timeout(self._settings.request_timeout),
                headers=self._headers,
                transport=self._transport,
                follow_redirects=True,
            )
        return self._http_client

    # Initialization

    def start(self) -> None:
        """Schedule the startup probe if it has not run yet."""
        if self._state is InitState.UNINITIALIZED:
            self._state = InitState.INITIALIZING
            self._init_task = asyncio.create_task(self._initialize())

    async def _initialize(self) -> None:
        """Probe all providers and adopt the first healthy one."""
        try:
            logger.debug("Initializing API providers...")
            provider = await self.prober.discover_healthy_provider()
            if provider is not None:
                self._current = provider
                logger.info(
                    f"Successfully initialized API: {provider.name} ({provider.base_url})"
                )
            else:
                self._current = self._default_provider
                logger.warning("No working API found, using default provider")
        except Exception as e:
            logger.error(f"Failed to initialize API: {e}")
        finally:
            self._state = InitState.INITIALIZED

    async def ensure_initialized(self) -> None:
        """Wait for the startup probe; later callers skip the wait."""
        if self._state is InitState.UNINITIALIZED:
            self.start()

        task = self._init_task
        if task is not None:
            await task
            if self._init_task is task:
                self._init_task = None

    async def wait_for_initialization(self) -> None:
        await self.ensure_initialized()

    def is_initialized(self) -> bool:
        """True once the startup probe finished and has been consumed."""
        return self._state is InitState.INITIALIZED and self._init_task is None

    async def refresh_connection(self) -> None:
        """Run one more probe round and re-select the current provider."""
        logger.debug("Refreshing API connection...")
        self._state = InitState.INITIALIZING
        task = asyncio.create_task(self._initialize())
        self._init_task = task
        await task
        if self._init_task is task:
            self._init_task = None

    # HTTP

    async def _request(
        self,
        provider: Provider,
        path: str,
        params: dict[str, Any] | None = None,
        timeout: float | None = None,
    ) -> Any:
        """Execute a GET against one provider and decode its JSON body."""
        client = await self._get_http_client()
        req_timeout = timeout or self._settings.request_timeout

        try:
            response = await client.get(
                provider.url(path),
                params=params,
                timeout=req_timeout,
            )
            response.raise_for_status()
            return response.json()

        except httpx.TimeoutException as e:
            raise RequestTimeoutError(provider.name, req_timeout) from e

        except httpx.HTTPStatusError as e:
            raise ProviderRequestError(
                provider.name, e.response.status_code, e.response.text
            ) from e

        except httpx.RequestError as e:
            raise ServiceError(str(e), service_id=provider.name) from e

        except ValueError as e:
            raise ServiceError(
                f"Invalid JSON from provider '{provider.name}': {e}",
                service_id=provider.name,
            ) from e

    async def get(self, path: str, params: dict[str, Any] | None = None) -> Any:
        """GET a path on the current provider."""
        if self._debug:
            logger.debug(f"GET {self._current.name} {path} {params or ''}")
        return await self._request(self._current, path, params)

    async def probe(self, provider: Provider) -> Any:
        """Lightweight reachability check with the short probe timeout."""
        return await self._request(
            provider, PROBE_PATH, timeout=self._settings.probe_timeout
        )

    # Failover

    async def execute(
        self,
        operation: Callable[[], Awaitable[T]],
        fallback: Callable[[], T] | None = None,
    ) -> T:
        """
        Run an operation, failing over across providers.

        Args:
            operation: Zero-argument coroutine function; it talks to whatever
                provider is current when it runs
            fallback: Produces a degraded result when every provider failed

        Returns:
            The operation's result, or fallback() after total exhaustion

        Raises:
            ServiceError: The last failure, when no fallback was given
        """
        await self.ensure_initialized()

        # Other calls may move the current provider while this one is suspended
        attempted = self._current
        try:
            return await operation()
        except ServiceError as e:
            last_error = e

        logger.warning(
            f"API request failed on {attempted.name}, "
            f"trying fallback providers...: {last_error}"
        )
        self.registry.mark_available(attempted, False)

        for provider in self.registry.by_priority(exclude=attempted, available_only=True):
            if self._debug:
                logger.debug(f"Trying fallback provider: {provider.name}")
            self._current = provider
            try:
                return await operation()
            except ServiceError as e:
                if self._debug:
                    logger.debug(f"Fallback {provider.name} also failed: {e}")
                self.registry.mark_available(provider, False)
                last_error = e

        if fallback is not None:
            logger.warning("All API providers failed, using fallback operation")
            return fallback()

        raise last_error

    # Operational visibility

    def providers_status(self) -> list[dict[str, Any]]:
        """Availability and priority of every provider."""
        return self.registry.status()

    async def switch_to_provider(self, name: str) -> bool:
        """
        Make the named provider current and test it.

        Returns True if the provider answered the probe request.
        """
        try:
            provider = self.registry.find(name)
        except ProviderNotFoundError as e:
            logger.error(str(e))
            return False

        self._current = provider
        try:
            await self._request(provider, PROBE_PATH)
        except ServiceError as e:
            logger.error(f"Failed to switch to provider {name}: {e}")
            self.registry.mark_available(provider, False)
            return False

        self.registry.mark_available(provider, True)
        logger.info(f"Switched to provider: {name}")
        return True

    def get_health_status(self) -> dict[str, Any]:
        """Initialization state, providers and cache statistics."""
        return {
            "state": self._state.value,
            "current_provider": self._current.name,
            "providers": self.providers_status(),
            "caches": {
                cache.name: cache.get_stats().to_dict() for cache in self.caches.all()
            },
        }

    async def clear_cache(self) -> None:
        """Clear every read cache."""
        for cache in self.caches.all():
            await cache.clear()

    async def close(self) -> None:
        """Close the HTTP client and cancel outstanding probes."""
        self.prober.cancel_pending()
        if self._http_client:
            await self._http_client.aclose()
            self._http_client = None
        logger.debug("DirectoryClient closed")

    async def __aenter__(self) -> "DirectoryClient":
        """Async context manager entry; schedules the startup probe."""
        self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit."""
        await self.close()
