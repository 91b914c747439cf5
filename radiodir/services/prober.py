"""
HealthProber - races probe requests against every mirror.

The first mirror to answer successfully wins. A failed probe does not end the
race; only when every probe has failed is the result None. Probes still in
flight after a winner is chosen keep running and update their provider's
availability when they settle.
"""

import asyncio
from typing import Awaitable, Callable

from loguru import logger

from radiodir.services.providers import Provider, ProviderRegistry

ProbeFn = Callable[[Provider], Awaitable[object]]


class HealthProber:
    """
    Finds a healthy provider by probing all of them concurrently.

    Usage:
        prober = HealthProber(registry, probe=client.probe)
        provider = await prober.discover_healthy_provider()
    """

    def __init__(self, registry: ProviderRegistry, probe: ProbeFn, debug: bool = False):
        self._registry = registry
        self._probe = probe
        self._debug = debug
        self._pending: set[asyncio.Task[Provider | None]] = set()

    @property
    def pending_probes(self) -> int:
        """Number of probes still in flight."""
        return len(self._pending)

    async def discover_healthy_provider(self) -> Provider | None:
        """
        Return the first provider whose probe succeeds, or None if all fail.

        Never raises.
        """
        providers = self._registry.by_priority()
        tasks = []
        for provider in providers:
            task = asyncio.create_task(self._probe_one(provider))
            self._pending.add(task)
            task.add_done_callback(self._pending.discard)
            tasks.append(task)

        for next_done in asyncio.as_completed(tasks):
            provider = await next_done
            if provider is not None:
                logger.debug(f"Successfully connected to: {provider.name}")
                return provider

        logger.warning(f"All {len(providers)} providers failed their health probe")
        return None

    async def _probe_one(self, provider: Provider) -> Provider | None:
        """Probe a single provider and record the outcome on it."""
        try:
            await self._probe(provider)
        except Exception as e:
            self._registry.mark_available(provider, False)
            if self._debug:
                logger.debug(f"Failed to connect to {provider.name}: {e}")
            return None

        self._registry.mark_available(provider, True)
        return provider

    async def wait_pending(self) -> None:
        """Wait until every outstanding probe has settled."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    def cancel_pending(self) -> None:
        """Cancel probes still in flight."""
        for task in list(self._pending):
            task.cancel()
