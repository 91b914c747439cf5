"""
Provider registry - the static set of mirrored directory endpoints.

Every mirror serves the same dataset. Availability flags are flipped by the
health prober and by failed calls for the lifetime of the process.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any

from loguru import logger

from radiodir.services.errors import ProviderNotFoundError


class ProviderKind(str, Enum):
    """Kinds of directory service a provider speaks."""

    RADIO_BROWSER = "radio-browser"


@dataclass(eq=False)
class Provider:
    """A single mirror endpoint."""

    name: str
    base_url: str
    kind: ProviderKind = ProviderKind.RADIO_BROWSER
    is_available: bool = True
    priority: int = 1

    def url(self, path: str) -> str:
        """Join a request path onto the mirror's base URL."""
        return f"{self.base_url.rstrip('/')}/{path.lstrip('/')}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "base_url": self.base_url,
            "kind": self.kind.value,
            "is_available": self.is_available,
            "priority": self.priority,
        }


# Radio Browser mirrors, in preference order
DEFAULT_PROVIDERS: list[tuple[str, str]] = [
    ("Radio Browser US1", "https://us1.api.radio-browser.info"),
    ("Radio Browser DE1", "https://de1.api.radio-browser.info"),
    ("Radio Browser NL1", "https://nl1.api.radio-browser.info"),
    ("Radio Browser FR1", "https://fr1.api.radio-browser.info"),
    ("Radio Browser AT1", "https://at1.api.radio-browser.info"),
    ("Radio Browser ALL", "https://all.api.radio-browser.info"),
]


def default_providers() -> list[Provider]:
    """Build fresh Provider objects for the default mirror list."""
    return [Provider(name=name, base_url=url) for name, url in DEFAULT_PROVIDERS]


class ProviderRegistry:
    """
    Ordered collection of providers.

    Usage:
        registry = ProviderRegistry(default_providers())
        for provider in registry.by_priority(available_only=True):
            ...
    """

    def __init__(self, providers: list[Provider] | None = None):
        self._providers: list[Provider] = list(providers or default_providers())

    def __len__(self) -> int:
        return len(self._providers)

    def __iter__(self):
        return iter(self._providers)

    def all(self) -> list[Provider]:
        """All providers in configuration order."""
        return list(self._providers)

    def default(self) -> Provider:
        """The first configured provider."""
        return self._providers[0]

    def find(self, name: str) -> Provider:
        """Look up a provider by name."""
        for provider in self._providers:
            if provider.name == name:
                return provider
        raise ProviderNotFoundError(name)

    def by_priority(
        self,
        exclude: Provider | None = None,
        available_only: bool = False,
    ) -> list[Provider]:
        """
        Providers sorted by priority ascending.

        sorted() is stable, so ties keep configuration order.
        """
        candidates = [
            p
            for p in self._providers
            if p is not exclude and (p.is_available or not available_only)
        ]
        return sorted(candidates, key=lambda p: p.priority)

    def mark_available(self, provider: Provider, available: bool) -> None:
        """Set a provider's availability flag."""
        if provider.is_available != available:
            logger.debug(
                f"Provider {provider.name} marked "
                f"{'available' if available else 'unavailable'}"
            )
        provider.is_available = available

    def status(self) -> list[dict[str, Any]]:
        """Snapshot of every provider for introspection."""
        return [p.to_dict() for p in self._providers]
