"""
Base data source interface.
"""

from abc import ABC, abstractmethod
from typing import Any

from pydantic import BaseModel, Field

from radiodir.services.client import DirectoryClient

# Stations are passed through verbatim from the directory service
Station = dict[str, Any]


class ApiResponse(BaseModel):
    """Envelope for operations that report where their data came from."""

    success: bool = True
    data: list[Any] = Field(default_factory=list)
    source: str = "radio-browser"

    @property
    def degraded(self) -> bool:
        """True when the data is a fallback, not a provider answer."""
        return self.source == "fallback"


class BaseDataSource(ABC):
    """
    Abstract base class for directory data sources.

    All data sources should:
    - Use DirectoryClient.execute for every outbound call (failover, caching)
    - Pass directory records through untouched
    - Degrade to empty results where a fallback is defined
    """

    def __init__(self, client: DirectoryClient | None = None):
        self.client = client or DirectoryClient()

    @property
    @abstractmethod
    def service_id(self) -> str:
        """Unique identifier for this data source."""
        ...
