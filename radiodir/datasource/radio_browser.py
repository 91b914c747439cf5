"""
Radio Browser data source.

API Documentation: https://api.radio-browser.info/
Every mirror serves the same dataset; requests go through DirectoryClient so
they fail over between mirrors.
"""

import random
from typing import Any
from urllib.parse import quote

from loguru import logger

from radiodir.datasource.base import ApiResponse, BaseDataSource, Station
from radiodir.datasource.recommendation import StationRecommender
from radiodir.services.client import DirectoryClient
from radiodir.services.providers import ProviderKind
from radiodir.services.query import cache_key, normalize_params

SEARCH_PATH = "/json/stations/search"

# Tags with this many stations or fewer are left out of get_tags()
MIN_TAG_STATIONS = 10
MAX_TAGS = 100


def _segment(value: str) -> str:
    """Percent-encode a single path segment."""
    return quote(str(value).strip(), safe="")


def _copy_response(response: ApiResponse) -> ApiResponse:
    """Detach a cached envelope so callers cannot edit the cached list."""
    return response.model_copy(update={"data": list(response.data)})


class RadioBrowserSource(BaseDataSource):
    """
    Radio Browser directory operations.

    Search, latest and top-station reads are cached per family; latest and
    random stations degrade to empty results when every mirror is down.
    """

    SERVICE_ID = ProviderKind.RADIO_BROWSER.value

    def __init__(
        self,
        client: DirectoryClient | None = None,
        rng: random.Random | None = None,
    ):
        super().__init__(client)
        self.recommender = StationRecommender(
            self.search_stations,
            source=self.SERVICE_ID,
            rng=rng,
            debug=self.client.debug,
        )

    @property
    def service_id(self) -> str:
        return self.SERVICE_ID

    def _log(self, message: str) -> None:
        if self.client.debug:
            logger.debug(f"[RadioBrowser] {message}")

    async def search_stations(
        self,
        params: dict[str, Any] | None = None,
        force_refresh: bool = False,
    ) -> list[Station]:
        """
        Search stations with arbitrary Radio Browser search parameters.

        Args:
            params: Search filters (name, tag, countrycode, order, limit, ...)
            force_refresh: Skip the cache read and write for this call

        Returns:
            Stations as returned by the directory
        """
        cache = self.client.caches.station_search

        async def operation() -> list[Station]:
            search_params = normalize_params(params, debug=self.client.debug)
            key = cache_key(search_params)

            if not force_refresh:
                cached = await cache.get(key)
                if cached is not None:
                    return list(cached)

            self._log(f"Search params: {search_params}")
            data = await self.client.get(SEARCH_PATH, params=search_params) or []
            self._log(f"Search returned {len(data)} stations")

            if not force_refresh:
                await cache.set(key, data)
            return list(data)

        return await self.client.execute(operation)

    async def get_top_stations(
        self,
        limit: int = 50,
        locale: str | None = None,
        force_refresh: bool = False,
    ) -> ApiResponse:
        """Stations recommended for the user's locale."""
        cache = self.client.caches.top_stations
        key = f"{limit}:{locale or ''}"

        async def operation() -> ApiResponse:
            if not force_refresh:
                cached = await cache.get(key)
                if cached is not None:
                    return _copy_response(cached)

            self._log(f"Getting top stations (limit: {limit}, locale: {locale})")
            result = await self.recommender.top_stations(limit, locale)

            if not force_refresh:
                await cache.set(key, result)
            return _copy_response(result)

        return await self.client.execute(operation)

    async def get_latest_stations(
        self,
        limit: int = 50,
        force_refresh: bool = False,
    ) -> list[Station]:
        """Most recently checked stations; empty when no mirror answers."""
        cache = self.client.caches.latest_stations
        key = str(limit)

        async def operation() -> list[Station]:
            if not force_refresh:
                cached = await cache.get(key)
                if cached is not None:
                    return list(cached)

            stations = await self.search_stations(
                {
                    "order": "lastchecktime",
                    "reverse": True,
                    "limit": limit,
                    "hidebroken": True,
                }
            )
            self._log(f"Got {len(stations)} latest stations")

            if not force_refresh:
                await cache.set(key, stations)
            return list(stations)

        return await self.client.execute(operation, fallback=lambda: [])

    async def get_random_stations(self, limit: int = 50) -> ApiResponse:
        """Random stations; a degraded empty envelope when no mirror answers."""

        async def operation() -> ApiResponse:
            stations = await self.search_stations(
                {"order": "random", "limit": limit, "hidebroken": True}
            )
            return ApiResponse(success=True, data=stations, source=self.SERVICE_ID)

        return await self.client.execute(
            operation,
            fallback=lambda: ApiResponse(success=True, data=[], source="fallback"),
        )

    async def get_stations_by_country(
        self, country_code: str, limit: int = 50
    ) -> list[Station]:
        """Stations registered under an exact country code."""

        async def operation() -> list[Station]:
            return await self.client.get(
                f"/json/stations/bycountrycodeexact/{_segment(country_code)}",
                params={"limit": limit},
            )

        return await self.client.execute(operation)

    async def get_random_local_stations(
        self, country_code: str, limit: int = 20
    ) -> list[Station]:
        """Random stations from one country."""

        async def operation() -> list[Station]:
            stations = await self.search_stations(
                {
                    "countrycode": country_code,
                    "order": "random",
                    "limit": limit,
                    "hidebroken": True,
                }
            )
            self._log(f"Got {len(stations)} {country_code} stations")
            return stations

        return await self.client.execute(operation)

    async def get_stations_by_tag(self, tag: str, limit: int = 100) -> list[Station]:
        """Most clicked stations carrying a tag."""

        async def operation() -> list[Station]:
            return await self.search_stations(
                {
                    "tag": tag,
                    "limit": limit,
                    "hidebroken": True,
                    "order": "clickcount",
                    "reverse": True,
                }
            )

        return await self.client.execute(operation)

    async def get_station_by_uuid(self, uuid: str) -> Station | None:
        """A single station, or None when the uuid is unknown."""

        async def operation() -> Station | None:
            data = await self.client.get(f"/json/stations/byuuid/{_segment(uuid)}")
            return data[0] if data else None

        return await self.client.execute(operation)

    async def get_countries(self) -> ApiResponse:
        async def operation() -> ApiResponse:
            data = await self.client.get("/json/countries")
            return ApiResponse(success=True, data=data, source=self.SERVICE_ID)

        return await self.client.execute(operation)

    async def get_languages(self) -> list[dict[str, Any]]:
        """Languages, most stations first."""

        async def operation() -> list[dict[str, Any]]:
            data = await self.client.get("/json/languages")
            return sorted(data, key=lambda lang: lang.get("stationcount", 0), reverse=True)

        return await self.client.execute(operation)

    async def get_tags(self) -> list[dict[str, Any]]:
        """The most used tags, most stations first."""

        async def operation() -> list[dict[str, Any]]:
            data = await self.client.get("/json/tags")
            tags = [t for t in data if t.get("stationcount", 0) > MIN_TAG_STATIONS]
            tags.sort(key=lambda t: t.get("stationcount", 0), reverse=True)
            return tags[:MAX_TAGS]

        return await self.client.execute(operation)

    async def record_click(self, uuid: str) -> None:
        """Count a play of the station on the directory."""

        async def operation() -> None:
            await self.client.get(f"/json/url/{_segment(uuid)}")

        await self.client.execute(operation)

    async def vote_for_station(self, uuid: str) -> bool:
        """Vote for a station; True when the directory accepted the vote."""

        async def operation() -> bool:
            data = await self.client.get(f"/json/vote/{_segment(uuid)}")
            return data.get("ok") in (True, "true")

        return await self.client.execute(operation)

    async def get_api_status(self) -> dict[str, Any]:
        """Directory statistics plus the provider that answered."""

        async def operation() -> dict[str, Any]:
            data = await self.client.get("/json/stats")
            provider = self.client.current_provider
            return {**data, "provider": provider.name, "type": provider.kind.value}

        return await self.client.execute(operation)
