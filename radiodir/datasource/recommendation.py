"""
Station recommendations by user locale.

Combines language and country searches into one deduplicated, shuffled,
capped list of stations.
"""

import asyncio
import random
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Iterable

from loguru import logger

from radiodir.datasource.base import ApiResponse, Station

SearchFn = Callable[[dict[str, Any]], Awaitable[list[Station]]]

# Locale whose language and country searches run together and get merged
MERGED_LOCALE = "zh"


@dataclass(frozen=True)
class LocaleConfig:
    """Search hints for one user locale."""

    language: str | None = None
    countries: list[str] = field(default_factory=list)
    tag: str | None = None


MERGED_LOCALE_CONFIG = LocaleConfig(language="chinese", countries=["CN"], tag="music")

LOCALE_TABLE: dict[str, LocaleConfig] = {
    "es": LocaleConfig(language="spanish", countries=["ES", "MX", "AR", "CO"]),
    "fr": LocaleConfig(language="french", countries=["FR"]),
    "de": LocaleConfig(language="german", countries=["DE"]),
    "ja": LocaleConfig(language="japanese", countries=["JP"]),
    "ko": LocaleConfig(language="korean", countries=["KR"]),
    "ru": LocaleConfig(language="russian", countries=["RU"]),
    "ar": LocaleConfig(language="arabic", countries=["SA", "AE", "EG"]),
    "pt": LocaleConfig(language="portuguese", countries=["BR", "PT"]),
    "it": LocaleConfig(language="italian", countries=["IT"]),
    "hi": LocaleConfig(language="hindi", countries=["IN"]),
    "th": LocaleConfig(language="thai", countries=["TH"]),
    "vi": LocaleConfig(language="vietnamese", countries=["VN"]),
}

# At most this many countries are searched to top up a short language result
MAX_FILL_COUNTRIES = 2


def merge_unique(*station_lists: Iterable[Station]) -> list[Station]:
    """Concatenate station lists, keeping the first station seen per uuid."""
    merged: list[Station] = []
    seen: set[str] = set()
    for stations in station_lists:
        for station in stations:
            uuid = station.get("stationuuid")
            if uuid in seen:
                continue
            seen.add(uuid)
            merged.append(station)
    return merged


def shuffle_stations(
    stations: list[Station], rng: random.Random | None = None
) -> list[Station]:
    """Return a shuffled copy (uniform Fisher-Yates via random.shuffle)."""
    shuffled = list(stations)
    (rng or random).shuffle(shuffled)
    return shuffled


class StationRecommender:
    """
    Picks "top" stations for a user's locale.

    Usage:
        recommender = StationRecommender(source.search_stations)
        result = await recommender.top_stations(limit=20, locale="fr")
    """

    def __init__(
        self,
        search: SearchFn,
        source: str = "radio-browser",
        rng: random.Random | None = None,
        debug: bool = False,
    ):
        self._search = search
        self._source = source
        self._rng = rng
        self._debug = debug

    async def top_stations(self, limit: int, locale: str | None = None) -> ApiResponse:
        """
        Recommend up to `limit` stations for a locale.

        Args:
            limit: Maximum number of stations returned
            locale: Two-letter user language code; "en" when omitted

        Returns:
            ApiResponse with shuffled, deduplicated stations
        """
        locale = locale or "en"
        stations: list[Station] = []

        if locale == MERGED_LOCALE:
            self._log(f"Merging language and country stations for '{locale}'")
            stations = await self._merged_stations(MERGED_LOCALE_CONFIG, limit)
        elif locale in LOCALE_TABLE:
            self._log(f"Getting stations for language: {locale}")
            stations = await self._language_then_countries(LOCALE_TABLE[locale], limit)

        if not stations:
            self._log("Getting default international music stations...")
            stations = await self._search(
                {
                    "tag": "music",
                    "order": "clickcount",
                    "reverse": True,
                    "limit": limit,
                    "hidebroken": True,
                }
            )

        return ApiResponse(
            success=True,
            data=shuffle_stations(stations, self._rng)[:limit],
            source=self._source,
        )

    async def _merged_stations(self, config: LocaleConfig, limit: int) -> list[Station]:
        """Language and country searches side by side, language results first."""
        by_language, by_country = await asyncio.gather(
            self._search(
                {
                    "language": config.language,
                    "tag": config.tag,
                    "order": "random",
                    "limit": limit,
                    "hidebroken": True,
                }
            ),
            self._search(
                {
                    "countrycode": config.countries[0],
                    "order": "random",
                    "limit": limit,
                    "hidebroken": True,
                }
            ),
        )
        return merge_unique(by_language, by_country)

    async def _language_then_countries(
        self, config: LocaleConfig, limit: int
    ) -> list[Station]:
        """Language search, topped up from country searches when short."""
        stations: list[Station] = []
        if config.language:
            stations = await self._search(
                {
                    "language": config.language,
                    "order": "random",
                    "limit": limit,
                    "hidebroken": True,
                }
            )

        if len(stations) >= limit or not config.countries:
            return stations

        needed = limit - len(stations)
        country_results = await asyncio.gather(
            *(
                self._search(
                    {
                        "countrycode": country,
                        "order": "random",
                        "limit": needed,
                        "hidebroken": True,
                    }
                )
                for country in config.countries[:MAX_FILL_COUNTRIES]
            )
        )

        return merge_unique(stations, *country_results)[:limit]

    def _log(self, message: str) -> None:
        if self._debug:
            logger.debug(f"[StationRecommender] {message}")
