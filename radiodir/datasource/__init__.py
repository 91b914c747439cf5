"""
Directory data sources.
"""

from radiodir.datasource.base import ApiResponse, BaseDataSource, Station
from radiodir.datasource.radio_browser import RadioBrowserSource
from radiodir.datasource.recommendation import (
    LOCALE_TABLE,
    LocaleConfig,
    StationRecommender,
    merge_unique,
    shuffle_stations,
)

__all__ = [
    "ApiResponse",
    "BaseDataSource",
    "Station",
    "RadioBrowserSource",
    "LOCALE_TABLE",
    "LocaleConfig",
    "StationRecommender",
    "merge_unique",
    "shuffle_stations",
]
