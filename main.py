"""
radiodir entry point.

Finds a healthy mirror, prints provider status and a handful of recommended
stations. Pass a search term as the first argument to search instead.
"""

import asyncio
import sys

from loguru import logger

from radiodir.datasource import RadioBrowserSource
from radiodir.services import DirectoryClient, ServiceError
from radiodir.settings import global_settings


async def main(argv: list[str]) -> int:
    """Main function."""
    logger.info("Starting radiodir...")

    async with DirectoryClient(global_settings) as client:
        source = RadioBrowserSource(client)

        try:
            await client.wait_for_initialization()
            logger.info(f"Using provider: {client.current_provider.name}")
            for status in client.providers_status():
                logger.info(
                    f"  {status['name']}: "
                    f"{'up' if status['is_available'] else 'down'}"
                )

            if argv:
                term = " ".join(argv)
                stations = await source.search_stations({"name": term, "limit": 20})
                logger.info(f"{len(stations)} stations matching '{term}'")
            else:
                result = await source.get_top_stations(
                    limit=10, locale=global_settings.locale
                )
                stations = result.data
                logger.info(f"{len(stations)} stations for '{global_settings.locale}'")

            for station in stations:
                print(f"{station.get('name', '?')}\t{station.get('url_resolved', '')}")

        except ServiceError as e:
            logger.error(f"All providers failed: {e}")
            return 1

    logger.info("radiodir stopped")
    return 0


def run() -> None:
    sys.exit(asyncio.run(main(sys.argv[1:])))


if __name__ == "__main__":
    run()
