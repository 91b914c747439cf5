"""
Tests for DirectoryClient initialization and failover.
"""

import asyncio
from unittest.mock import Mock

import pytest

from radiodir.services.client import DirectoryClient, InitState
from radiodir.services.errors import ProviderRequestError, ServiceError
from tests.conftest import PROBE_PATH, make_providers


class TestInitialization:
    @pytest.mark.asyncio
    async def test_adopts_fastest_healthy_mirror(self, settings, mirrors):
        mirrors.delays = {"m1.test": 0.05, "m2.test": 0.001, "m3.test": 0.03}
        client = DirectoryClient(
            settings, providers=make_providers(3), transport=mirrors.transport()
        )

        await client.wait_for_initialization()

        assert client.current_provider.name == "Mirror 2"
        assert client.is_initialized()
        await client.close()

    @pytest.mark.asyncio
    async def test_no_healthy_mirror_uses_default(self, settings, mirrors):
        mirrors.down = {"m1.test", "m2.test", "m3.test"}
        client = DirectoryClient(
            settings, providers=make_providers(3), transport=mirrors.transport()
        )

        await client.wait_for_initialization()

        assert client.state is InitState.INITIALIZED
        assert client.current_provider.name == "Mirror 1"
        assert not any(p["is_available"] for p in client.providers_status())
        await client.close()

    @pytest.mark.asyncio
    async def test_probe_runs_once(self, settings, mirrors):
        client = DirectoryClient(
            settings, providers=make_providers(3), transport=mirrors.transport()
        )
        mirrors.routes["/json/countries"] = [{"name": "France"}]

        await client.wait_for_initialization()
        await client.prober.wait_pending()
        await client.execute(lambda: client.get("/json/countries"))
        await client.execute(lambda: client.get("/json/countries"))

        assert len(mirrors.requests_to(PROBE_PATH)) == 3
        await client.close()

    @pytest.mark.asyncio
    async def test_concurrent_callers_share_one_probe_round(self, settings, mirrors):
        mirrors.delays = {"m1.test": 0.01, "m2.test": 0.02}
        client = DirectoryClient(
            settings, providers=make_providers(2), transport=mirrors.transport()
        )

        await asyncio.gather(
            client.ensure_initialized(),
            client.ensure_initialized(),
            client.ensure_initialized(),
        )

        assert client.is_initialized()
        assert len(mirrors.requests_to(PROBE_PATH)) == 2
        await client.close()

    @pytest.mark.asyncio
    async def test_refresh_probes_again(self, client, mirrors):
        mirrors.delays = {"m1.test": 0.05, "m2.test": 0.05, "m3.test": 0.001}

        await client.refresh_connection()

        assert client.current_provider.name == "Mirror 3"
        assert client.is_initialized()
        assert len(mirrors.requests_to(PROBE_PATH)) == 3

    @pytest.mark.asyncio
    async def test_probe_carries_client_header(self, client, mirrors):
        await client.refresh_connection()
        await client.prober.wait_pending()

        probe = mirrors.requests_to(PROBE_PATH)[0]
        assert probe.headers["User-Agent"] == "radiodir/1.0"

    @pytest.mark.asyncio
    async def test_context_manager_schedules_probe(self, settings, mirrors):
        async with DirectoryClient(
            settings, providers=make_providers(2), transport=mirrors.transport()
        ) as client:
            assert client.state is InitState.INITIALIZING
            await client.wait_for_initialization()
            assert client.state is InitState.INITIALIZED


class TestFailover:
    @pytest.mark.asyncio
    async def test_success_on_current_provider(self, client, mirrors):
        mirrors.routes["/json/countries"] = [{"name": "France"}]

        result = await client.execute(lambda: client.get("/json/countries"))

        assert result == [{"name": "France"}]
        assert mirrors.hosts_for("/json/countries") == ["m1.test"]

    @pytest.mark.asyncio
    async def test_fails_over_to_third_provider(self, client, mirrors):
        mirrors.routes["/json/countries"] = lambda r: [{"served_by": r.url.host}]
        mirrors.down = {"m1.test", "m2.test"}

        result = await client.execute(lambda: client.get("/json/countries"))

        assert result == [{"served_by": "m3.test"}]
        assert client.current_provider.name == "Mirror 3"
        status = {p["name"]: p["is_available"] for p in client.providers_status()}
        assert status == {"Mirror 1": False, "Mirror 2": False, "Mirror 3": True}
        assert mirrors.hosts_for("/json/countries") == ["m1.test", "m2.test", "m3.test"]

    @pytest.mark.asyncio
    async def test_concurrent_failures_mark_only_the_attempted_mirror(self, client):
        def failing_on_first_mirror(fail_after):
            async def operation():
                provider = client.current_provider
                if provider.name == "Mirror 1":
                    await asyncio.sleep(fail_after)
                    raise ServiceError("unreachable", service_id=provider.name)
                await asyncio.sleep(0.1)
                return provider.name

            return operation

        results = await asyncio.gather(
            client.execute(failing_on_first_mirror(0.01)),
            client.execute(failing_on_first_mirror(0.05)),
        )

        assert results == ["Mirror 2", "Mirror 2"]
        status = {p["name"]: p["is_available"] for p in client.providers_status()}
        assert status == {"Mirror 1": False, "Mirror 2": True, "Mirror 3": True}

    @pytest.mark.asyncio
    async def test_http_error_status_triggers_failover(self, client, mirrors):
        mirrors.routes["/json/tags"] = [{"name": "jazz"}]
        mirrors.status_errors = {"m1.test": 503}

        result = await client.execute(lambda: client.get("/json/tags"))

        assert result == [{"name": "jazz"}]
        assert client.current_provider.name == "Mirror 2"

    @pytest.mark.asyncio
    async def test_fallback_used_only_on_exhaustion(self, client, mirrors):
        mirrors.down = {"m1.test", "m2.test", "m3.test"}
        fallback = Mock(return_value=[])

        result = await client.execute(
            lambda: client.get("/json/stations/search"), fallback=fallback
        )

        assert result == []
        fallback.assert_called_once_with()

    @pytest.mark.asyncio
    async def test_fallback_not_called_when_a_provider_succeeds(self, client, mirrors):
        mirrors.routes["/json/countries"] = [{"name": "France"}]
        mirrors.down = {"m1.test"}
        fallback = Mock(return_value=[])

        result = await client.execute(
            lambda: client.get("/json/countries"), fallback=fallback
        )

        assert result == [{"name": "France"}]
        fallback.assert_not_called()

    @pytest.mark.asyncio
    async def test_exhaustion_without_fallback_raises_last_error(self, client, mirrors):
        mirrors.status_errors = {"m1.test": 500, "m2.test": 502, "m3.test": 503}

        with pytest.raises(ProviderRequestError) as exc_info:
            await client.execute(lambda: client.get("/json/countries"))

        assert exc_info.value.status_code == 503
        assert exc_info.value.service_id == "Mirror 3"

    @pytest.mark.asyncio
    async def test_unavailable_providers_are_skipped(self, client, mirrors):
        mirrors.routes["/json/countries"] = [{"name": "France"}]
        client.registry.mark_available(client.registry.find("Mirror 2"), False)
        mirrors.down = {"m1.test"}

        await client.execute(lambda: client.get("/json/countries"))

        assert mirrors.hosts_for("/json/countries") == ["m1.test", "m3.test"]

    @pytest.mark.asyncio
    async def test_missing_route_is_a_service_error(self, client, mirrors):
        with pytest.raises(ServiceError):
            await client.execute(lambda: client.get("/json/unknown"))


class TestOperationalControls:
    @pytest.mark.asyncio
    async def test_switch_to_unknown_provider(self, client):
        assert await client.switch_to_provider("Nowhere") is False
        assert client.current_provider.name == "Mirror 1"

    @pytest.mark.asyncio
    async def test_switch_to_down_provider(self, client, mirrors):
        mirrors.down = {"m2.test"}

        assert await client.switch_to_provider("Mirror 2") is False
        assert client.registry.find("Mirror 2").is_available is False

    @pytest.mark.asyncio
    async def test_switch_restores_availability(self, client):
        mirror = client.registry.find("Mirror 3")
        client.registry.mark_available(mirror, False)

        assert await client.switch_to_provider("Mirror 3") is True
        assert mirror.is_available is True
        assert client.current_provider is mirror

    @pytest.mark.asyncio
    async def test_health_status(self, client):
        status = client.get_health_status()

        assert status["state"] == "INITIALIZED"
        assert status["current_provider"] == "Mirror 1"
        assert len(status["providers"]) == 3
        assert set(status["caches"]) == {
            "station_search",
            "top_stations",
            "latest_stations",
        }
