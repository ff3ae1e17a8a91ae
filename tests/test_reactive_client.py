"""Tests for the async discovery client."""

import asyncio
import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from unittest.mock import MagicMock

import pytest

from consul_discovery.config import DiscoveryConfig
from consul_discovery.consul.models import QueryParams
from consul_discovery.discovery.backup import InstanceBackup
from consul_discovery.discovery.client import ConsulDiscoveryClient
from consul_discovery.discovery.models import Endpoint
from consul_discovery.discovery.reactive import ConsulReactiveDiscoveryClient
from consul_discovery.exceptions import ConsulAPIError


def _entry(host, port=8080):
    return {"Node": {"Node": "n1", "Address": "192.168.0.1"}, "Service": {"ID": host, "Address": host, "Port": port}}


ORDERS = [_entry("10.0.0.1"), _entry("10.0.0.2"), _entry("10.0.0.3")]


def _gateway(health=None, catalog=None):
    gateway = MagicMock()
    gateway.health_services.return_value = health if health is not None else []
    gateway.catalog_services.return_value = catalog if catalog is not None else {}
    return gateway


@pytest.fixture
def executor():
    pool = ThreadPoolExecutor(max_workers=2)
    yield pool
    pool.shutdown(wait=True)


def _client(gateway, executor, store=None, **config):
    return ConsulReactiveDiscoveryClient(gateway, DiscoveryConfig(**config), backup=store, executor=executor)


def _drain(aiter):
    async def collect():
        return [item async for item in aiter]

    return asyncio.run(collect())


class TestGetInstances:
    def test_yields_endpoints_in_registry_order(self, executor):
        client = _client(_gateway(health=ORDERS), executor)
        assert [e.host for e in _drain(client.get_instances("orders"))] == ["10.0.0.1", "10.0.0.2", "10.0.0.3"]

    def test_nothing_happens_until_iterated(self, executor):
        gateway = _gateway(health=ORDERS)
        client = _client(gateway, executor)
        stream = client.get_instances("orders")
        gateway.health_services.assert_not_called()
        _drain(stream)
        gateway.health_services.assert_called_once()

    def test_runs_on_worker_thread(self, executor):
        threads = []
        gateway = _gateway()

        def health(name, request):
            threads.append(threading.current_thread())
            return ORDERS

        gateway.health_services.side_effect = health
        _drain(_client(gateway, executor).get_instances("orders"))
        assert threads and threads[0] is not threading.main_thread()

    def test_uses_default_query_params(self, executor):
        gateway = _gateway()
        _drain(_client(gateway, executor, consistency_mode="stale", query_passing=True).get_instances("orders"))
        request = gateway.health_services.call_args.args[1]
        assert request.query_params == QueryParams.DEFAULT
        assert request.passing is True

    def test_matches_blocking_client(self, executor):
        gateway = _gateway(health=ORDERS)
        config = DiscoveryConfig(backup=True)
        blocking = ConsulDiscoveryClient(gateway, config)
        reactive = ConsulReactiveDiscoveryClient(gateway, config, executor=executor)
        assert _drain(reactive.get_instances("orders")) == blocking.get_instances("orders")

    def test_success_is_backed_up(self, executor):
        client = _client(_gateway(health=ORDERS), executor, backup=True)
        streamed = _drain(client.get_instances("orders"))
        assert client.backup.get("orders") == streamed

    def test_none_response_is_empty(self, executor):
        gateway = _gateway()
        gateway.health_services.return_value = None
        assert _drain(_client(gateway, executor).get_instances("orders")) == []


class TestGetInstancesFallback:
    def test_failure_yields_backed_up_items(self, executor):
        gateway = _gateway(health=ORDERS)
        client = _client(gateway, executor, backup=True)
        first = _drain(client.get_instances("orders"))
        gateway.health_services.side_effect = ConsulAPIError("boom")
        assert _drain(client.get_instances("orders")) == first

    def test_shares_backup_with_blocking_client(self, executor):
        backup = InstanceBackup()
        gateway = _gateway(health=ORDERS)
        config = DiscoveryConfig(backup=True)
        blocking = ConsulDiscoveryClient(gateway, config, backup=backup)
        reactive = ConsulReactiveDiscoveryClient(gateway, config, backup=backup, executor=executor)
        first = blocking.get_instances("orders")
        gateway.health_services.side_effect = ConsulAPIError("boom")
        assert _drain(reactive.get_instances("orders")) == first

    def test_failure_with_backup_disabled_is_empty(self, executor):
        backup = InstanceBackup()
        backup.put("orders", [Endpoint(service_id="orders", host="h", port=1)])
        gateway = _gateway()
        gateway.health_services.side_effect = ConsulAPIError("boom")
        assert _drain(_client(gateway, executor, store=backup).get_instances("orders")) == []

    def test_failure_without_backup_entry_is_empty(self, executor):
        gateway = _gateway()
        gateway.health_services.side_effect = ConsulAPIError("boom")
        assert _drain(_client(gateway, executor, backup=True).get_instances("orders")) == []

    def test_failure_is_logged(self, executor, caplog):
        gateway = _gateway()
        gateway.health_services.side_effect = ConsulAPIError("boom")
        with caplog.at_level(logging.ERROR):
            _drain(_client(gateway, executor).get_instances("orders"))
        assert any(r.levelno == logging.ERROR for r in caplog.records)


class TestCancellation:
    def test_early_exit_keeps_full_backup(self, executor):
        client = _client(_gateway(health=ORDERS), executor, backup=True)

        async def take_first():
            stream = client.get_instances("orders")
            first = await stream.__anext__()
            await stream.aclose()
            return first

        first = asyncio.run(take_first())
        assert first.host == "10.0.0.1"
        assert [e.host for e in client.backup.get("orders")] == ["10.0.0.1", "10.0.0.2", "10.0.0.3"]

    def test_cancelled_consumer_does_not_corrupt_backup(self, executor):
        started = threading.Event()
        release = threading.Event()
        gateway = _gateway()

        def health(name, request):
            started.set()
            release.wait(5)
            return ORDERS

        gateway.health_services.side_effect = health
        client = _client(gateway, executor, backup=True)

        async def consume_and_cancel():
            task = asyncio.ensure_future(_collect(client.get_instances("orders")))
            await asyncio.get_running_loop().run_in_executor(None, started.wait, 5)
            task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task

        asyncio.run(consume_and_cancel())
        assert client.backup.get("orders") is None
        release.set()
        executor.shutdown(wait=True)
        assert len(client.backup.get("orders")) == 3


async def _collect(aiter):
    return [item async for item in aiter]


class TestGetServices:
    def test_yields_service_names(self, executor):
        client = _client(_gateway(catalog={"consul": [], "orders": []}), executor)
        assert _drain(client.get_services()) == ["consul", "orders"]

    def test_none_response_is_empty_and_silent(self, executor, caplog):
        gateway = _gateway()
        gateway.catalog_services.return_value = None
        with caplog.at_level(logging.ERROR):
            assert _drain(_client(gateway, executor).get_services()) == []
        assert not [r for r in caplog.records if r.levelno >= logging.ERROR]

    def test_failure_is_logged_and_empty(self, executor, caplog):
        gateway = _gateway()
        gateway.catalog_services.side_effect = ConsulAPIError("boom")
        with caplog.at_level(logging.ERROR):
            assert _drain(_client(gateway, executor).get_services()) == []
        assert any(r.levelno == logging.ERROR for r in caplog.records)

    def test_deferred(self, executor):
        gateway = _gateway()
        _client(gateway, executor).get_services()
        gateway.catalog_services.assert_not_called()

    def test_passes_token(self, executor):
        gateway = _gateway()
        _drain(_client(gateway, executor, acl_token="t").get_services())
        assert gateway.catalog_services.call_args.args[0].token == "t"


class TestAccessors:
    def test_get_order(self, executor):
        assert _client(_gateway(), executor, order=3).get_order() == 3

    def test_description(self, executor):
        assert "Reactive" in _client(_gateway(), executor).description()

    def test_close_leaves_injected_executor_running(self, executor):
        client = _client(_gateway(), executor)
        client.close()
        assert executor.submit(lambda: 1).result() == 1

    def test_use_after_close_raises(self):
        client = ConsulReactiveDiscoveryClient(_gateway(), DiscoveryConfig(max_workers=1))
        client.close()
        with pytest.raises(RuntimeError):
            _drain(client.get_instances("orders"))
