import logging
import threading
from collections import Counter

import pytest

from mongobench import BindingContextProvider
from mongobench.comm import BindingContext
from mongobench.comm.connection import _EndpointPool
from mongobench.config import BindingConfig
from testing.fakes import FakeStore

TWO_ENDPOINTS = {"mongodb.url": "mongodb://h1:27017|mongodb://h2:27017"}


def test_context_not_instantiable_directly():
    with pytest.raises(RuntimeError, match="BindingContextProvider.acquire"):
        BindingContext(
            config=BindingConfig.from_properties({}),
            pool=None,  # type: ignore
            discrete_fields={},
            sentinel=object(),
        )


def test_first_acquire_opens_one_client_per_endpoint(provider, store):
    context = provider.acquire(TWO_ENDPOINTS)

    assert provider.ref_count == 1
    assert [c.url for c in store.clients] == [
        "mongodb://h1:27017",
        "mongodb://h2:27017",
    ]
    assert len(context.pool) == 2
    assert context.is_open()


def test_later_acquires_share_the_context(provider, store):
    first = provider.acquire(TWO_ENDPOINTS)
    second = provider.acquire(TWO_ENDPOINTS)

    assert first is second
    assert provider.ref_count == 2
    assert len(store.clients) == 2


def test_concurrent_acquire_initializes_once():
    store = FakeStore(connect_delay=0.02)
    provider = BindingContextProvider(client_factory=store.client_factory)
    contexts = []
    barrier = threading.Barrier(10)

    def worker():
        barrier.wait()
        contexts.append(provider.acquire(TWO_ENDPOINTS))

    threads = [threading.Thread(target=worker) for _ in range(10)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(store.clients) == 2
    assert provider.ref_count == 10
    assert all(c is contexts[0] for c in contexts)


def test_release_closes_only_after_last_worker(provider, store):
    context = provider.acquire(TWO_ENDPOINTS)
    provider.acquire(TWO_ENDPOINTS)

    provider.release()
    assert context.is_open()
    assert not any(c.closed for c in store.clients)

    provider.release()
    assert not context.is_open()
    assert all(c.closed for c in store.clients)
    assert provider.context is None
    assert provider.ref_count == 0


def test_unmatched_release_is_ignored(provider, caplog):
    with caplog.at_level(logging.WARNING, logger="mongobench"):
        provider.release()
    assert provider.ref_count == 0
    assert "without a matching acquire" in caplog.text


def test_reacquire_after_close_reopens(provider, store):
    provider.acquire(TWO_ENDPOINTS)
    provider.release()
    context = provider.acquire(TWO_ENDPOINTS)

    assert context.is_open()
    assert len(store.clients) == 4


def test_round_robin_across_endpoints(provider):
    context = provider.acquire(TWO_ENDPOINTS)
    picks = Counter(context.next_endpoint().display_url for _ in range(100))
    assert picks == {"mongodb://h1:27017": 50, "mongodb://h2:27017": 50}


def test_round_robin_concurrent_index_always_valid(provider):
    context = provider.acquire({"mongodb.url": "h1|h2|h3"})
    picks = Counter()
    lock = threading.Lock()

    def worker():
        for _ in range(300):
            url = context.next_endpoint().display_url
            with lock:
                picks[url] += 1

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert sum(picks.values()) == 2400
    assert set(picks) == {"h1", "h2", "h3"}


def test_client_options_applied_to_each_endpoint(provider, store):
    provider.acquire(
        {
            **TWO_ENDPOINTS,
            "mongodb.writeConcern": "majority",
            "mongodb.readPreference": "secondary_preferred",
            "threadcount": "20",
        }
    )
    for client in store.clients:
        assert client.options["w"] == "majority"
        assert client.options["readPreference"] == "secondaryPreferred"
        assert client.options["maxPoolSize"] == 20
        assert "auto_encryption_opts" not in client.options


def test_credentials_embedded_and_masked(provider, store, caplog):
    with caplog.at_level(logging.INFO, logger="mongobench"):
        context = provider.acquire(
            {
                **TWO_ENDPOINTS,
                "mongodb.username": "bench",
                "mongodb.password": "s3cret",
            }
        )

    assert [c.url for c in store.clients] == [
        "mongodb://bench:s3cret@h1:27017",
        "mongodb://bench:s3cret@h2:27017",
    ]
    assert [e.display_url for e in context.pool.endpoints] == [
        "mongodb://bench:XXXXXX@h1:27017",
        "mongodb://bench:XXXXXX@h2:27017",
    ]
    assert "mongo connection created to mongodb://bench:XXXXXX@h1:27017" in caplog.text
    assert "s3cret" not in caplog.text


def test_encryption_attached_to_first_endpoint_only(provider, store):
    provider.acquire({**TWO_ENDPOINTS, "mongodb.qe": "true"})

    # key vault client is opened, then closed, before the pool clients
    key_vault, first, second = store.clients
    assert key_vault.closed
    assert first.options["auto_encryption_opts"]["encrypted_fields_map"] is not None
    assert first.options["maxPoolSize"] == 300
    assert "auto_encryption_opts" not in second.options


def test_invalid_configuration_is_fatal(provider, store):
    with pytest.raises(SystemExit) as exc_info:
        provider.acquire({"batchsize": "zero"})

    assert exc_info.value.code == 1
    assert provider.ref_count == 0
    assert provider.context is None
    assert store.clients == []


def test_connection_failure_is_fatal_and_closes_opened_clients(store):
    opened = []

    def flaky_factory(url, **options):
        if "h2" in url:
            raise ConnectionError("refused")
        client = store.client_factory(url, **options)
        opened.append(client)
        return client

    provider = BindingContextProvider(client_factory=flaky_factory)
    with pytest.raises(SystemExit):
        provider.acquire(TWO_ENDPOINTS)

    assert provider.ref_count == 0
    assert [c.closed for c in opened] == [True]


def test_pool_close_ignores_client_errors(store, caplog):
    class BrokenClient:
        def __getitem__(self, name):
            return None

        def close(self):
            raise RuntimeError("boom")

    pool = _EndpointPool(
        config=BindingConfig.from_properties({"mongodb.url": "mongodb://h1"}),
        client_factory=lambda url, **kw: BrokenClient(),
    )
    with caplog.at_level(logging.WARNING, logger="mongobench"):
        pool.close()

    assert not pool.is_open()
    assert "Error closing connection to mongodb://h1: 'boom'" in caplog.text


def test_credentials_of_one_endpoint_shared_with_the_others(provider, store):
    context = provider.acquire({"mongodb.url": "mongodb://h1|mongodb://u:p@h2"})

    assert [c.url for c in store.clients] == ["mongodb://u:p@h1", "mongodb://u:p@h2"]
    assert [e.display_url for e in context.pool.endpoints] == [
        "mongodb://u:XXXXXX@h1",
        "mongodb://u:XXXXXX@h2",
    ]
