import logging

import pytest

from mongobench import BindingContextProvider
from mongobench.encryption import EncryptionConfigurator
from testing.fakes import FakeClientEncryption, FakeStore, fake_auto_encryption_opts


@pytest.fixture(autouse=True)
def _restore_binding_logger():
    """Tests calling setup_logging() must not leak handlers into other tests."""
    logger = logging.getLogger("mongobench")
    handlers, level, propagate = list(logger.handlers), logger.level, logger.propagate
    yield
    logger.handlers[:] = handlers
    logger.setLevel(level)
    logger.propagate = propagate


@pytest.fixture(autouse=True)
def _reset_fake_keys():
    FakeClientEncryption.created_keys.clear()
    yield


@pytest.fixture
def store() -> FakeStore:
    return FakeStore()


def _fake_configurator_factory(config, *, client_factory):
    return EncryptionConfigurator(
        config,
        client_factory=client_factory,
        client_encryption_factory=FakeClientEncryption,
        auto_encryption_opts_factory=fake_auto_encryption_opts,
    )


@pytest.fixture
def fake_configurator_factory():
    return _fake_configurator_factory


@pytest.fixture
def provider(store: FakeStore) -> BindingContextProvider:
    return BindingContextProvider(
        client_factory=store.client_factory,
        encryption_configurator_factory=_fake_configurator_factory,
    )
