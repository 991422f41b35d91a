"""
Binding Context Module.

This module provides the `BindingContext`, the process-wide state shared by
every worker of the benchmark (settings, endpoint pool, discrete generators,
round-robin counter), and the `BindingContextProvider`, which creates it on
the first worker initialization and tears it down after the last cleanup.
"""

import threading
from typing import Any, Callable, Dict, Mapping, Optional

from ..config import BindingConfig, ConfigurationError
from ..encryption import EncryptionConfigurator
from ..generators.discrete import DiscreteGenerator, build_discrete_fields
from ..helpers import _fatal
from ..logging_config import get_logger
from .connection import _ConnectionStatus, _Endpoint, _EndpointPool, _get_connection

logger = get_logger(__name__)


class BindingContext:
    """
    Shared state of all the workers of a process.

    Immutable after creation apart from the round-robin counter of its pool.

    Important: Obtaining a Context
        Do not instantiate this class directly: contexts are created and
        reference counted by
        [`BindingContextProvider.acquire()`][mongobench.comm.BindingContextProvider.acquire].
    """

    # --- Private Sentinel Value ---
    # Used to ensure the constructor is only called via the `_create()` factory.
    _CREATE_SENTINEL = object()

    def __init__(
        self,
        *,
        config: BindingConfig,
        pool: _EndpointPool,
        discrete_fields: Dict[str, DiscreteGenerator],
        sentinel: object,
    ):
        if sentinel is not BindingContext._CREATE_SENTINEL:
            raise RuntimeError(
                "BindingContext must be obtained through BindingContextProvider.acquire()."
            )
        self._config = config
        self._pool = pool
        self._discrete_fields = discrete_fields
        self._status = _ConnectionStatus.Open

    @classmethod
    def _create(
        cls,
        config: BindingConfig,
        *,
        client_factory: Callable[..., Any],
        encryption_configurator_factory: Callable[..., Any],
    ) -> "BindingContext":
        """
        Builds the endpoint pool and generators for `config`.

        Any failure while opening the pool (including the encryption setup) is
        fatal for the process.
        """
        encryption_builder: Optional[Callable[[str], Any]] = None
        if config.encryption_mode.enabled:
            configurator = encryption_configurator_factory(
                config, client_factory=client_factory
            )
            encryption_builder = configurator.build

        try:
            pool = _EndpointPool(
                config=config,
                client_factory=client_factory,
                encryption_builder=encryption_builder,
            )
        except Exception as e:
            _fatal("Could not initialize MongoDB connection pool", e)

        return cls(
            config=config,
            pool=pool,
            discrete_fields=build_discrete_fields(config.cardinalities),
            sentinel=cls._CREATE_SENTINEL,
        )

    @property
    def config(self) -> BindingConfig:
        return self._config

    @property
    def discrete_fields(self) -> Dict[str, DiscreteGenerator]:
        return self._discrete_fields

    @property
    def pool(self) -> _EndpointPool:
        return self._pool

    def next_endpoint(self) -> _Endpoint:
        return self._pool.next_endpoint()

    def is_open(self) -> bool:
        return self._status == _ConnectionStatus.Open

    def close(self) -> None:
        if self._status == _ConnectionStatus.Open:
            self._pool.close()
        self._status = _ConnectionStatus.Closed


class BindingContextProvider:
    """
    Owner of the process-wide `BindingContext`.

    The harness creates one provider per process and hands it to every
    worker. Each worker initialization calls `acquire()` and each cleanup
    calls `release()`:

    * only the first `acquire()` resolves the configuration and opens the
      connections; the others get the same context;
    * only the `release()` bringing the reference count back to zero closes
      them, so no worker ever uses a closed connection.

    Example:
        ```python
        provider = BindingContextProvider()
        bindings = [MongoBinding(properties, provider) for _ in range(threads)]
        ```
    """

    def __init__(
        self,
        *,
        client_factory: Callable[..., Any] = _get_connection,
        encryption_configurator_factory: Callable[..., Any] = EncryptionConfigurator,
    ):
        self._client_factory = client_factory
        self._encryption_configurator_factory = encryption_configurator_factory
        self._lock = threading.Lock()
        self._ref_count = 0
        self._context: Optional[BindingContext] = None

    @property
    def ref_count(self) -> int:
        return self._ref_count

    @property
    def context(self) -> Optional[BindingContext]:
        return self._context

    def acquire(self, properties: Mapping[str, str]) -> BindingContext:
        """
        Registers a worker and returns the shared context, creating it first
        if this is the first registration.

        Raises:
            SystemExit: On invalid configuration or connection setup failure.
        """
        with self._lock:
            self._ref_count += 1
            if self._context is not None:
                return self._context

            try:
                try:
                    config = BindingConfig.from_properties(properties)
                except ConfigurationError as e:
                    _fatal("Invalid binding configuration", e)

                self._context = BindingContext._create(
                    config,
                    client_factory=self._client_factory,
                    encryption_configurator_factory=self._encryption_configurator_factory,
                )
            except BaseException:
                self._ref_count -= 1
                raise

            logger.info(
                f"Binding context ready: {len(self._context.pool)} endpoint(s), "
                f"database '{config.database}', encryption '{config.encryption_mode.value}'"
            )
            return self._context

    def release(self) -> None:
        """Unregisters a worker, closing the context after the last one."""
        with self._lock:
            if self._ref_count <= 0:
                logger.warning("release() called without a matching acquire()")
                return
            self._ref_count -= 1
            if self._ref_count == 0 and self._context is not None:
                self._context.close()
                self._context = None
                logger.info("Binding context closed")
