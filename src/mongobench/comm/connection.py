"""
Connection Pool Module.

One `MongoClient` (each with its own driver-side connection pool) per endpoint
listed in `mongodb.url`, with round-robin selection across them.
"""

import itertools
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, List, Optional

from pymongo import MongoClient

from ..config import BindingConfig
from ..helpers import credentials_prefix, embed_credentials, mask_credentials
from ..logging_config import get_logger

logger = get_logger(__name__)


class _ConnectionStatus(Enum):
    Open = "open"
    Closed = "closed"


def _get_connection(url: str, **options: Any) -> MongoClient:
    """
    Opens a client on `url`. URLs without a `mongodb://` or `mongodb+srv://`
    scheme are plain `host[:port]` seeds, which `MongoClient` accepts as well.
    """
    return MongoClient(url, **options)


@dataclass
class _Endpoint:
    display_url: str
    """The endpoint URL with its password masked, for diagnostics."""
    client: Any
    database: Any


class _EndpointPool:
    """
    The set of endpoints shared by every worker of the process.

    Durability, read preference and pool size are applied uniformly; automatic
    encryption, when configured, is attached to the first endpoint only.
    """

    def __init__(
        self,
        *,
        config: BindingConfig,
        client_factory: Callable[..., Any] = _get_connection,
        encryption_builder: Optional[Callable[[str], Any]] = None,
    ):
        """
        Args:
            config: The resolved binding configuration.
            client_factory: Callable `(url, **options)` returning a client.
            encryption_builder: Callable `(url)` returning the automatic
                encryption options for the first endpoint, or None.

        Raises:
            Exception: Any error raised while opening an endpoint. Endpoints
                opened before the failure are closed.
        """
        self._endpoints: List[_Endpoint] = []
        self._counter = itertools.count()
        self._status = _ConnectionStatus.Open

        prefix = credentials_prefix(config.username, config.password)
        options = config.client_options()
        try:
            for i, server in enumerate(config.endpoints):
                url = embed_credentials(server, prefix)
                client_options = dict(options)
                if i == 0 and encryption_builder is not None:
                    client_options["auto_encryption_opts"] = encryption_builder(url)

                client = client_factory(url, **client_options)
                display_url = mask_credentials(url, config.username, prefix)
                if url.startswith(("mongodb://", "mongodb+srv://")):
                    logger.info(f"mongo connection created to {display_url}")
                else:
                    logger.debug(f"mongo server connection to {display_url}")

                self._endpoints.append(
                    _Endpoint(
                        display_url=display_url,
                        client=client,
                        database=client[config.database],
                    )
                )
        except Exception:
            self.close()
            raise

    def __len__(self) -> int:
        return len(self._endpoints)

    @property
    def endpoints(self) -> List[_Endpoint]:
        return list(self._endpoints)

    def next_endpoint(self) -> _Endpoint:
        """
        Round-robin selection. The counter is shared by all threads; the
        distribution is approximately even and the index always valid.
        """
        return self._endpoints[next(self._counter) % len(self._endpoints)]

    def is_open(self) -> bool:
        return self._status == _ConnectionStatus.Open

    def close(self) -> None:
        """Closes every client; close failures are logged and ignored."""
        for endpoint in self._endpoints:
            try:
                endpoint.client.close()
            except Exception as e:
                logger.warning(
                    f"Error closing connection to {endpoint.display_url}: '{e}'"
                )
        self._status = _ConnectionStatus.Closed
