"""
mongobench - MongoDB binding for YCSB-style load harnesses.

This module provides the main entry points of the binding:

- **BindingContextProvider**: The process-wide owner of connections and settings.
- **MongoBinding**: The per-worker adapter exposing insert, read, update, delete and scan.
- **OperationResult / Status**: The tri-state outcome of every operation.

Example:
    >>> from mongobench import BindingContextProvider, MongoBinding
    >>> provider = BindingContextProvider()
    >>> with MongoBinding({"mongodb.url": "mongodb://localhost:27017"}, provider) as db:
    ...     result = db.read("usertable", "user1")
"""

# --- Context & Binding ---
from .comm import (
    BindingContext as BindingContext,
    BindingContextProvider as BindingContextProvider,
)
from .handlers import (
    MongoBinding as MongoBinding,
    RowVerifier as RowVerifier,
    build_global_values as build_global_values,
)

# --- Configuration ---
from .config import (
    BindingConfig as BindingConfig,
    ConfigurationError as ConfigurationError,
)

# --- Results ---
from .models import OperationResult as OperationResult

# --- Enums ---
from .enum import (
    Status as Status,
    WriteConcernLevel as WriteConcernLevel,
    ReadLocality as ReadLocality,
    EncryptionMode as EncryptionMode,
    PayloadEncoding as PayloadEncoding,
)

from .logging_config import (
    get_logger as get_logger,
    setup_logging as setup_logging,
)

__all__ = [
    # Context & Binding
    "BindingContext",
    "BindingContextProvider",
    "MongoBinding",
    "RowVerifier",
    "build_global_values",
    # Configuration
    "BindingConfig",
    "ConfigurationError",
    # Results
    "OperationResult",
    # Enums
    "Status",
    "WriteConcernLevel",
    "ReadLocality",
    "EncryptionMode",
    "PayloadEncoding",
    # Logging
    "get_logger",
    "setup_logging",
]


# --- Set up the top-level logger of the binding ---

from logging import NullHandler

logging_config = get_logger()
logging_config.addHandler(NullHandler())
