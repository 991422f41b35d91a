"""
Data Key Provisioning.

The load and run phases of a benchmark are separate processes that must
encrypt with the same data key: the key is created once in the key vault and
looked up on every later initialization.
"""

import threading
import uuid
from typing import Any, Optional

from bson import Binary
from bson.binary import UUID_SUBTYPE, UuidRepresentation

from ..logging_config import get_logger

logger = get_logger(__name__)

# Hard coded local master key: it is shared between the load and run phases
LOCAL_MASTER_KEY = bytes(
    [
        0x77, 0x1F, 0x2D, 0x7D, 0x76, 0x74, 0x39, 0x08, 0x50, 0x0B, 0x61, 0x14,
        0x3A, 0x07, 0x24, 0x7C, 0x37, 0x7B, 0x60, 0x0F, 0x09, 0x11, 0x23, 0x65,
        0x35, 0x01, 0x3A, 0x76, 0x5F, 0x3E, 0x4B, 0x6A, 0x65, 0x77, 0x21, 0x6D,
        0x34, 0x13, 0x24, 0x1B, 0x47, 0x73, 0x21, 0x5D, 0x56, 0x6A, 0x38, 0x30,
        0x6D, 0x5E, 0x79, 0x1B, 0x25, 0x4D, 0x2A, 0x00, 0x7C, 0x0B, 0x65, 0x1D,
        0x70, 0x22, 0x22, 0x61, 0x2E, 0x6A, 0x52, 0x46, 0x6A, 0x43, 0x43, 0x23,
        0x58, 0x21, 0x78, 0x59, 0x64, 0x35, 0x5C, 0x23, 0x00, 0x27, 0x43, 0x7D,
        0x50, 0x13, 0x65, 0x3C, 0x54, 0x1E, 0x74, 0x3C, 0x3B, 0x57, 0x21, 0x1A,
    ]
)  # fmt: skip

KMS_PROVIDER = "local"


def kms_providers() -> dict:
    return {KMS_PROVIDER: {"key": LOCAL_MASTER_KEY}}


def _as_key_id(value: Any) -> Binary:
    # The key vault may decode `_id` as a UUID or as a raw subtype 4 Binary
    # depending on the uuid representation of the reading client
    if isinstance(value, uuid.UUID):
        return Binary.from_uuid(value, UuidRepresentation.STANDARD)
    if isinstance(value, Binary) and value.subtype == UUID_SUBTYPE:
        return value
    raise ValueError(f"Unexpected data key identifier: {value!r}")


class DataKeyProvider:
    """
    Looks up the data key of the dataset, creating it on first use.

    Lookup-or-create is serialized process-wide: two initializers racing on
    an empty key vault must not create two keys.
    """

    _lock = threading.Lock()

    def __init__(self, *, key_collection: Any, client_encryption: Any):
        """
        Args:
            key_collection: The key vault collection (`<database>.datakeys`).
            client_encryption: A `pymongo.encryption.ClientEncryption` bound to
                the same key vault namespace.
        """
        self._key_collection = key_collection
        self._client_encryption = client_encryption
        self._key_id: Optional[Binary] = None

    def get_or_create(self) -> Binary:
        with DataKeyProvider._lock:
            if self._key_id is not None:
                return self._key_id

            key_doc = self._key_collection.find_one({})
            if key_doc is None:
                self._key_id = _as_key_id(
                    self._client_encryption.create_data_key(KMS_PROVIDER)
                )
                logger.info(f"Created data key '{self._key_id.as_uuid()}'")
            else:
                self._key_id = _as_key_id(key_doc["_id"])
                logger.debug(f"Reusing data key '{self._key_id.as_uuid()}'")
            return self._key_id
