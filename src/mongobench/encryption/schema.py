"""
Encryption Schema Builders.

Structured builders for the documents describing which fields are encrypted:
the JSON schema of legacy client-side field level encryption, its server-side
`$jsonSchema` validator form, and the `encryptedFields` document of Queryable
Encryption. All of them cover the uniform field set `field0..field{n-1}`.
"""

from typing import Any, Dict, List, Sequence

from bson import Binary, Int64

from ..enum import PayloadEncoding
from ..generators.discrete import FIELD_NAME_PREFIX

ALGORITHM = "AEAD_AES_256_CBC_HMAC_SHA_512-Random"
"""Legacy FLE algorithm applied to every encrypted field."""

EQUALITY_QUERY = "equality"


def encrypted_field_names(num_fields: int) -> List[str]:
    return [f"{FIELD_NAME_PREFIX}{i}" for i in range(num_fields)]


def generate_schema(
    key_id: Binary, num_fields: int, datatype: PayloadEncoding
) -> Dict[str, Any]:
    """
    Builds the legacy FLE schema referencing a single data key.

    Args:
        key_id: The data key identifier (UUID, binary subtype 4).
        num_fields: Number of `fieldN` entries to encrypt.
        datatype: BSON type of the stored values.

    Returns:
        Dict[str, Any]: A schema suitable for `AutoEncryptionOpts(schema_map=...)`.
    """
    return {
        "bsonType": "object",
        "properties": {
            name: {
                "encrypt": {
                    "keyId": [key_id],
                    "bsonType": datatype.value,
                    "algorithm": ALGORITHM,
                }
            }
            for name in encrypted_field_names(num_fields)
        },
    }


def generate_remote_schema(
    key_id: Binary, num_fields: int, datatype: PayloadEncoding
) -> Dict[str, Any]:
    """Wraps the legacy schema into a collection validator."""
    return {"$jsonSchema": generate_schema(key_id, num_fields, datatype)}


def generate_encrypted_fields(
    key_id: Binary,
    num_fields: int,
    datatype: PayloadEncoding,
    contention_factors: Sequence[int],
) -> Dict[str, Any]:
    """
    Builds the Queryable Encryption `encryptedFields` document.

    Every field supports equality queries. A `contention` parameter is added
    for field `i` only when `contention_factors[i]` exists and is not negative.
    """
    fields = []
    for i, name in enumerate(encrypted_field_names(num_fields)):
        query: Dict[str, Any] = {"queryType": EQUALITY_QUERY}
        if i < len(contention_factors) and contention_factors[i] > -1:
            query["contention"] = Int64(contention_factors[i])
        fields.append(
            {
                "path": name,
                "keyId": key_id,
                "bsonType": datatype.value,
                "queries": [query],
            }
        )
    return {"fields": fields}
