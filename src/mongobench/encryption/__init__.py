from .configurator import EncryptionConfigurator as EncryptionConfigurator
from .key_vault import DataKeyProvider as DataKeyProvider
from .schema import (
    generate_schema as generate_schema,
    generate_remote_schema as generate_remote_schema,
    generate_encrypted_fields as generate_encrypted_fields,
)

__all__ = [
    "EncryptionConfigurator",
    "DataKeyProvider",
    "generate_schema",
    "generate_remote_schema",
    "generate_encrypted_fields",
]
