from enum import Enum


class EncryptionMode(Enum):
    """
    Client-side field encryption variant used by the binding.
    """

    Disabled = "disabled"  # Plain documents, no key vault.
    Legacy = "fle"  # Schema-driven client-side field level encryption.
    Queryable = "qe"  # Queryable Encryption with encrypted-field metadata.

    @property
    def enabled(self) -> bool:
        return self is not EncryptionMode.Disabled
