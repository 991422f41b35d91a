from .status import Status as Status
from .write_concern_level import WriteConcernLevel as WriteConcernLevel
from .read_locality import ReadLocality as ReadLocality
from .encryption_mode import EncryptionMode as EncryptionMode
from .payload_encoding import PayloadEncoding as PayloadEncoding

__all__ = [
    "Status",
    "WriteConcernLevel",
    "ReadLocality",
    "EncryptionMode",
    "PayloadEncoding",
]
