from .payload import (
    apply_compressibility as apply_compressibility,
    override_if_discrete as override_if_discrete,
    encode_payload as encode_payload,
    prepare_value as prepare_value,
)

__all__ = [
    "apply_compressibility",
    "override_if_discrete",
    "encode_payload",
    "prepare_value",
]
