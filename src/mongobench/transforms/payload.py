"""
Payload Transforms.

Reshapes the byte payloads produced by the harness before they are written:
discrete-value substitution, then compressibility shaping, then encoding into
the configured document representation.
"""

import math
from typing import Mapping, Union

from ..enum import PayloadEncoding
from ..generators.discrete import DiscreteGenerator

COMPRESSIBLE_FILLER = ord("a")
DISCRETE_PADDING = b"x"


def apply_compressibility(data: bytes, ratio: float) -> bytes:
    """
    Forces a prefix of the payload to a constant byte so that the whole value
    compresses by roughly `ratio`.

    With `L = len(data)`, the last `round(L / ratio)` bytes are kept as
    generated (presumed random) and the `L - round(L / ratio)` bytes before
    them become `b"a"`. A ratio of 1 (or below) leaves the payload unchanged.

    Args:
        data: The generated payload.
        ratio: Target ratio of original to compressed size.

    Returns:
        bytes: The reshaped payload, same length as `data`.
    """
    length = len(data)
    # Half-up rounding: round() would use banker's rounding
    random_len = math.floor(length / ratio + 0.5)
    compressible_len = length - random_len
    if compressible_len <= 0:
        return bytes(data)
    return bytes([COMPRESSIBLE_FILLER]) * compressible_len + bytes(data[compressible_len:])


def override_if_discrete(
    field: str, data: bytes, generators: Mapping[str, DiscreteGenerator]
) -> bytes:
    """
    Replaces the payload of a discrete field with a sampled value.

    A sampled value at least as long as the payload is used verbatim (never
    truncated); a shorter one is right-padded with `b"x"` to the payload length.
    Fields without a generator are returned unchanged.
    """
    generator = generators.get(field)
    if generator is None:
        return data
    discrete = generator.next_string().encode("utf-8")
    if len(discrete) >= len(data):
        return discrete
    return discrete + DISCRETE_PADDING * (len(data) - len(discrete))


def encode_payload(data: bytes, datatype: PayloadEncoding) -> Union[bytes, str]:
    if datatype == PayloadEncoding.STRING:
        return data.decode("utf-8", errors="replace")
    return bytes(data)


def prepare_value(
    field: str,
    data: bytes,
    *,
    generators: Mapping[str, DiscreteGenerator],
    ratio: float,
    datatype: PayloadEncoding,
) -> Union[bytes, str]:
    """Applies the full write-path pipeline to one field value."""
    data = override_if_discrete(field, data, generators)
    return encode_payload(apply_compressibility(data, ratio), datatype)
