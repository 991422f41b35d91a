"""
Row Verification.

Geo-sharded workloads stamp every record with a shard key (mirroring the
record key) and a location. Reading a record back must return both unchanged;
anything else means the store answered with the wrong data, which is reported
as `UNEXPECTED_STATE` rather than `ERROR`.
"""

from typing import Dict, Mapping, Optional

from ..logging_config import get_logger
from ..models import OperationResult

logger = get_logger(__name__)

DEFAULT_SHARD_KEY = "user_id"
DEFAULT_LOCATION = "US"
DEFAULT_LOCATION_FIELD = "location"


def build_global_values(
    key: str,
    values: Mapping[str, bytes],
    *,
    shard_key: str = DEFAULT_SHARD_KEY,
    location: str = DEFAULT_LOCATION,
    location_field: str = DEFAULT_LOCATION_FIELD,
) -> Dict[str, bytes]:
    """Adds the shard key (the record key itself) and the location to generated values."""
    out = dict(values)
    out[shard_key] = key.encode("utf-8")
    out[location_field] = location.encode("utf-8")
    return out


def _decode(value: Optional[bytes]) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, str):
        return value
    return bytes(value).decode("utf-8", errors="replace")


class RowVerifier:
    """
    Checks the routing fields of a record returned by a read.

    Empty shard key or location disable the corresponding check.
    """

    def __init__(
        self,
        *,
        shard_key: str = DEFAULT_SHARD_KEY,
        location: str = DEFAULT_LOCATION,
        location_field: str = DEFAULT_LOCATION_FIELD,
    ):
        self._shard_key = shard_key
        self._location = location
        self._location_field = location_field

    def verify(self, key: str, cells: Mapping[str, bytes]) -> OperationResult:
        # An empty row is never valid data
        if not cells:
            return OperationResult.error(f"No data to verify for key {key}")

        problems = []
        if self._location:
            got = _decode(cells.get(self._location_field))
            if got != self._location:
                problems.append(
                    f"Error verifying location: expect {self._location} get {got}"
                )
        if self._shard_key:
            got = _decode(cells.get(self._shard_key))
            if got != key:
                problems.append(f"Error verifying shard key: expect {key} get {got}")

        if problems:
            for p in problems:
                logger.error(p)
            return OperationResult.unexpected("; ".join(problems))
        return OperationResult.ok()
