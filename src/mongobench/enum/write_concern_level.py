from enum import StrEnum
from typing import Any, Dict


class WriteConcernLevel(StrEnum):
    """
    Durability levels accepted by the `mongodb.writeConcern` property.

    Each member maps onto the keyword options understood by
    `pymongo.MongoClient` (see `client_options()`), so that the same level is
    applied uniformly to every endpoint of the pool.
    """

    UNACKNOWLEDGED = "unacknowledged"
    """Fire-and-forget writes (`w=0`)."""

    ACKNOWLEDGED = "acknowledged"
    """Acknowledged by the primary (`w=1`)."""

    JOURNALED = "journaled"
    """Acknowledged after the write reached the primary's journal (`w=1, j=true`)."""

    REPLICA_ACKNOWLEDGED = "replica_acknowledged"
    """Acknowledged by two members of the replica set (`w=2`)."""

    MAJORITY = "majority"
    """Acknowledged by a majority of the replica set (`w="majority"`)."""

    def client_options(self) -> Dict[str, Any]:
        return dict(_CLIENT_OPTIONS[self])


_CLIENT_OPTIONS: Dict[WriteConcernLevel, Dict[str, Any]] = {
    WriteConcernLevel.UNACKNOWLEDGED: {"w": 0},
    WriteConcernLevel.ACKNOWLEDGED: {"w": 1},
    WriteConcernLevel.JOURNALED: {"w": 1, "journal": True},
    WriteConcernLevel.REPLICA_ACKNOWLEDGED: {"w": 2},
    WriteConcernLevel.MAJORITY: {"w": "majority"},
}
