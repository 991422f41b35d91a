from enum import StrEnum


class ReadLocality(StrEnum):
    """
    Read preferences accepted by the `mongodb.readPreference` property.

    Property values use snake case; `driver_mode` returns the camel case mode
    name expected by the `readPreference` option of `pymongo.MongoClient`.
    """

    PRIMARY = "primary"
    PRIMARY_PREFERRED = "primary_preferred"
    SECONDARY = "secondary"
    SECONDARY_PREFERRED = "secondary_preferred"
    NEAREST = "nearest"

    @property
    def driver_mode(self) -> str:
        head, *tail = self.value.split("_")
        return head + "".join(part.capitalize() for part in tail)
