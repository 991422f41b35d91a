from enum import StrEnum


class PayloadEncoding(StrEnum):
    """
    Representation of field values in stored documents (`datatype` property).

    The values double as the BSON type aliases written into encryption schemas.
    """

    BINARY = "binData"
    STRING = "string"
