from enum import Enum


class Status(Enum):
    """
    Tri-state outcome of a record operation, as reported back to the harness.
    """

    OK = "ok"  # The store call completed and returned the expected data.
    ERROR = "error"  # The call raised, or found/matched/modified nothing.
    UNEXPECTED_STATE = "unexpected_state"  # Succeeded but returned inconsistent data.
