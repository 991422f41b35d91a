from .mongo_binding import MongoBinding as MongoBinding
from .row_verifier import (
    RowVerifier as RowVerifier,
    build_global_values as build_global_values,
)
