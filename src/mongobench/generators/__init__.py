from .discrete import (
    DiscreteGenerator as DiscreteGenerator,
    build_discrete_fields as build_discrete_fields,
    parse_comma_separated_integers as parse_comma_separated_integers,
)

__all__ = [
    "DiscreteGenerator",
    "build_discrete_fields",
    "parse_comma_separated_integers",
]
