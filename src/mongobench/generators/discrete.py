"""
Discrete Field Generators.

Low-cardinality field simulation: each configured field draws its value from a
small, fixed set of strings instead of the random payload produced by the
harness.
"""

import bisect
import random
import threading
from typing import Dict, List

FIELD_NAME_PREFIX = "field"
VALUE_PREFIX = "value"


def parse_comma_separated_integers(to_parse: str, default_value: int) -> List[int]:
    """
    Parses a comma separated list of integers, one entry per field index.

    Empty entries (including trailing ones) take `default_value`, so that
    `",5,"` describes three fields. A blank string yields an empty list.

    Raises:
        ValueError: If an entry is not an integer.
    """
    if not to_parse.strip():
        return []
    return [int(v) if v.strip() else default_value for v in to_parse.split(",")]


class DiscreteGenerator:
    """
    Weighted choice over a finite set of string values.

    Sampling is read-only: draws go through a thread-local random source, so a
    generator can be shared by every worker thread once its values are added.
    """

    _local = threading.local()

    def __init__(self):
        self._values: List[str] = []
        self._cumulative: List[float] = []

    @classmethod
    def _random(cls) -> random.Random:
        rng = getattr(cls._local, "rng", None)
        if rng is None:
            rng = random.Random()
            cls._local.rng = rng
        return rng

    def add_value(self, weight: float, value: str) -> None:
        if weight <= 0:
            raise ValueError(f"Weight must be positive. Got {weight}")
        total = self._cumulative[-1] if self._cumulative else 0.0
        self._values.append(value)
        self._cumulative.append(total + weight)

    @property
    def values(self) -> List[str]:
        return list(self._values)

    def next_string(self) -> str:
        if not self._values:
            raise ValueError("DiscreteGenerator has no values")
        point = self._random().random() * self._cumulative[-1]
        return self._values[bisect.bisect_right(self._cumulative, point)]


def build_discrete_fields(cardinalities: List[int]) -> Dict[str, DiscreteGenerator]:
    """
    Builds the generator map from per-field cardinalities.

    For every positive cardinality `c` at index `i`, field `field{i}` gets a
    uniform generator over `value0..value{c-1}`. Zero or negative entries leave
    the field unmapped.
    """
    fields: Dict[str, DiscreteGenerator] = {}
    for i, cardinality in enumerate(cardinalities):
        if cardinality <= 0:
            continue
        gen = DiscreteGenerator()
        for j in range(cardinality):
            gen.add_value(1, f"{VALUE_PREFIX}{j}")
        fields[f"{FIELD_NAME_PREFIX}{i}"] = gen
    return fields
