"""Random byte sources for the Cxkk instruction."""

import random
from itertools import cycle


class RandomSource:
    """Uniform 8-bit values from a private ``random.Random``.

    With no seed the generator is seeded from the operating system's entropy
    source, so each processor gets its own sequence.
    """

    def __init__(self, seed=None):
        self._random = random.Random(seed)

    def next_byte(self) -> int:
        return self._random.getrandbits(8)


class ReplaySource:
    """Replays a fixed sequence of bytes, wrapping around when exhausted."""

    def __init__(self, values):
        values = list(values)
        if not values:
            raise ValueError("ReplaySource needs at least one value")
        for v in values:
            if not 0 <= v <= 0xFF:
                raise ValueError(f"not a byte: {v!r}")
        self._values = cycle(values)

    def next_byte(self) -> int:
        return next(self._values)
