"""
Fixed peer pairing table
Each peer identity has exactly one partner; the relation is symmetric
"""

import logging

logger = logging.getLogger(__name__)

DEFAULT_PAIRS = (
    ("A1", "A2"),
    ("B1", "B2"),
    ("C1", "C2"),
    ("D1", "D2"),
)


class PairingTable:
    def __init__(self, pairs=DEFAULT_PAIRS):
        self._partners = {}
        for first, second in pairs:
            if not first or not second or first == second:
                raise ValueError(f"Invalid pair: {first!r} <-> {second!r}")
            for identity in (first, second):
                if identity in self._partners:
                    raise ValueError(f"Identity {identity!r} appears in more than one pair")
            self._partners[first] = second
            self._partners[second] = first
        logger.debug(f"Pairing table: {self._partners}")

    @classmethod
    def from_specs(cls, specs):
        """Build a table from 'A:B' strings as given on the command line"""
        pairs = []
        for spec in specs:
            first, sep, second = spec.partition(":")
            if not sep:
                raise ValueError(f"Pair must look like 'A:B', got {spec!r}")
            pairs.append((first.strip(), second.strip()))
        return cls(pairs)

    def partner(self, identity):
        """Return the fixed partner of identity, or None if it has none"""
        return self._partners.get(identity)

    def identities(self):
        return list(self._partners)

    def __contains__(self, identity):
        return identity in self._partners

    def __len__(self):
        return len(self._partners)
