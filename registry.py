"""
Connection registry
Tracks which connection currently owns which identity, for peers and viewers alike
"""

import logging

logger = logging.getLogger(__name__)


class Registry:
    def __init__(self):
        self._by_identity = {}    # identity -> connection
        self._by_connection = {}  # connection -> identity

    def register(self, identity, role, connection):
        """
        Bind identity to connection.

        Returns the connection that previously held the identity when it was a
        different one; it is no longer bound and the caller must evict it.
        """
        previous_identity = self._by_connection.get(connection)
        if previous_identity is not None and previous_identity != identity:
            # One connection owns at most one identity
            del self._by_identity[previous_identity]
            logger.info(f"Connection rebinding from {previous_identity} to {identity}")

        evicted = self._by_identity.get(identity)
        if evicted is connection:
            evicted = None
        elif evicted is not None:
            del self._by_connection[evicted]

        self._by_identity[identity] = connection
        self._by_connection[connection] = identity
        connection.identity = identity
        connection.role = role
        return evicted

    def lookup(self, identity):
        return self._by_identity.get(identity)

    def identity_of(self, connection):
        return self._by_connection.get(connection)

    def unregister(self, connection):
        """Remove whatever identity connection holds; returns it or None"""
        identity = self._by_connection.pop(connection, None)
        if identity is None:
            return None
        if self._by_identity.get(identity) is connection:
            del self._by_identity[identity]
        return identity

    def identities(self, role=None):
        """Registered identities in registration order, optionally of one role"""
        return [
            identity for identity, connection in self._by_identity.items()
            if role is None or connection.role == role
        ]

    def connections(self, role=None):
        return [
            connection for connection in self._by_identity.values()
            if role is None or connection.role == role
        ]

    def __contains__(self, identity):
        return identity in self._by_identity

    def __len__(self):
        return len(self._by_identity)
