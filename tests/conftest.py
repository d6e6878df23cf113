import json

import pytest

from connection import SendResult
from router import Router


class FakeConnection:
    """Stands in for connection.Connection, recording what the router sends"""

    def __init__(self, name="client"):
        self.name = name
        self.identity = None
        self.role = None
        self.closed = False
        self.close_reason = None
        self.sent = []

    def __repr__(self):
        return f"<FakeConnection {self.name}>"

    def send(self, message):
        if self.closed:
            return SendResult.CLOSED
        # Round-trip through JSON so tests see what a client would receive
        self.sent.append(json.loads(json.dumps(message)))
        return SendResult.QUEUED

    def close(self, reason="", code=4000):
        self.closed = True
        self.close_reason = reason

    def of_type(self, message_type):
        return [m for m in self.sent if m['type'] == message_type]


def frame(**message):
    return json.dumps(message)


@pytest.fixture
def router():
    return Router()


@pytest.fixture
def connect():
    def _connect(name="client"):
        return FakeConnection(name)
    return _connect


@pytest.fixture
def register(router, connect):
    """Open a fake connection and register it"""
    def _register(identity, role="peer"):
        conn = connect(identity)
        router.handle_frame(conn, frame(type="register", id=identity, role=role))
        return conn
    return _register
