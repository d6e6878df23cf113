"""
Signaling router
Owns the registry and pairing table and handles register / relay / viewerSelect / disconnect
"""

import logging

import protocol
from pairing import PairingTable
from registry import Registry

logger = logging.getLogger(__name__)


class Router:
    """
    Message state machine for every client connection.

    All handlers are synchronous: on a single event loop each message is
    applied to the registry as one step, and deliveries go through
    Connection.send, which only queues.
    """

    def __init__(self, registry=None, pairing=None, notify_partner_offline=False):
        self.registry = registry if registry is not None else Registry()
        self.pairing = pairing if pairing is not None else PairingTable()
        self.notify_partner_offline = notify_partner_offline
        self._handlers = {
            protocol.REGISTER: self._on_register,
            protocol.RELAY: self._on_relay,
            protocol.VIEWER_SELECT: self._on_viewer_select,
        }

    def handle_frame(self, connection, raw):
        """Decode one inbound frame and dispatch it; malformed frames are dropped"""
        if connection.closed:
            logger.debug(f"Dropping frame from closed {connection}")
            return
        message = protocol.decode(raw)
        if message is None:
            return
        handler = self._handlers.get(message['type'])
        if handler is None:
            logger.debug(f"Dropping unknown message type {message['type']!r} from {connection}")
            return
        handler(connection, message)

    def _on_register(self, connection, message):
        identity = message.get('id')
        role = message.get('role')
        if not identity or not isinstance(identity, str) or role not in protocol.ROLES:
            logger.debug(f"Dropping register with id={identity!r} role={role!r}")
            return
        self.register(connection, identity, role)

    def _on_relay(self, connection, message):
        to = message.get('to')
        payload = message.get('payload')
        if not to or not isinstance(to, str) or not isinstance(payload, dict):
            logger.debug(f"Dropping relay without target or payload from {connection}")
            return
        self.relay(connection, to, payload)

    def _on_viewer_select(self, connection, message):
        viewer_id = message.get('viewerId')
        target_id = message.get('targetId')
        if not all(isinstance(value, str) and value for value in (viewer_id, target_id)):
            logger.debug(f"Dropping viewerSelect without ids from {connection}")
            return
        self.viewer_select(connection, viewer_id, target_id)

    def register(self, connection, identity, role):
        """Bind identity to connection, evicting any previous holder"""
        evicted = self.registry.register(identity, role, connection)
        if evicted is not None:
            logger.warning(f"Duplicate login for {identity}, evicting {evicted}")
            evicted.send(protocol.force_disconnect(f"{identity} logged in from another connection"))
            evicted.close(reason="duplicate login")

        logger.info(f"{role.capitalize()} registered: {identity}")
        connection.send(protocol.registered(identity, role))

        if role == protocol.ROLE_PEER:
            self.try_pair(identity)
        # Viewers get the list on every registration, including their own
        self.broadcast_peer_list()

    def try_pair(self, identity):
        """
        Notify identity and its partner if both are online.

        There is no pending state: whichever side registers second finds the
        other online and triggers both notices.
        """
        partner = self.pairing.partner(identity)
        if partner is None:
            return
        partner_connection = self.online_partner(identity)
        own_connection = self.registry.lookup(identity)
        if partner_connection is None or own_connection is None:
            logger.info(f"{identity} waiting for partner {partner}")
            return
        own_connection.send(protocol.start_pair(partner))
        partner_connection.send(protocol.partner_online(identity))
        logger.info(f"Paired: {identity} <--> {partner}")

    def online_partner(self, identity):
        """Connection of identity's partner if it is registered as a peer"""
        partner = self.pairing.partner(identity)
        if partner is None:
            return None
        connection = self.registry.lookup(partner)
        if connection is None or connection.role != protocol.ROLE_PEER:
            return None
        return connection

    def relay(self, sender, to, payload):
        """Forward payload to the connection registered as `to`, stamped with the sender"""
        sender_id = self.registry.identity_of(sender)
        if sender_id is None:
            logger.debug(f"Dropping relay to {to} from unregistered {sender}")
            return
        recipient = self.registry.lookup(to)
        if recipient is None:
            logger.info(f"Relay target {to} offline (from {sender_id})")
            sender.send(protocol.peer_offline(to))
            return
        payload['from'] = sender_id
        recipient.send(protocol.relay(payload))
        logger.debug(f"Relayed {sender_id} -> {to}")

    def viewer_select(self, sender, viewer_id, target_id):
        """Tell the viewer whether target_id is online; no signaling is exchanged"""
        viewer = self.registry.lookup(viewer_id)
        if viewer is None:
            sender.send(protocol.error(f"Viewer {viewer_id} is not registered"))
            return
        if self.registry.lookup(target_id) is None:
            viewer.send(protocol.error(f"Target {target_id} is not online"))
            return
        viewer.send(protocol.viewer_target_ready(target_id))

    def handle_close(self, connection):
        """Forget the identity bound to a closed connection"""
        role = connection.role
        identity = self.registry.unregister(connection)
        if identity is None:
            return
        logger.info(f"{role.capitalize()} disconnected: {identity}")
        if role != protocol.ROLE_PEER:
            return
        self.broadcast_peer_list()
        if not self.notify_partner_offline:
            return
        partner = self.online_partner(identity)
        if partner is not None:
            partner.send(protocol.partner_offline(identity))
            logger.info(f"Told {partner.identity} that {identity} left")

    def broadcast_peer_list(self):
        message = protocol.peer_list(self.registry.identities(protocol.ROLE_PEER))
        for viewer in self.registry.connections(protocol.ROLE_VIEWER):
            viewer.send(message)
