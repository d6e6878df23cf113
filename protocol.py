"""
Signaling message vocabulary
Decodes inbound JSON frames and builds the outbound messages
"""

import json
import logging

logger = logging.getLogger(__name__)

ROLE_PEER = "peer"
ROLE_VIEWER = "viewer"
ROLES = (ROLE_PEER, ROLE_VIEWER)

# client -> server
REGISTER = "register"
RELAY = "relay"
VIEWER_SELECT = "viewerSelect"

# server -> client
REGISTERED = "registered"
START_PAIR = "startPair"
PARTNER_ONLINE = "partnerOnline"
PARTNER_OFFLINE = "partnerOffline"
PEER_OFFLINE = "peerOffline"
FORCE_DISCONNECT = "forceDisconnect"
ERROR = "error"
VIEWER_TARGET_READY = "viewerTargetReady"
PEER_LIST = "peerList"


def decode(raw):
    """Parse one inbound frame, returning the message dict or None if malformed"""
    try:
        message = json.loads(raw)
    except (TypeError, ValueError):
        logger.debug("Dropping undecodable frame")
        return None

    if not isinstance(message, dict) or not isinstance(message.get('type'), str):
        logger.debug("Dropping frame without a message type")
        return None
    return message


def encode(message):
    return json.dumps(message)


def registered(identity, role):
    return {'type': REGISTERED, 'id': identity, 'role': role}


def start_pair(partner_id):
    return {'type': START_PAIR, 'partnerId': partner_id}


def partner_online(partner_id):
    return {'type': PARTNER_ONLINE, 'partnerId': partner_id}


def partner_offline(partner_id):
    return {'type': PARTNER_OFFLINE, 'partnerId': partner_id}


def relay(payload):
    return {'type': RELAY, 'payload': payload}


def peer_offline(to):
    return {'type': PEER_OFFLINE, 'to': to}


def force_disconnect(reason):
    return {'type': FORCE_DISCONNECT, 'reason': reason}


def error(message):
    return {'type': ERROR, 'message': message}


def viewer_target_ready(target_id):
    return {'type': VIEWER_TARGET_READY, 'targetId': target_id}


def peer_list(peers):
    return {'type': PEER_LIST, 'peers': list(peers)}
