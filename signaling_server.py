#!/usr/bin/env python3
"""
WebRTC signaling server using WebSockets
Brokers SDP offer/answer and ICE candidates between paired peers and viewers
"""

import argparse
import asyncio
import logging
import os

import websockets
import websockets.exceptions

from connection import Connection, DEFAULT_QUEUE_SIZE
from pairing import PairingTable
from router import Router

logger = logging.getLogger(__name__)


class SignalingServer:
    def __init__(self, router=None, queue_size=DEFAULT_QUEUE_SIZE):
        self.router = router if router is not None else Router()
        self.queue_size = queue_size

    async def handle_client(self, websocket):
        """Handle WebSocket connection from client"""
        connection = Connection(websocket, self.queue_size)
        connection.start()
        logger.info(f"Client connected: {websocket.remote_address}")
        try:
            async for message in websocket:
                try:
                    self.router.handle_frame(connection, message)
                except Exception:
                    logger.exception(f"Error handling message from {connection}")
        except websockets.exceptions.ConnectionClosed:
            logger.info(f"Client disconnected: {connection}")
        except Exception as e:
            logger.error(f"Error in client handler: {e}")
        finally:
            self.router.handle_close(connection)
            await connection.stop()

    def serve(self, host, port, ping_interval=20, ping_timeout=10):
        return websockets.serve(
            self.handle_client,
            host,
            port,
            ping_interval=ping_interval,
            ping_timeout=ping_timeout
        )


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="WebRTC Signaling Relay")
    parser.add_argument("--host", default="0.0.0.0", help="Interface to listen on (default: 0.0.0.0)")
    parser.add_argument("--port", type=int, default=int(os.environ.get("PORT", 3000)),
                        help="Port to listen on (default: $PORT or 3000)")
    parser.add_argument("--ping-interval", type=float, default=20, help="Keepalive ping interval in seconds")
    parser.add_argument("--ping-timeout", type=float, default=10, help="Keepalive ping timeout in seconds")
    parser.add_argument("--queue-size", type=int, default=DEFAULT_QUEUE_SIZE,
                        help=f"Outbound messages buffered per client (default: {DEFAULT_QUEUE_SIZE})")
    parser.add_argument("--pair", action="append", metavar="A:B",
                        help="Peer pair, repeatable; replaces the default A1:A2 .. D1:D2 table")
    parser.add_argument("--notify-partner-offline", action="store_true",
                        help="Send partnerOffline to a peer when its partner disconnects")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    return parser.parse_args(argv)


async def run(args):
    """Start the signaling server and run until cancelled"""
    pairing = PairingTable.from_specs(args.pair) if args.pair else PairingTable()
    router = Router(pairing=pairing, notify_partner_offline=args.notify_partner_offline)
    server = SignalingServer(router, queue_size=args.queue_size)

    logger.info(f"WebRTC Signaling Server starting on ws://{args.host}:{args.port}")
    logger.info(f"Pairs: {', '.join(sorted(pairing.identities()))}")

    async with server.serve(args.host, args.port, args.ping_interval, args.ping_timeout):
        # Run forever
        await asyncio.Future()


def main(argv=None):
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    try:
        asyncio.run(run(args))
    except KeyboardInterrupt:
        logger.info("Server stopped by user")


if __name__ == "__main__":
    main()
