#!/usr/bin/env python3
"""
Chart Request Server

Message loop in front of the chart pipeline. Connects a ZeroMQ DEALER socket
to the router with a fixed identity and processes incoming requests one at a
time. The last frame of each multipart message carries the JSON envelope
["chart", "request", {...}]; routing frames before it belong to the router.
"""

import logging
import signal
from datetime import datetime
from typing import Dict, List, Optional

import zmq

from ..chart.request_model import ChartRequest, decode_envelope
from ..config import TransportConfig
from ..errors import ChartServiceError
from ..transport import Artifact

logger = logging.getLogger(__name__)


class ChartRequestServer:
    """Receives framed chart requests and hands them to the pipeline"""

    def __init__(self, transport_config: TransportConfig, pipeline,
                 socket=None, context: Optional[zmq.Context] = None):
        """
        Initialize the request server

        Args:
            transport_config: Router endpoint and socket identity
            pipeline: ChartPipeline (anything with process(request) -> Artifact)
            socket: Pre-built socket; when omitted connect() creates one
            context: ZeroMQ context for connect()
        """
        self.transport_config = transport_config
        self.pipeline = pipeline
        self.socket = socket
        self.context = context
        self.running = False
        self.stats: Dict[str, int] = {'received': 0, 'rendered': 0, 'failed': 0}

    def connect(self):
        """Create the DEALER socket and connect it to the router."""
        if self.socket is not None:
            return self.socket

        context = self.context or zmq.Context.instance()
        socket = context.socket(zmq.DEALER)
        socket.setsockopt(zmq.IDENTITY, self.transport_config.identity.encode('utf-8'))
        socket.setsockopt(zmq.LINGER, 0)
        logger.info(
            f"[INIT] Connecting to {self.transport_config.endpoint} "
            f"as '{self.transport_config.identity}'…"
        )
        socket.connect(self.transport_config.endpoint)
        self.socket = socket
        return socket

    def install_signal_handlers(self):
        """Stop the loop gracefully on SIGINT/SIGTERM."""
        signal.signal(signal.SIGINT, self._signal_handler)
        signal.signal(signal.SIGTERM, self._signal_handler)

    def _signal_handler(self, signum, frame):
        logger.info(f"\n🛑 Received signal {signum}, shutting down…")
        self.stop()

    def stop(self):
        self.running = False

    def close(self):
        if self.socket is not None:
            self.socket.close()
            self.socket = None

    def handle_frames(self, frames: List[bytes]) -> Optional[Artifact]:
        """
        Process one multipart message.

        Failures are logged with whatever context is known and swallowed, so a
        bad request never affects the next one.

        Returns:
            The written artifact, or None when the request failed
        """
        self.stats['received'] += 1
        now = datetime.now().strftime('%Y-%m-%d %H:%M:%S')

        if not frames:
            self.stats['failed'] += 1
            logger.error(f"[{now}] ✘ Received empty message")
            return None

        request: Optional[ChartRequest] = None
        try:
            request = decode_envelope(frames[-1])
            self._log_request_banner(request, now)
            artifact = self.pipeline.process(request)
        except ChartServiceError as e:
            self.stats['failed'] += 1
            context = f"{request.ticker} @ {request.timeframe}" if request else "undecoded request"
            logger.error(f"[{now}] ✘ {type(e).__name__} for {context}: {e}")
            return None
        except Exception as e:
            self.stats['failed'] += 1
            logger.error(f"[{now}] ❌ Unexpected error while rendering: {e}", exc_info=True)
            return None

        self.stats['rendered'] += 1
        return artifact

    @staticmethod
    def _log_request_banner(request: ChartRequest, now: str):
        logger.info("╔" + "═" * 70)
        logger.info(
            f"[{now}] ▶ New Chart Request for {request.ticker} @ {request.timeframe} "
            f"[{len(request.data)} candles]"
        )

    def serve_forever(self, poll_timeout_ms: int = 1000, max_messages: Optional[int] = None):
        """
        Receive and process requests until stopped.

        Args:
            poll_timeout_ms: How often the loop checks for a stop request
            max_messages: Stop after this many messages (None = run forever)
        """
        socket = self.connect()
        self.running = True
        handled = 0
        logger.info("[READY] Awaiting incoming chart messages…")

        try:
            while self.running:
                if not socket.poll(poll_timeout_ms):
                    continue
                frames = socket.recv_multipart()
                self.handle_frames(frames)
                handled += 1
                if max_messages is not None and handled >= max_messages:
                    break
        finally:
            self.running = False
            logger.info(
                f"📊 Requests received: {self.stats['received']}, "
                f"rendered: {self.stats['rendered']}, failed: {self.stats['failed']}"
            )
