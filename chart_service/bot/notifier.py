#!/usr/bin/env python3
"""
Chart Notifier

After a chart is written, tells the Telegram delivery service where the image
is. The message goes over ZeroMQ as a two-frame multipart message:

    [b"telegram", b'["ok", "send_message", {"text": ..., "image_path": ...,
                    "chat_id": ..., "subscriber_list": ...}]']

Delivery is best effort: failures are logged, never retried, and never undo
the already written image.
"""

import json
import logging
from abc import ABC, abstractmethod
from typing import Any, List, Optional

import zmq

from ..chart.request_model import ChartRequest
from ..transport import Artifact

logger = logging.getLogger(__name__)


class NotificationChannel(ABC):
    """Destination for 'chart ready' notifications"""

    @abstractmethod
    def notify(self, request: ChartRequest, artifact: Artifact) -> bool:
        """Send the notification. Returns True on success; must not raise."""
        pass

    def close(self):
        pass


def build_notification_payload(request: ChartRequest, artifact: Artifact) -> List[Any]:
    """Message body understood by the Telegram service."""
    return [
        "ok",
        "send_message",
        {
            "text": request.desc,
            "image_path": artifact.path,
            "chat_id": request.chat_id,
            "subscriber_list": request.subscriber_list,
        },
    ]


def describe_destination(request: ChartRequest) -> str:
    if request.chat_id is not None:
        return f"chat_id: {request.chat_id}"
    if request.subscriber_list is not None:
        return f"subscriber_list: {request.subscriber_list}"
    return "default destination"


class TelegramNotifier(NotificationChannel):
    """Sends chart notifications to the Telegram service through the message router"""

    def __init__(self, endpoint: str, target: str = 'telegram',
                 context: Optional[zmq.Context] = None, socket=None):
        """
        Initialize the notifier

        Args:
            endpoint: Router endpoint, e.g. tcp://127.0.0.1:6565
            target: Routing name of the Telegram service
            context: ZeroMQ context (defaults to the process-wide instance)
            socket: Pre-built socket; created lazily when omitted
        """
        self.endpoint = endpoint
        self.target = target
        self.context = context
        self._socket = socket
        self.sent_count = 0
        self.failed_count = 0

    def _get_socket(self):
        if self._socket is None:
            context = self.context or zmq.Context.instance()
            socket = context.socket(zmq.DEALER)
            socket.setsockopt(zmq.LINGER, 1000)
            socket.connect(self.endpoint)
            self._socket = socket
        return self._socket

    def notify(self, request: ChartRequest, artifact: Artifact) -> bool:
        try:
            message = json.dumps(build_notification_payload(request, artifact))
            self._get_socket().send_multipart([self.target.encode('utf-8'), message.encode('utf-8')])
        except (zmq.ZMQError, TypeError, ValueError) as e:
            self.failed_count += 1
            logger.error(f"❌ Failed to send telegram notification for {request.ticker}: {e}")
            return False

        self.sent_count += 1
        logger.info(f"📲 Telegram notification sent to {describe_destination(request)}")
        return True

    def close(self):
        if self._socket is not None:
            self._socket.close()
            self._socket = None
