"""
Messaging Components

- ChartRequestServer: Receives chart requests from the message router
- TelegramNotifier: Announces finished charts to the Telegram service
"""

from .notifier import NotificationChannel, TelegramNotifier
from .request_server import ChartRequestServer

__all__ = ['NotificationChannel', 'TelegramNotifier', 'ChartRequestServer']
