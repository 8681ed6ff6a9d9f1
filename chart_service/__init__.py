"""
Chart Render Service - Core Components

Renders candlestick chart requests received over the message router into PNG
images and announces them to the Telegram service.
"""

__version__ = '1.0.0'
