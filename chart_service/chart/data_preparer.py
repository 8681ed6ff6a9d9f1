#!/usr/bin/env python3
"""Chart Data Preparer - Turns a validated request into the candle frame used for layout."""

import logging
from typing import List, Optional

import pandas as pd

from .colors import resolve_color
from .request_model import ChartRequest
from ..chart_config import ChartConfig
from ..errors import EmptySeries

logger = logging.getLogger(__name__)

FRAME_COLUMNS = ['timestamp', 'open', 'high', 'low', 'close', 'volume', 'candle_rgba', 'volume_rgba']


class ChartDataPreparer:
    """Prepares and formats candle data for chart layout."""

    def __init__(self, chart_config=ChartConfig):
        self.chart_config = chart_config

    def prepare_chart_data(self, request: ChartRequest) -> pd.DataFrame:
        """
        Build the candle frame in caller order.

        Prices are floored to a tiny positive value so the log axis never sees
        zero or negative input. Colors are resolved here once: missing candle
        colors use the theme default, missing or unparseable volume colors use
        the default volume gray.

        Raises:
            EmptySeries: if the request has no candles
        """
        candles = request.candles()
        if not candles:
            raise EmptySeries(f"No candle data for chart '{request.title}'")

        theme = self.chart_config.get_theme_colors()
        epsilon = self.chart_config.get_geometry()['price_epsilon']

        frame = pd.DataFrame([c.model_dump() for c in candles])
        for column in ('open', 'high', 'low', 'close'):
            frame[column] = frame[column].clip(lower=epsilon)
        frame['volume'] = frame['volume'].clip(lower=0.0)
        frame['timestamp'] = frame['timestamp'].astype('int64')

        frame['candle_rgba'] = self._candle_colors(request.candle_colors, len(frame), theme)
        frame['volume_rgba'] = self._volume_colors(request.volume_colors, len(frame), theme)

        if len(request.candle_colors) != len(frame):
            logger.debug(f"candle_colors has {len(request.candle_colors)} entries for {len(frame)} candles")

        return frame[FRAME_COLUMNS]

    @staticmethod
    def _candle_colors(colors: List[str], count: int, theme) -> list:
        default = resolve_color(theme['default_candle_color'], default=theme['neutral_gray'])
        resolved = []
        for i in range(count):
            if i < len(colors):
                resolved.append(resolve_color(colors[i], default=theme['neutral_gray']))
            else:
                resolved.append(default)
        return resolved

    @staticmethod
    def _volume_colors(colors: Optional[List[str]], count: int, theme) -> list:
        gray = theme['default_volume_color']
        colors = colors or []
        return [resolve_color(colors[i], default=gray) if i < len(colors) else gray
                for i in range(count)]


def log_data_summary(frame: Optional[pd.DataFrame], request: ChartRequest):
    """Log candle count, covered period and description for a request."""
    if frame is None or frame.empty:
        logger.info("       No candle data available.")
        return

    start = pd.to_datetime(frame['timestamp'].iloc[0], unit='ms', utc=True)
    end = pd.to_datetime(frame['timestamp'].iloc[-1], unit='ms', utc=True)
    logger.info(
        f"       {len(frame)} candles from {start:%Y-%m-%d %H:%M:%S} to {end:%Y-%m-%d %H:%M:%S} UTC"
    )
    logger.info(f"       Desc: {request.desc}")
    logger.info(f"📊 Price range: ${frame['low'].min():,.2f} - ${frame['high'].max():,.2f}")
