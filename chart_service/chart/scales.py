#!/usr/bin/env python3
"""
Scale Engine

Maps candle positions and prices to canvas pixels. Both scales are derived
once per request from the candle set and never change afterwards.

Canvas coordinates have their origin in the top-left corner with y pointing
down, so a higher price maps to a smaller y.
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from ..chart_config import ChartConfig
from ..errors import EmptySeries

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PlotArea:
    """Pixel rectangle holding the candles."""
    left: float
    top: float
    right: float
    bottom: float

    @property
    def width(self) -> float:
        return self.right - self.left

    @property
    def height(self) -> float:
        return self.bottom - self.top

    @classmethod
    def from_config(cls, chart_config=ChartConfig) -> 'PlotArea':
        return cls(*chart_config.get_plot_bounds())


class TimeScale:
    """
    Uniform band per candle.

    Candle i occupies [left + i*band, left + (i+1)*band) with band = width / N.
    The body is centered in its band and is `candle_width_ratio` of it wide;
    the wick is `wick_width_ratio` of the body.
    """

    def __init__(self, timestamps: Sequence[int], area: PlotArea,
                 candle_width_ratio: float = 0.8, wick_width_ratio: float = 0.15):
        if len(timestamps) == 0:
            raise EmptySeries("Time scale needs at least one candle")

        self.area = area
        self.count = len(timestamps)
        self.timestamps: Tuple[int, ...] = tuple(int(t) for t in timestamps)
        self.band_width = area.width / self.count
        self.candle_width = self.band_width * candle_width_ratio
        self.wick_width = self.candle_width * wick_width_ratio

        # First occurrence wins for duplicated timestamps
        self._index: Dict[int, int] = {}
        for i, ts in enumerate(self.timestamps):
            self._index.setdefault(ts, i)

        self._centers = np.array([self.center(i) for i in range(self.count)])
        self._sorted = bool(np.all(np.diff(np.array(self.timestamps, dtype=np.int64)) >= 0))

    def band(self, i: int) -> Tuple[float, float]:
        x0 = self.area.left + i * self.band_width
        return x0, x0 + self.band_width

    def center(self, i: int) -> float:
        return self.area.left + (i + 0.5) * self.band_width

    def index_of(self, timestamp: int) -> Optional[int]:
        """Index of the candle with exactly this timestamp, or None."""
        return self._index.get(int(timestamp))

    def x_for_time(self, timestamp: int) -> Optional[float]:
        """Center x of the candle with this timestamp; None when no candle matches."""
        i = self.index_of(timestamp)
        return None if i is None else self.center(i)

    def x_interpolated(self, timestamp: int) -> float:
        """
        Continuous x for any timestamp, interpolated between candle centers.

        Timestamps before the first / after the last candle clamp to the plot
        edges. Used for zone edges, which need not fall on a candle.
        """
        exact = self.x_for_time(timestamp)
        if exact is not None:
            return exact
        if self.count == 1 or not self._sorted:
            first = self.timestamps[0]
            return self.area.left if timestamp < first else self.area.right

        ts = np.array(self.timestamps, dtype=np.float64)
        xs = np.concatenate(([self.area.left], self._centers, [self.area.right]))
        half_step = (ts[-1] - ts[0]) / (self.count - 1) / 2.0
        edges = np.concatenate(([ts[0] - half_step], ts, [ts[-1] + half_step]))
        return float(np.interp(float(timestamp), edges, xs))

    def label_positions(self, max_labels: int) -> List[int]:
        """Candle indices to label, evenly spread, at most max_labels of them."""
        if self.count <= max_labels:
            return list(range(self.count))
        step = int(np.ceil(self.count / max_labels))
        return list(range(0, self.count, step))


class PriceScale:
    """
    Logarithmic price axis.

        y = y_top + (y_bottom - y_top) * (ln max - ln p) / (ln max - ln min)

    A flat series (min == max) is widened by a constant padding on both sides
    so it renders as a single band in the middle of the axis.
    """

    def __init__(self, min_low: float, max_high: float, y_top: float, y_bottom: float,
                 flat_padding_ratio: float = 0.01, epsilon: float = 1e-12):
        self.min_low = max(float(min_low), epsilon)
        self.max_high = max(float(max_high), epsilon)
        self.y_top = float(y_top)
        self.y_bottom = float(y_bottom)
        self.epsilon = epsilon
        self.is_flat = self.max_high <= self.min_low

        if self.is_flat:
            low = self.min_low * (1.0 - flat_padding_ratio)
            high = self.max_high * (1.0 + flat_padding_ratio)
        else:
            low, high = self.min_low, self.max_high

        self.bound_low = low
        self.bound_high = high
        self._log_low = float(np.log(low))
        self._log_high = float(np.log(high))

    @classmethod
    def from_frame(cls, frame: pd.DataFrame, area: PlotArea, chart_config=ChartConfig) -> 'PriceScale':
        """Bound the axis by [min(low), max(high)] over all candles."""
        if frame is None or frame.empty:
            raise EmptySeries("Price scale needs at least one candle")
        padding = chart_config.get_layout()['price_padding']
        geometry = chart_config.get_geometry()
        return cls(
            min_low=float(frame['low'].min()),
            max_high=float(frame['high'].max()),
            y_top=area.top + padding,
            y_bottom=area.bottom - padding,
            flat_padding_ratio=geometry['flat_padding_ratio'],
            epsilon=geometry['price_epsilon'],
        )

    def y(self, price: float) -> float:
        log_price = float(np.log(max(float(price), self.epsilon)))
        fraction = (self._log_high - log_price) / (self._log_high - self._log_low)
        return self.y_top + (self.y_bottom - self.y_top) * fraction

    def price_at(self, y: float) -> float:
        """Inverse of y()."""
        fraction = (float(y) - self.y_top) / (self.y_bottom - self.y_top)
        return float(np.exp(self._log_high - fraction * (self._log_high - self._log_low)))

    def ticks(self, count: int) -> List[float]:
        """`count` prices evenly spaced in log space from bottom to top."""
        if count < 2:
            return [self.bound_low]
        return [float(p) for p in np.exp(np.linspace(self._log_low, self._log_high, count))]
