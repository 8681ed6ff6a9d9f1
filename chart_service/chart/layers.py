#!/usr/bin/env python3
"""
Layout & Layer Builder

Computes, for every render layer, the list of primitive shapes to draw.
Nothing here touches matplotlib: primitives are plain pixel geometry on the
1280x960 canvas (origin top-left, y down) and are handed to the compositor.

Layer order is fixed:

    BACKGROUND -> GRID -> ZONES -> VLINES -> VOLUME -> WICKS -> BODIES
               -> MARKERS -> PRICE_LINE -> TABLE
"""

import logging
from dataclasses import dataclass
from enum import IntEnum
from typing import Dict, List, Tuple, Union

import pandas as pd

from .colors import AlphaPolicy, RGBA, parse_hex_color
from .request_model import ChartRequest, MarkerPosition
from .scales import PlotArea, PriceScale, TimeScale
from ..chart_config import ChartConfig

logger = logging.getLogger(__name__)

Point = Tuple[float, float]


class RenderLayer(IntEnum):
    """Back-to-front drawing order"""
    BACKGROUND = 0
    GRID = 1
    ZONES = 2
    VLINES = 3
    VOLUME = 4
    WICKS = 5
    BODIES = 6
    MARKERS = 7
    PRICE_LINE = 8
    TABLE = 9


@dataclass(frozen=True)
class RectPrimitive:
    """Filled axis-aligned rectangle from (x0, y0) to (x1, y1)."""
    x0: float
    y0: float
    x1: float
    y1: float
    color: RGBA


@dataclass(frozen=True)
class PolygonPrimitive:
    """Filled polygon (markers use triangles)."""
    points: Tuple[Point, ...]
    color: RGBA


@dataclass(frozen=True)
class LinePrimitive:
    points: Tuple[Point, ...]
    color: RGBA
    width: float = 1.0
    style: str = '-'


@dataclass(frozen=True)
class TextPrimitive:
    """Text anchored at (x, y); size is in pixels."""
    x: float
    y: float
    text: str
    color: RGBA
    size: float
    ha: str = 'left'
    va: str = 'center'


Primitive = Union[RectPrimitive, PolygonPrimitive, LinePrimitive, TextPrimitive]


@dataclass(frozen=True)
class PriceStats:
    """Figures shown in the statistics table."""
    current: float
    high: float
    pct_from_high: float
    is_up: bool


def compute_price_stats(frame: pd.DataFrame) -> PriceStats:
    """
    Current price, session high and percentage distance from the high.

    The move counts as up when the last close is at or above the previous
    close; a single candle compares its close with its own open.
    """
    closes = frame['close']
    current = float(closes.iloc[-1])
    high = float(frame['high'].max())
    pct_from_high = (high - current) / high * 100.0 if high > 0 else 0.0

    if len(frame) > 1:
        is_up = current >= float(closes.iloc[-2])
    else:
        is_up = current >= float(frame['open'].iloc[-1])

    return PriceStats(current=current, high=high, pct_from_high=pct_from_high, is_up=is_up)


def format_with_commas(value: float) -> str:
    """Round to an integer and group thousands: 12345.6 -> '12,346'."""
    return f"{int(round(value)):,}"


def format_price(price: float) -> str:
    """Table and price-label format."""
    if abs(price) >= 1000:
        return format_with_commas(price)
    if abs(price) >= 1:
        return f"{price:,.2f}"
    return f"{price:.6g}"


def format_axis_price(price: float) -> str:
    """Price axis label with magnitude-dependent rounding."""
    if price >= 100000:
        return f"${format_with_commas(round(price / 500.0) * 500.0)}"
    if price >= 10000:
        return f"${format_with_commas(round(price / 100.0) * 100.0)}"
    if price >= 1000:
        return f"${format_with_commas(round(price / 50.0) * 50.0)}"
    return f"${format_price(price)}"


class LayerBuilder:
    """Builds the primitives of every render layer for one request."""

    def __init__(self, frame: pd.DataFrame, request: ChartRequest, chart_config=ChartConfig):
        self.frame = frame
        self.request = request
        self.chart_config = chart_config

        self.theme = chart_config.get_theme_colors()
        self.layout = chart_config.get_layout()
        self.geometry = chart_config.get_geometry()
        self.grid = chart_config.get_grid_config()
        self.width, self.height = chart_config.get_canvas_size()

        self.area = PlotArea.from_config(chart_config)
        self.time_scale = TimeScale(
            frame['timestamp'].tolist(),
            self.area,
            candle_width_ratio=self.geometry['candle_width_ratio'],
            wick_width_ratio=self.geometry['wick_width_ratio'],
        )
        self.price_scale = PriceScale.from_frame(frame, self.area, chart_config)
        self.stats = compute_price_stats(frame)

    def build(self) -> Dict[RenderLayer, List[Primitive]]:
        """Primitives per layer, keyed in drawing order."""
        return {
            RenderLayer.BACKGROUND: self.build_background(),
            RenderLayer.GRID: self.build_grid(),
            RenderLayer.ZONES: self.build_zones(),
            RenderLayer.VLINES: self.build_vlines(),
            RenderLayer.VOLUME: self.build_volume(),
            RenderLayer.WICKS: self.build_wicks(),
            RenderLayer.BODIES: self.build_bodies(),
            RenderLayer.MARKERS: self.build_markers(),
            RenderLayer.PRICE_LINE: self.build_price_line(),
            RenderLayer.TABLE: self.build_table(),
        }

    def _candles(self):
        return enumerate(self.frame.itertuples(index=False))

    def _up_down_color(self) -> RGBA:
        return self.theme['price_up'] if self.stats.is_up else self.theme['price_down']

    def build_background(self) -> List[Primitive]:
        title_height = self.layout['title_height']
        return [
            RectPrimitive(0.0, 0.0, float(self.width), float(self.height), self.theme['background']),
            TextPrimitive(self.width / 2.0, title_height / 2.0, self.request.title,
                          self.theme['title_color'], self.theme['title_font_size'],
                          ha='center', va='center'),
        ]

    def build_grid(self) -> List[Primitive]:
        area, ps, ts = self.area, self.price_scale, self.time_scale
        primitives: List[Primitive] = []

        lines = self.grid['horizontal_lines']
        for i in range(lines):
            y = ps.y_bottom - (ps.y_bottom - ps.y_top) * i / (lines - 1)
            color = self.theme['grid_major'] if i % 2 == 0 else self.theme['grid_minor']
            primitives.append(LinePrimitive(((area.left, y), (area.right, y)), color))

        first, last = ts.center(0), ts.center(ts.count - 1)
        verticals = self.grid['vertical_lines'] if ts.count > 1 else 1
        for i in range(verticals):
            x = first + (last - first) * i / max(verticals - 1, 1)
            primitives.append(LinePrimitive(((x, area.top), (x, area.bottom)), self.theme['grid_vertical']))

        axis = self.theme['axis_color']
        primitives.append(LinePrimitive(((area.right, area.top), (area.right, area.bottom)), axis))
        primitives.append(LinePrimitive(((area.left, area.bottom), (area.right, area.bottom)), axis))

        text_color = self.theme['axis_text_color']
        for price in ps.ticks(self.grid['price_labels']):
            primitives.append(TextPrimitive(area.right + 6, ps.y(price), format_axis_price(price),
                                            text_color, self.theme['price_label_font_size']))

        time_format = self.grid['time_format']
        for i in ts.label_positions(self.grid['time_labels']):
            when = pd.to_datetime(ts.timestamps[i], unit='ms', utc=True)
            primitives.append(TextPrimitive(ts.center(i), area.bottom + 6, when.strftime(time_format),
                                            text_color, self.theme['time_label_font_size'],
                                            ha='center', va='top'))
        return primitives

    def build_zones(self) -> List[Primitive]:
        area, ps, ts = self.area, self.price_scale, self.time_scale
        primitives: List[Primitive] = []
        for zone in self.request.plots.zones:
            color = parse_hex_color(zone.color, AlphaPolicy.ZONE)
            xa, xb = ts.x_interpolated(zone.x1), ts.x_interpolated(zone.x2)
            ya, yb = ps.y(zone.y1), ps.y(zone.y2)

            x0 = max(min(xa, xb), area.left)
            x1 = min(max(xa, xb), area.right)
            y0 = max(min(ya, yb), area.top)
            y1 = min(max(ya, yb), area.bottom)
            if x1 <= x0 or y1 <= y0:
                logger.debug(f"Zone {zone} falls outside the plot, skipped")
                continue
            primitives.append(RectPrimitive(x0, y0, x1, y1, color))
        return primitives

    def build_vlines(self) -> List[Primitive]:
        primitives: List[Primitive] = []
        for vline in self.request.plots.vlines:
            x = self.time_scale.x_for_time(vline.time)
            if x is None:
                logger.debug(f"VLine at {vline.time} matches no candle, skipped")
                continue
            primitives.append(LinePrimitive(((x, self.area.top), (x, self.area.bottom)),
                                            parse_hex_color(vline.color)))
        return primitives

    def build_volume(self) -> List[Primitive]:
        max_volume = float(self.frame['volume'].max())
        if max_volume <= 0:
            return []

        region_height = self.area.height * self.geometry['volume_height_ratio']
        half = self.time_scale.candle_width / 2.0
        bottom = self.area.bottom
        primitives: List[Primitive] = []
        for i, candle in self._candles():
            if candle.volume <= 0:
                continue
            x = self.time_scale.center(i)
            top = bottom - region_height * (candle.volume / max_volume)
            primitives.append(RectPrimitive(x - half, top, x + half, bottom, candle.volume_rgba))
        return primitives

    def build_wicks(self) -> List[Primitive]:
        half = self.time_scale.wick_width / 2.0
        primitives: List[Primitive] = []
        for i, candle in self._candles():
            x = self.time_scale.center(i)
            y_high, y_low = self.price_scale.y(candle.high), self.price_scale.y(candle.low)
            primitives.append(RectPrimitive(x - half, min(y_high, y_low), x + half, max(y_high, y_low),
                                            self.theme['wick_color']))
        return primitives

    def build_bodies(self) -> List[Primitive]:
        half = self.time_scale.candle_width / 2.0
        min_height = self.geometry['min_body_height']
        primitives: List[Primitive] = []
        for i, candle in self._candles():
            x = self.time_scale.center(i)
            y_open, y_close = self.price_scale.y(candle.open), self.price_scale.y(candle.close)
            top, bottom = min(y_open, y_close), max(y_open, y_close)
            if bottom - top < min_height:
                middle = (top + bottom) / 2.0
                top, bottom = middle - min_height / 2.0, middle + min_height / 2.0
            primitives.append(RectPrimitive(x - half, top, x + half, bottom, candle.candle_rgba))
        return primitives

    def build_markers(self) -> List[Primitive]:
        """
        Triangles for markers that match a candle.

        'above' sits over the high and points down at it; 'below' sits under
        the low and points up at it.
        """
        ps, ts = self.price_scale, self.time_scale
        axis_height = ps.y_bottom - ps.y_top
        primitives: List[Primitive] = []

        for mark in self.request.plots.marks:
            i = ts.index_of(mark.time)
            if i is None:
                logger.debug(f"Marker at {mark.time} matches no candle, skipped")
                continue

            candle = self.frame.iloc[i]
            x = ts.center(i)
            size = mark.size
            offset = axis_height * self.geometry['marker_offset_ratio'] * size
            half_width = ts.candle_width / 3.0 * size
            half_height = offset / 2.0
            color = parse_hex_color(mark.color)

            if mark.position == MarkerPosition.ABOVE:
                y = ps.y(candle['high']) - offset
                points = ((x, y + half_height), (x - half_width, y - half_height), (x + half_width, y - half_height))
                label_y, label_va = y - offset * self.geometry['marker_label_gap'], 'bottom'
            else:
                y = ps.y(candle['low']) + offset
                points = ((x, y - half_height), (x - half_width, y + half_height), (x + half_width, y + half_height))
                label_y, label_va = y + offset * self.geometry['marker_label_gap'], 'top'

            primitives.append(PolygonPrimitive(points, color))

            if mark.text:
                font_size = max(self.theme['marker_font_size'] * size, self.theme['marker_min_font_size'])
                primitives.append(TextPrimitive(x, label_y, mark.text, color, font_size,
                                                ha='center', va=label_va))
        return primitives

    def build_price_line(self) -> List[Primitive]:
        y = self.price_scale.y(self.stats.current)
        color = self._up_down_color()
        label_height = 20.0
        gutter = self.layout['price_axis_width']
        return [
            LinePrimitive(((self.area.left, y), (self.area.right, y)), color, width=1.0, style='--'),
            RectPrimitive(self.area.right, y - label_height / 2.0, self.area.right + gutter,
                          y + label_height / 2.0, color),
            TextPrimitive(self.area.right + gutter / 2.0, y, f"${format_price(self.stats.current)}",
                          self.theme['price_label_text'], self.theme['table_font_size'],
                          ha='center', va='center'),
        ]

    def table_rows(self) -> List[Tuple[str, str]]:
        return [
            ("Current Price", f"${format_price(self.stats.current)}"),
            ("High (in plot)", f"${format_price(self.stats.high)}"),
            ("% from High", f"{self.stats.pct_from_high:.2f}%"),
        ]

    def build_table(self) -> List[Primitive]:
        rows = self.table_rows()
        margin = int(self.width * self.layout['table_margin_pct'])
        left, right = float(margin), float(self.width - margin)
        top = float(self.layout['title_height'])
        mid = left + (right - left) / 2.0

        cell_h = self.layout['table_height'] / (len(rows) + 1)
        row_spacing = int(cell_h * 0.15)
        row_height = int(cell_h) - row_spacing
        cell_padding, bottom_padding = 5, 6
        font_size = self.theme['table_font_size']

        primitives: List[Primitive] = []
        for ri, (label, value) in enumerate(rows):
            row_top = top + ri * (row_height + row_spacing + bottom_padding) + cell_padding
            row_center = row_top + row_height / 2.0
            text_color = self._up_down_color() if ri == 0 else self.theme['table_text']

            primitives.append(RectPrimitive(left + cell_padding, row_top, mid - cell_padding,
                                            row_top + row_height, self.theme['table_cell']))
            primitives.append(RectPrimitive(mid + cell_padding, row_top, right - cell_padding,
                                            row_top + row_height, self.theme['table_cell']))
            primitives.append(TextPrimitive(left + cell_padding * 4, row_center, label, text_color, font_size))
            primitives.append(TextPrimitive(mid + cell_padding * 4, row_center, value, text_color, font_size))
        return primitives
