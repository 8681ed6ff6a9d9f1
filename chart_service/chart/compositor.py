#!/usr/bin/env python3
"""
Chart Compositor

Draws render layers back to front onto a fixed-size canvas and exports PNG
bytes. Uses matplotlib's Agg canvas directly (no pyplot state), so several
charts can be rendered concurrently in different threads.
"""

import io
import logging
from typing import Dict, List, Sequence

import matplotlib
matplotlib.use('Agg')  # Non-interactive backend
from matplotlib.backends.backend_agg import FigureCanvasAgg
from matplotlib.figure import Figure
from matplotlib.lines import Line2D
from matplotlib.patches import Polygon, Rectangle

from .colors import to_mpl
from .layers import (LinePrimitive, PolygonPrimitive, Primitive, RectPrimitive,
                     RenderLayer, TextPrimitive)
from ..chart_config import ChartConfig

logger = logging.getLogger(__name__)


class ChartCompositor:
    """Rasterizes layer primitives onto the canvas in fixed z-order"""

    def __init__(self, chart_config=ChartConfig):
        self.chart_config = chart_config
        self.width, self.height = chart_config.get_canvas_size()
        self.dpi = chart_config.get_dpi()

    def _px_to_pt(self, pixels: float) -> float:
        return pixels * 72.0 / self.dpi

    def new_figure(self):
        """Figure with one axes spanning it, in canvas pixels with y pointing down."""
        figure = Figure(figsize=(self.width / self.dpi, self.height / self.dpi), dpi=self.dpi)
        FigureCanvasAgg(figure)
        ax = figure.add_axes((0.0, 0.0, 1.0, 1.0))
        ax.set_xlim(0, self.width)
        ax.set_ylim(self.height, 0)
        ax.set_axis_off()
        return figure, ax

    def draw(self, ax, layers: Dict[RenderLayer, Sequence[Primitive]]) -> List[RenderLayer]:
        """
        Draw layers in RenderLayer order, whatever the order of the mapping.

        Empty layers are skipped.

        Returns:
            The layers actually drawn, in drawing order
        """
        drawn = []
        for layer in sorted(layers):
            primitives = layers[layer]
            if not primitives:
                continue
            for primitive in primitives:
                self._draw_primitive(ax, primitive, zorder=int(layer))
            drawn.append(layer)
        return drawn

    def _draw_primitive(self, ax, primitive: Primitive, zorder: int):
        if isinstance(primitive, RectPrimitive):
            ax.add_patch(Rectangle(
                (primitive.x0, primitive.y0),
                primitive.x1 - primitive.x0,
                primitive.y1 - primitive.y0,
                facecolor=to_mpl(primitive.color),
                edgecolor='none',
                linewidth=0,
                zorder=zorder,
            ))
        elif isinstance(primitive, PolygonPrimitive):
            ax.add_patch(Polygon(
                list(primitive.points),
                closed=True,
                facecolor=to_mpl(primitive.color),
                edgecolor='none',
                linewidth=0,
                zorder=zorder,
            ))
        elif isinstance(primitive, LinePrimitive):
            xs = [p[0] for p in primitive.points]
            ys = [p[1] for p in primitive.points]
            ax.add_line(Line2D(
                xs, ys,
                color=to_mpl(primitive.color),
                linewidth=self._px_to_pt(primitive.width),
                linestyle=primitive.style,
                zorder=zorder,
            ))
        elif isinstance(primitive, TextPrimitive):
            ax.text(
                primitive.x, primitive.y, primitive.text,
                color=to_mpl(primitive.color),
                fontsize=self._px_to_pt(primitive.size),
                fontfamily='sans-serif',
                ha=primitive.ha,
                va=primitive.va,
                parse_math=False,
                zorder=zorder,
            )
        else:
            raise TypeError(f"Unknown primitive: {primitive!r}")

    def render(self, layers: Dict[RenderLayer, Sequence[Primitive]]) -> bytes:
        """
        Render layers to a PNG of exactly the configured canvas size.

        Returns:
            PNG image as bytes
        """
        figure, ax = self.new_figure()
        drawn = self.draw(ax, layers)

        buffer = io.BytesIO()
        figure.savefig(buffer, format='png', dpi=self.dpi,
                       facecolor=to_mpl(self.chart_config.get_theme_colors()['background']))
        buffer.seek(0)

        logger.debug(f"Composited layers: {[layer.name for layer in drawn]}")
        return buffer.getvalue()
