"""
Chart Generation Components

This package contains the components that turn a chart request into an image:
- parse_chart_request / decode_envelope: Request validation
- parse_hex_color: Color resolution
- ChartDataPreparer: Candle frame preparation
- TimeScale / PriceScale: Pixel mapping
- LayerBuilder: Per-layer primitive geometry
- ChartCompositor: Rasterization in fixed z-order
"""

from .colors import AlphaPolicy, parse_hex_color, resolve_color
from .request_model import ChartRequest, Candle, Marker, Zone, VLine, parse_chart_request, decode_envelope
from .data_preparer import ChartDataPreparer
from .scales import PlotArea, TimeScale, PriceScale
from .layers import LayerBuilder, RenderLayer, compute_price_stats
from .compositor import ChartCompositor

__all__ = [
    'AlphaPolicy',
    'parse_hex_color',
    'resolve_color',
    'ChartRequest',
    'Candle',
    'Marker',
    'Zone',
    'VLine',
    'parse_chart_request',
    'decode_envelope',
    'ChartDataPreparer',
    'PlotArea',
    'TimeScale',
    'PriceScale',
    'LayerBuilder',
    'RenderLayer',
    'compute_price_stats',
    'ChartCompositor',
]
