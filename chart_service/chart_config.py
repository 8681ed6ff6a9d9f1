"""
Chart Configuration Module

This module contains the fixed settings for chart generation:
- Canvas size and resolution
- Layout of the title strip, statistics table and plot area
- Color theme for every render layer
- Geometry ratios for candles, wicks, volume bars and markers

None of these are configurable per request.
"""

from typing import Dict, Any, Tuple


class ChartConfig:
    """
    Configuration class for chart rendering.
    Provides the light theme palette and the pixel layout of the canvas.
    """

    # Canvas
    CANVAS = {
        'width': 1280,                  # Output width in pixels
        'height': 960,                  # Output height in pixels
        'dpi': 100,                     # Figure size = pixels / dpi inches
    }

    # Layout (pixels)
    LAYOUT = {
        'title_height': 40,             # Dedicated strip for the title
        'table_height': 100,            # Statistics table below the title
        'table_margin_pct': 0.15,       # Table inset from left and right
        'margin': 10,                   # Plot margin top/left/right
        'margin_bottom': 20,            # Plot margin below the time labels
        'price_axis_width': 80,         # Right-hand gutter for price labels
        'time_axis_height': 40,         # Bottom gutter for time labels
        'price_padding': 8,             # Inset of the price scale inside the plot
    }

    # Geometry ratios
    GEOMETRY = {
        'candle_width_ratio': 0.8,      # Candle body width / band width
        'wick_width_ratio': 0.15,       # Wick width / candle width
        'min_body_height': 1.0,         # Doji bodies stay visible
        'volume_height_ratio': 0.15,    # Volume bars use bottom 15% of the plot
        'marker_offset_ratio': 0.02,    # Marker offset per size unit (plot height)
        'marker_label_gap': 1.2,        # Label distance in marker offsets
        'flat_padding_ratio': 0.01,     # Price padding for flat series
        'price_epsilon': 1e-12,         # Floor for prices on the log axis
    }

    # Grid and axis labels
    GRID = {
        'horizontal_lines': 17,
        'vertical_lines': 6,
        'price_labels': 8,
        'time_labels': 16,
        'time_format': '%m-%d %H:%M',
    }

    # Color Theme - Light Mode (RGBA, 0-255)
    THEME = {
        # Background
        'background': (255, 255, 255, 255),
        'title_color': (0, 0, 0, 255),
        'title_font_size': 24,

        # Grid
        'grid_major': (235, 235, 235, 255),
        'grid_minor': (240, 240, 240, 255),
        'grid_vertical': (245, 245, 245, 255),
        'axis_color': (150, 150, 150, 255),
        'axis_text_color': (60, 60, 60, 255),
        'price_label_font_size': 15,
        'time_label_font_size': 12,

        # Candles
        'wick_color': (70, 70, 70, 255),
        'default_candle_color': '#000000',
        'default_volume_color': (130, 130, 130, 255),

        # Fallback for unparseable colors
        'neutral_gray': (128, 128, 128, 255),

        # Price line and statistics
        'price_up': (0, 150, 0, 255),
        'price_down': (180, 0, 0, 255),
        'price_label_text': (255, 255, 255, 255),
        'table_cell': (220, 220, 220, 255),
        'table_text': (0, 0, 0, 255),
        'table_font_size': 14,
        'marker_font_size': 12,
        'marker_min_font_size': 8,
    }

    @classmethod
    def get_canvas_size(cls) -> Tuple[int, int]:
        """Return (width, height) of the canvas in pixels."""
        return cls.CANVAS['width'], cls.CANVAS['height']

    @classmethod
    def get_dpi(cls) -> int:
        return cls.CANVAS['dpi']

    @classmethod
    def get_layout(cls) -> Dict[str, Any]:
        """Get layout configuration."""
        return cls.LAYOUT.copy()

    @classmethod
    def get_geometry(cls) -> Dict[str, Any]:
        """Get geometry ratios."""
        return cls.GEOMETRY.copy()

    @classmethod
    def get_grid_config(cls) -> Dict[str, Any]:
        return cls.GRID.copy()

    @classmethod
    def get_theme_colors(cls) -> Dict[str, Any]:
        """
        Get current theme colors.

        Returns:
            Dictionary containing all theme color settings
        """
        return cls.THEME.copy()

    @classmethod
    def get_plot_bounds(cls) -> Tuple[float, float, float, float]:
        """
        Get the pixel bounds of the candle plot area.

        Returns:
            (left, top, right, bottom) in canvas pixels, y pointing down
        """
        width, height = cls.get_canvas_size()
        layout = cls.LAYOUT
        header = layout['title_height'] + layout['table_height']
        left = layout['margin']
        top = header + layout['margin']
        right = width - layout['margin'] - layout['price_axis_width']
        bottom = height - layout['margin_bottom'] - layout['time_axis_height']
        return float(left), float(top), float(right), float(bottom)

