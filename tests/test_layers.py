"""Tests for the layer builder: geometry, overlays and the statistics table."""

import pandas as pd
import pytest

from chart_service.chart.data_preparer import ChartDataPreparer
from chart_service.chart.layers import (LayerBuilder, LinePrimitive, PolygonPrimitive, RectPrimitive,
                                        RenderLayer, TextPrimitive, compute_price_stats,
                                        format_axis_price, format_price)
from chart_service.chart.request_model import parse_chart_request
from chart_service.chart_config import ChartConfig
from chart_service.errors import InvalidColor
from conftest import T0, T1, build_payload

THEME = ChartConfig.get_theme_colors()


def make_builder(**overrides):
    request = parse_chart_request(build_payload(**overrides))
    frame = ChartDataPreparer().prepare_chart_data(request)
    return LayerBuilder(frame, request)


def texts(primitives):
    return [p.text for p in primitives if isinstance(p, TextPrimitive)]


def test_layers_are_keyed_in_drawing_order():
    layers = make_builder().build()
    assert list(layers) == sorted(RenderLayer)
    assert [layer.name for layer in layers][:3] == ['BACKGROUND', 'GRID', 'ZONES']


def test_price_stats_for_two_candles():
    stats = make_builder().stats

    assert stats.current == 100
    assert stats.high == 110
    assert stats.pct_from_high == pytest.approx(9.0909, abs=1e-3)
    assert stats.is_up is False


def test_single_candle_direction_uses_open():
    frame = pd.DataFrame({'open': [10.0], 'high': [12.0], 'low': [9.0], 'close': [11.0]})
    assert compute_price_stats(frame).is_up is True


def test_table_rows():
    assert make_builder().table_rows() == [
        ("Current Price", "$100.00"),
        ("High (in plot)", "$110.00"),
        ("% from High", "9.09%"),
    ]


def test_table_first_row_uses_down_color():
    table = make_builder().build_table()
    labels = [p for p in table if isinstance(p, TextPrimitive)]

    assert [p.text for p in labels] == ["Current Price", "$100.00", "High (in plot)", "$110.00",
                                        "% from High", "9.09%"]
    assert labels[0].color == THEME['price_down']
    assert labels[2].color == THEME['table_text']


def test_price_formats():
    assert format_price(100) == "100.00"
    assert format_price(12345.6) == "12,346"
    assert format_price(0.000123456) == "0.000123456"
    assert format_axis_price(123_456) == "$123,500"
    assert format_axis_price(1_234) == "$1,250"


def test_background_and_title():
    background = make_builder().build_background()

    assert background[0] == RectPrimitive(0.0, 0.0, 1280.0, 960.0, THEME['background'])
    assert background[1].text == "TEST 1h"
    assert background[1].x == pytest.approx(640)


def test_candle_bodies_use_request_colors():
    bodies = make_builder().build_bodies()

    assert [b.color for b in bodies] == [(255, 0, 0, 255), (0, 255, 0, 255)]
    assert bodies[0].x1 <= bodies[1].x0


def test_doji_body_keeps_minimum_height():
    data = [[T0, 100, 110, 90, 100, 10], [T1, 105, 108, 95, 100, 20]]
    body = make_builder(data=data).build_bodies()[0]
    assert body.y1 - body.y0 == pytest.approx(1.0)


def test_missing_candle_color_is_black():
    bodies = make_builder(candle_colors=["#FF0000"]).build_bodies()
    assert bodies[1].color == (0, 0, 0, 255)


def test_wicks_span_high_to_low():
    builder = make_builder()
    wick = builder.build_wicks()[0]

    assert wick.y0 == pytest.approx(builder.price_scale.y(110))
    assert wick.y1 == pytest.approx(builder.price_scale.y(90))
    assert wick.color == THEME['wick_color']


def test_volume_bars_scale_with_volume():
    builder = make_builder(volume_colors=["#0000FF", "not-a-color"])
    bars = builder.build_volume()
    region = builder.area.height * 0.15

    assert len(bars) == 2
    assert bars[1].y1 - bars[1].y0 == pytest.approx(region)
    assert bars[0].y1 - bars[0].y0 == pytest.approx(region / 2)
    assert bars[0].color == (0, 0, 255, 255)
    assert bars[1].color == THEME['default_volume_color']


def test_zero_volume_draws_no_bars():
    data = [[T0, 100, 110, 90, 105, 0], [T1, 105, 108, 95, 100, 0]]
    assert make_builder(data=data).build_volume() == []


def test_request_without_volume_column():
    data = [[T0, 100, 110, 90, 105], [T1, 105, 108, 95, 100]]
    builder = make_builder(cols=["timestamp", "open", "high", "low", "close"], data=data)
    assert builder.build_volume() == []


def test_above_marker_points_down_at_the_high():
    builder = make_builder(plots={"marks": [
        {"time": T0, "position": "above", "color": "#0000FF", "text": "Buy"},
    ]})
    markers = builder.build_markers()

    triangle, label = markers
    assert isinstance(triangle, PolygonPrimitive)
    tip, left, right = triangle.points
    assert tip[0] == pytest.approx(builder.time_scale.center(0))
    assert tip[1] > left[1] == right[1]
    assert tip[1] < builder.price_scale.y(110)
    assert label.text == "Buy"
    assert label.va == 'bottom'
    assert label.y < left[1]


def test_below_marker_points_up_at_the_low():
    builder = make_builder(plots={"marks": [
        {"time": T1, "position": "below", "color": "#0000FF", "size": 2},
    ]})
    (triangle,) = builder.build_markers()

    tip, left, right = triangle.points
    assert tip[1] < left[1] == right[1]
    assert tip[1] > builder.price_scale.y(95)
    assert right[0] - left[0] == pytest.approx(builder.time_scale.candle_width / 3 * 2 * 2)


def test_unmatched_marker_is_skipped():
    builder = make_builder(plots={"marks": [
        {"time": T0 + 1, "position": "above", "color": "#0000FF"},
    ]})
    assert builder.build_markers() == []


def test_zone_is_translucent_and_clamped():
    builder = make_builder(plots={"zones": [
        {"x1": T0 - 10_000_000, "x2": T1, "y1": 95, "y2": 1_000_000, "color": "#FFFF00"},
    ]})
    (zone,) = builder.build_zones()

    assert zone.color == (255, 255, 0, 77)
    assert zone.x0 == pytest.approx(builder.area.left)
    assert zone.x1 == pytest.approx(builder.time_scale.center(1))
    assert zone.y0 == pytest.approx(builder.area.top)
    assert zone.y1 == pytest.approx(builder.price_scale.y(95))


def test_zone_alpha_from_color_string_wins():
    builder = make_builder(plots={"zones": [
        {"x1": T0, "x2": T1, "y1": 95, "y2": 105, "color": "#FFFF0010"},
    ]})
    assert builder.build_zones()[0].color == (255, 255, 0, 16)


def test_reversed_zone_corners_give_the_same_rectangle():
    ordered = make_builder(plots={"zones": [
        {"x1": T0, "x2": T1, "y1": 95, "y2": 105, "color": "#FFFF00"},
    ]}).build_zones()
    reversed_corners = make_builder(plots={"zones": [
        {"x1": T1, "x2": T0, "y1": 105, "y2": 95, "color": "#FFFF00"},
    ]}).build_zones()

    assert len(ordered) == 1
    assert reversed_corners == ordered
    zone = ordered[0]
    assert zone.x0 < zone.x1
    assert zone.y0 < zone.y1


def test_vline_matches_candle_exactly():
    builder = make_builder(plots={"vlines": [
        {"time": T1, "color": "#AA0000"},
        {"time": T1 + 5, "color": "#AA0000"},
    ]})
    (line,) = builder.build_vlines()

    assert isinstance(line, LinePrimitive)
    x = builder.time_scale.center(1)
    assert line.points == ((x, builder.area.top), (x, builder.area.bottom))
    assert line.color == (170, 0, 0, 255)


def test_unmatched_overlays_leave_other_layers_untouched():
    plain = make_builder().build()
    with_marker = make_builder(plots={"marks": [
        {"time": T0 + 1, "position": "below", "color": "#0000FF", "text": "x"},
    ]}).build()
    assert plain == with_marker


def test_invalid_overlay_color_is_rejected():
    with pytest.raises(InvalidColor):
        make_builder(plots={"vlines": [{"time": T0, "color": "red"}]})


def test_price_line_follows_last_close():
    builder = make_builder()
    line, label_box, label = builder.build_price_line()

    y = builder.price_scale.y(100)
    assert line.points[0][1] == pytest.approx(y)
    assert line.style == '--'
    assert line.color == THEME['price_down']
    assert label_box.x0 == builder.area.right
    assert label.text == "$100.00"


def test_grid_labels():
    grid = make_builder().build_grid()
    labels = texts(grid)

    assert "11-14 22:13" in labels
    assert any(text.startswith("$") for text in labels)
    lines = [p for p in grid if isinstance(p, LinePrimitive)]
    assert len(lines) == 17 + 6 + 2
