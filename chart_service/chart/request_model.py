#!/usr/bin/env python3
"""
Chart Request Model

Typed representation of an incoming chart request and the validator that
turns raw payload bytes into it. Wire format of a request object:

    {
        "title": "BTC 4h", "ticker": "BTCUSDT", "timeframe": "4h",
        "cols": ["timestamp", "open", "high", "low", "close", "volume"],
        "data": [[1700000000000, 100, 110, 90, 105, 10], ...],
        "candle_colors": ["#FF0000", ...],
        "volume_colors": ["#FF000080", ...],            # optional
        "plots": {"marks": [...], "zones": [...], "vlines": [...]},
        "desc": "text sent along with the image",
        "chat_id": 12345,                               # optional
        "subscriber_list": "signals",                   # optional
        "image_filename": "btc_4h_1700000000.png"       # optional
    }

On the socket the object travels inside the envelope ["chart", "request", {...}].
"""

import json
import logging
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import AliasChoices, BaseModel, Field, ValidationError, field_validator, model_validator

from .colors import AlphaPolicy, parse_hex_color
from ..errors import MalformedRequest, SchemaError

logger = logging.getLogger(__name__)

DEFAULT_COLUMNS = ['timestamp', 'open', 'high', 'low', 'close', 'volume']
REQUIRED_COLUMNS = DEFAULT_COLUMNS[:5]

ENVELOPE_KIND = 'chart'
ENVELOPE_ACTION = 'request'


class Candle(BaseModel):
    """Represents a single OHLCV candle."""

    timestamp: int = Field(..., description="Candle open time in epoch milliseconds")
    open: float
    high: float
    low: float
    close: float
    volume: float = 0.0

    model_config = {"frozen": True}


class MarkerPosition(str, Enum):
    ABOVE = "above"
    BELOW = "below"


class Marker(BaseModel):
    """Signal marker attached to the candle whose timestamp equals `time`."""

    time: int
    position: MarkerPosition
    color: str
    text: Optional[str] = None
    size: float = 1.0

    model_config = {"frozen": True}

    @field_validator('position', mode='before')
    @classmethod
    def _lowercase_position(cls, value):
        return value.lower() if isinstance(value, str) else value


class Zone(BaseModel):
    """Semi-transparent price/time rectangle. Corner order is not enforced."""

    x1: int
    x2: int
    y1: float
    y2: float
    color: str

    model_config = {"frozen": True}


class VLine(BaseModel):
    """Full-height vertical line at a candle timestamp."""

    time: int
    color: str

    model_config = {"frozen": True}


class Plots(BaseModel):
    """Overlay container. Every overlay kind is optional."""

    marks: List[Marker] = Field(default_factory=list,
                                validation_alias=AliasChoices('marks', 'markers'))
    zones: List[Zone] = Field(default_factory=list)
    vlines: List[VLine] = Field(default_factory=list)

    model_config = {"frozen": True}


class ChartRequest(BaseModel):
    """A single chart rendering request."""

    title: str
    ticker: str
    timeframe: str
    cols: List[str]
    data: List[List[float]]
    candle_colors: List[str]
    volume_colors: Optional[List[str]] = None
    plots: Plots
    desc: str
    chat_id: Optional[int] = None
    subscriber_list: Optional[str] = None
    image_filename: Optional[str] = None

    model_config = {"frozen": True, "extra": "ignore"}

    @model_validator(mode='after')
    def _check_rows(self):
        positions = self.column_positions()
        needed = max(positions[name] for name in REQUIRED_COLUMNS) + 1
        for i, row in enumerate(self.data):
            if len(row) < needed:
                raise ValueError(f"data row {i} has {len(row)} values, expected at least {needed}")
        return self

    def column_positions(self) -> Dict[str, int]:
        """
        Map column names to row positions.

        `cols` is honored when it names every OHLC column plus the timestamp;
        otherwise rows are read in the default order.
        """
        names = [str(c).strip().lower() for c in self.cols]
        if all(name in names for name in REQUIRED_COLUMNS):
            positions = {name: names.index(name) for name in REQUIRED_COLUMNS}
            positions['volume'] = names.index('volume') if 'volume' in names else len(names)
            return positions
        return {name: i for i, name in enumerate(DEFAULT_COLUMNS)}

    def candles(self) -> List[Candle]:
        """Candles in caller order; index i pairs with candle_colors[i]."""
        pos = self.column_positions()
        result = []
        for row in self.data:
            volume_pos = pos['volume']
            result.append(Candle(
                timestamp=int(row[pos['timestamp']]),
                open=row[pos['open']],
                high=row[pos['high']],
                low=row[pos['low']],
                close=row[pos['close']],
                volume=row[volume_pos] if volume_pos < len(row) else 0.0,
            ))
        return result


def _decode_json(raw: Union[bytes, bytearray, str]) -> Any:
    if isinstance(raw, (bytes, bytearray)):
        try:
            raw = raw.decode('utf-8')
        except UnicodeDecodeError as e:
            raise MalformedRequest(f"Payload is not valid UTF-8: {e}") from e
    try:
        return json.loads(raw)
    except json.JSONDecodeError as e:
        raise MalformedRequest(f"Payload is not valid JSON: {e}") from e


def _describe_validation_error(error: ValidationError) -> str:
    problems = []
    for item in error.errors():
        location = '.'.join(str(part) for part in item.get('loc', ())) or '<root>'
        problems.append(f"{location}: {item.get('msg')}")
    return '; '.join(problems)


def _check_overlay_colors(request: ChartRequest):
    """Overlay colors are validated up front; a bad one aborts the request."""
    for mark in request.plots.marks:
        parse_hex_color(mark.color)
    for zone in request.plots.zones:
        parse_hex_color(zone.color, AlphaPolicy.ZONE)
    for vline in request.plots.vlines:
        parse_hex_color(vline.color)


def parse_chart_request(raw: Union[bytes, bytearray, str, Dict[str, Any]]) -> ChartRequest:
    """
    Validate a chart request.

    Args:
        raw: JSON bytes/text of a request object, or an already decoded dict

    Returns:
        Validated, immutable ChartRequest

    Raises:
        MalformedRequest: payload is not decodable JSON
        SchemaError: required fields missing or of the wrong shape
        InvalidColor: an overlay color is not a hex color
    """
    payload = raw if isinstance(raw, dict) else _decode_json(raw)
    if not isinstance(payload, dict):
        raise SchemaError(f"Chart request must be a JSON object, got {type(payload).__name__}")

    try:
        request = ChartRequest.model_validate(payload)
    except ValidationError as e:
        raise SchemaError(_describe_validation_error(e)) from e

    _check_overlay_colors(request)
    return request


def decode_envelope(raw: Union[bytes, bytearray, str]) -> ChartRequest:
    """Decode the wire frame ["chart", "request", <ChartRequest>]."""
    envelope = _decode_json(raw)
    if not isinstance(envelope, list) or len(envelope) != 3:
        raise SchemaError("Envelope must be a JSON array [\"chart\", \"request\", {...}]")

    kind, action, body = envelope
    if kind != ENVELOPE_KIND or action != ENVELOPE_ACTION:
        raise SchemaError(f"Unsupported message {kind!r}/{action!r}")

    if not isinstance(body, dict):
        raise SchemaError(f"Chart request must be a JSON object, got {type(body).__name__}")
    return parse_chart_request(body)
