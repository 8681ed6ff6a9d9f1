#!/usr/bin/env python3
"""
Chart Pipeline

Runs one chart request to completion:

    validate -> prepare candles -> build layers -> composite -> write -> notify

Every step either succeeds or raises a ChartServiceError; nothing is written
and nobody is notified unless rendering succeeded. Each call builds its own
scales, layers and figure, so a pipeline can be shared between threads.
"""

import logging
from typing import Any, Dict, Optional, Union

from .bot.notifier import NotificationChannel
from .chart.compositor import ChartCompositor
from .chart.data_preparer import ChartDataPreparer, log_data_summary
from .chart.layers import LayerBuilder
from .chart.request_model import ChartRequest, parse_chart_request
from .chart_config import ChartConfig
from .transport import Artifact, ArtifactStore, artifact_filename

logger = logging.getLogger(__name__)


class ChartPipeline:
    """Turns chart requests into PNG artifacts plus a follow-up notification"""

    def __init__(self, store: ArtifactStore,
                 notifier: Optional[NotificationChannel] = None,
                 chart_config=ChartConfig):
        """
        Args:
            store: Where rendered images are written
            notifier: Notification channel; None disables notifications
            chart_config: Canvas, layout and theme settings
        """
        self.store = store
        self.notifier = notifier
        self.chart_config = chart_config
        self.data_preparer = ChartDataPreparer(chart_config)
        self.compositor = ChartCompositor(chart_config)

    def process_payload(self, raw: Union[bytes, str, Dict[str, Any]]) -> Artifact:
        """Validate a raw request object and process it."""
        return self.process(parse_chart_request(raw))

    def render(self, request: ChartRequest) -> bytes:
        """
        Render a request to PNG bytes without writing anything.

        Raises:
            EmptySeries: if the request has no candles
        """
        frame = self.data_preparer.prepare_chart_data(request)
        log_data_summary(frame, request)
        layers = LayerBuilder(frame, request, self.chart_config).build()
        return self.compositor.render(layers)

    def process(self, request: ChartRequest) -> Artifact:
        """
        Render, write and announce one chart.

        Raises:
            EmptySeries: no candles (nothing written, nothing sent)
            InvalidColor: an overlay color could not be parsed
            ArtifactIOError: the image could not be written
        """
        logger.info(f"🖼️  Processing chart: '{request.title}' with {len(request.data)} candles")

        image = self.render(request)
        path = self.store.save_png(artifact_filename(request), image)
        artifact = Artifact(path=str(path), ticker=request.ticker, timeframe=request.timeframe)

        logger.info(f"✅ Chart processing complete. Saved to: {artifact.path}")

        if self.notifier is not None:
            self.notifier.notify(request, artifact)

        return artifact
