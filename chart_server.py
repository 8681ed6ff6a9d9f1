#!/usr/bin/env python3
"""
Chart Render Server

Main entry point for the chart service. Connects to the message router,
renders every incoming chart request to a PNG and notifies the Telegram
service where the image was written.

Usage:
    python chart_server.py                         # serve requests
    python chart_server.py --output-dir ./charts   # override output directory
    python chart_server.py --render-file req.json  # render one request offline
"""

import argparse
import logging
import os
import sys
from pathlib import Path

from dotenv import load_dotenv

# Load environment variables
load_dotenv()

from chart_service.bot import ChartRequestServer, TelegramNotifier
from chart_service.chart.request_model import decode_envelope, parse_chart_request
from chart_service.config import load_service_config
from chart_service.errors import ChartServiceError
from chart_service.pipeline import ChartPipeline
from chart_service.transport import LocalArtifactStore

# Configure logging
logger = logging.getLogger(__name__)


def setup_logging(level: str = 'INFO'):
    """Configure logging for the service"""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format='%(asctime)s - %(levelname)s - %(message)s',
        handlers=[
            logging.StreamHandler()
        ]
    )

    # Suppress verbose logs from external libraries
    logging.getLogger("matplotlib").setLevel(logging.WARNING)
    logging.getLogger("PIL").setLevel(logging.WARNING)


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description='Render candlestick chart requests to PNG images')
    parser.add_argument('--endpoint', help='Router endpoint (default: CHARTS_ENDPOINT or tcp://127.0.0.1:6565)')
    parser.add_argument('--identity', help='Socket identity (default: CHARTS_IDENTITY or "charts")')
    parser.add_argument('--output-dir', help='Directory for rendered charts (default: CHARTS_OUTPUT_DIR or config.toml)')
    parser.add_argument('--config', help='Path to config.toml (default: ~/.corky/config.toml)')
    parser.add_argument('--log-level', default=os.getenv('LOG_LEVEL', 'INFO'), help='Logging level')
    parser.add_argument('--no-notify', action='store_true', help='Do not send Telegram notifications')
    parser.add_argument('--render-file', metavar='PATH',
                        help='Render a request JSON file (bare request or ["chart", "request", {...}]) and exit')
    return parser.parse_args(argv)


def render_file(path: str, pipeline: ChartPipeline) -> int:
    """Render one request file without the message router."""
    raw = Path(path).read_bytes()
    try:
        stripped = raw.lstrip()
        request = decode_envelope(raw) if stripped.startswith(b'[') else parse_chart_request(raw)
        artifact = pipeline.process(request)
    except ChartServiceError as e:
        logger.error(f"❌ {type(e).__name__}: {e}")
        return 1

    print(artifact.path)
    return 0


def main(argv=None) -> int:
    """Main entry point"""
    args = parse_args(argv)
    setup_logging(args.log_level)

    try:
        config = load_service_config(
            output_dir=args.output_dir,
            endpoint=args.endpoint,
            identity=args.identity,
            config_path=args.config,
            notify=False if args.no_notify else None,
        )
    except ChartServiceError as e:
        logger.error(f"ERROR: {e}")
        return 1

    logger.info(f"[INIT] Using output directory: {config.output_dir}")

    notifier = None
    if config.notify_enabled:
        notifier = TelegramNotifier(config.notify_endpoint, target=config.notify_target)
    pipeline = ChartPipeline(LocalArtifactStore(config.output_dir), notifier)

    try:
        if args.render_file:
            return render_file(args.render_file, pipeline)

        server = ChartRequestServer(config.transport, pipeline)
        server.install_signal_handlers()
        try:
            server.serve_forever()
        finally:
            server.close()
    except KeyboardInterrupt:
        logger.info("\n🛑 Program interrupted by user")
    except Exception as e:
        logger.error(f"❌ Fatal error: {e}", exc_info=True)
        return 1
    finally:
        if notifier is not None:
            notifier.close()

    return 0


if __name__ == "__main__":
    sys.exit(main())
