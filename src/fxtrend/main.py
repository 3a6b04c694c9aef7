"""Entry point for the currency trend viewer.

Two commands:

- ``fxtrend serve`` runs the dashboard with uvicorn. The viewer session is
  built in the FastAPI lifespan and shares the server's event loop.
- ``fxtrend render FROM TO`` renders one chart to a PNG file and prints the
  conversion and trend status lines.

Component wiring order (in _build_viewer):
1. AppSettings (configuration)
2. Logging setup
3. HttpRatesApi (httpx client for both rate services)
4. CurrencyViewer (caches, renderer, selection controller, conversion)
"""

import argparse
import asyncio
from contextlib import asynccontextmanager
from pathlib import Path

import uvicorn
from fastapi import FastAPI

from fxtrend.api.http_client import HttpRatesApi
from fxtrend.config import AppSettings
from fxtrend.logging import get_logger, setup_logging
from fxtrend.models import TrendRange
from fxtrend.viewer import CurrencyViewer


def _build_viewer(settings: AppSettings) -> CurrencyViewer:
    """Build a viewer session with a live HTTP client."""
    return CurrencyViewer(HttpRatesApi(settings.api), settings)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create the viewer on startup, run the initial load, close it on shutdown."""
    logger = get_logger("fxtrend.main")
    settings: AppSettings = app.state.settings

    viewer = _build_viewer(settings)
    app.state.viewer = viewer
    await viewer.start()
    logger.info("viewer_started", source=viewer.state.from_code, target=viewer.state.to_code)

    yield

    await viewer.close()
    logger.info("viewer_stopped")


async def serve(settings: AppSettings) -> None:
    """Run the dashboard until interrupted."""
    from fxtrend.dashboard.app import create_dashboard_app

    logger = get_logger("fxtrend.main")
    app = create_dashboard_app(lifespan=lifespan)
    app.state.settings = settings

    logger.info("starting_dashboard", host=settings.dashboard.host, port=settings.dashboard.port)
    config = uvicorn.Config(
        app,
        host=settings.dashboard.host,
        port=settings.dashboard.port,
        log_level="warning",
    )
    await uvicorn.Server(config).serve()


async def render(
    settings: AppSettings,
    from_code: str,
    to_code: str,
    trend_range: TrendRange,
    amount: str,
    out: Path,
) -> int:
    """Render one chart to ``out``. Returns a process exit code."""
    viewer = _build_viewer(settings)
    try:
        result, _ = await asyncio.gather(
            viewer.convert(amount, from_code, to_code),
            viewer.render_trend(from_code, to_code, trend_range),
        )
        out.write_bytes(viewer.surface.to_png())
    finally:
        await viewer.close()

    print(f"{result.value_text}  ({result.meta_text})")
    print(viewer.trend_status.text)
    return 1 if result.is_error or viewer.trend_status.is_error else 0


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="fxtrend", description="Currency rate trend viewer")
    commands = parser.add_subparsers(dest="command", required=True)

    commands.add_parser("serve", help="run the dashboard server")

    render_cmd = commands.add_parser("render", help="render one trend chart to PNG")
    render_cmd.add_argument("from_code", metavar="FROM")
    render_cmd.add_argument("to_code", metavar="TO")
    render_cmd.add_argument(
        "--range",
        dest="trend_range",
        type=str.upper,
        choices=[r.value for r in TrendRange],
        default=None,
        help="preset window (default: CHART_DEFAULT_RANGE)",
    )
    render_cmd.add_argument("--amount", default="1")
    render_cmd.add_argument("--out", type=Path, default=Path("chart.png"))
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    """Synchronous entry point."""
    args = _parse_args(argv)
    settings = AppSettings()
    setup_logging(settings.log_level, settings.log_format)

    if args.command == "serve":
        asyncio.run(serve(settings))
        return 0

    trend_range = TrendRange(args.trend_range or settings.chart.default_range)
    return asyncio.run(
        render(
            settings,
            args.from_code.upper(),
            args.to_code.upper(),
            trend_range,
            args.amount,
            args.out,
        )
    )


if __name__ == "__main__":
    raise SystemExit(main())
