"""JSON and PNG endpoints driving the viewer session from a browser page."""

from __future__ import annotations

from typing import Any

import structlog
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel

from fxtrend.models import DisplayResult, TrendRange
from fxtrend.viewer import CurrencyViewer

log = structlog.get_logger(__name__)

router = APIRouter()

#: Width of the browser tooltip box, used to clamp its position.
TOOLTIP_WIDTH = 180.0


class TrendRequest(BaseModel):
    from_code: str | None = None
    to_code: str | None = None
    range: TrendRange | None = None
    refresh: bool = False


class PointerEvent(BaseModel):
    x: float
    y: float


class ResizeEvent(BaseModel):
    width: float
    height: float
    pixel_ratio: float | None = None
    origin_x: float | None = None
    origin_y: float | None = None


def _result_payload(result: DisplayResult) -> dict[str, Any]:
    return {
        "value": result.value_text,
        "meta": result.meta_text,
        "error": result.is_error,
        "amount": str(result.amount) if result.amount is not None else None,
    }


def _selection_payload(viewer: CurrencyViewer) -> dict[str, Any]:
    return {
        "pinned": viewer.selection.pinned,
        "selected_index": viewer.selection.selected_index,
        "readout": viewer.readout,
        "tooltip_left": viewer.tooltip_left(TOOLTIP_WIDTH),
    }


def _state_payload(viewer: CurrencyViewer) -> dict[str, Any]:
    state = viewer.state
    return {
        "from": state.from_code,
        "to": state.to_code,
        "amount": state.amount,
        "range": state.trend_range.value,
        "status": viewer.trend_status.text,
        "status_error": viewer.trend_status.is_error,
        "result": _result_payload(viewer.result),
        "selection": _selection_payload(viewer),
    }


@router.get("/currencies")
async def get_currencies(request: Request) -> JSONResponse:
    """Selectable currencies as ``[{code, name}]``, sorted by code."""
    viewer: CurrencyViewer = request.app.state.viewer
    if not viewer.state.currencies:
        await viewer.load_currencies()
    return JSONResponse(
        content=[{"code": code, "name": name} for code, name in viewer.state.currencies]
    )


@router.get("/convert")
async def convert(
    request: Request,
    amount: str | None = None,
    source: str | None = None,
    target: str | None = None,
    refresh: bool = False,
) -> JSONResponse:
    """Convert an amount; query parameters default to the current form state."""
    viewer: CurrencyViewer = request.app.state.viewer
    result = await viewer.convert(amount, source, target, force_refresh=refresh)
    return JSONResponse(content=_result_payload(result))


@router.post("/amount")
async def amount_input(request: Request, text: str) -> JSONResponse:
    """Record a keystroke; conversion runs after the debounce delay."""
    viewer: CurrencyViewer = request.app.state.viewer
    viewer.on_amount_input(text)
    return JSONResponse(content={"amount": viewer.state.amount})


@router.post("/swap")
async def swap(request: Request) -> JSONResponse:
    viewer: CurrencyViewer = request.app.state.viewer
    await viewer.swap_currencies()
    return JSONResponse(content=_state_payload(viewer))


@router.post("/trend")
async def trend(request: Request, body: TrendRequest) -> JSONResponse:
    """Change pair and/or range and reload the chart."""
    viewer: CurrencyViewer = request.app.state.viewer
    await viewer.render_trend(body.from_code, body.to_code, body.range, force_refresh=body.refresh)
    log.info("trend_requested", range=viewer.state.trend_range.value, status=viewer.trend_status.text)
    return JSONResponse(content=_state_payload(viewer))


@router.get("/chart.png")
async def chart_png(request: Request) -> Response:
    """The current chart raster."""
    viewer: CurrencyViewer = request.app.state.viewer
    return Response(content=viewer.surface.to_png(), media_type="image/png")


@router.post("/pointer/down")
async def pointer_down(request: Request, event: PointerEvent) -> JSONResponse:
    viewer: CurrencyViewer = request.app.state.viewer
    viewer.on_pointer_down(event.x, event.y)
    return JSONResponse(content=_selection_payload(viewer))


@router.post("/pointer/move")
async def pointer_move(request: Request, event: PointerEvent) -> JSONResponse:
    viewer: CurrencyViewer = request.app.state.viewer
    viewer.on_pointer_move(event.x, event.y)
    return JSONResponse(content=_selection_payload(viewer))


@router.post("/resize")
async def resize(request: Request, event: ResizeEvent) -> JSONResponse:
    viewer: CurrencyViewer = request.app.state.viewer
    viewer.on_resize(event.width, event.height, event.pixel_ratio, event.origin_x, event.origin_y)
    return JSONResponse(content={"surface": list(viewer.surface.size)})


@router.get("/state")
async def get_state(request: Request) -> JSONResponse:
    viewer: CurrencyViewer = request.app.state.viewer
    return JSONResponse(content=_state_payload(viewer))
