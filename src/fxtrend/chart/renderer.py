"""Raster chart renderer built on Pillow.

Draw order: background, vertical grid with tick labels, value labels,
gradient-filled area, line stroke, selection rule and marker. Geometry is
computed in logical pixels; every coordinate and stroke is multiplied by the
viewport's pixel ratio at draw time so the raster is always native
resolution.
"""

import io
from collections.abc import Sequence
from datetime import date

from PIL import Image, ImageChops, ImageDraw, ImageFont

from fxtrend.chart.geometry import ChartGeometry
from fxtrend.chart.models import ChartStyle, ChartViewport
from fxtrend.formatting import format_amount
from fxtrend.logging import get_logger
from fxtrend.models import SeriesPoint, TrendRange

logger = get_logger(__name__)

Color = tuple[int, int, int, int]


class RasterSurface:
    """Backing raster of the chart. Resizing replaces (and clears) the image."""

    def __init__(self) -> None:
        self._image = Image.new("RGBA", (1, 1))

    @property
    def image(self) -> Image.Image:
        return self._image

    @property
    def size(self) -> tuple[int, int]:
        return self._image.size

    def resize(self, size: tuple[int, int], background: Color) -> None:
        self._image = Image.new("RGBA", size, background)

    def to_png(self) -> bytes:
        buffer = io.BytesIO()
        self._image.save(buffer, format="PNG")
        return buffer.getvalue()


def _vertical_gradient(size: tuple[int, int], top: int, bottom: int, start: Color, end: Color) -> Image.Image:
    """RGBA image fading from ``start`` at row ``top`` to ``end`` at row ``bottom``."""
    width, height = size
    column = Image.new("RGBA", (1, height))
    span = max(1, bottom - top)
    pixels = []
    for row in range(height):
        t = min(1.0, max(0.0, (row - top) / span))
        pixels.append(tuple(round(a + (b - a) * t) for a, b in zip(start, end)))
    column.putdata(pixels)
    return column.resize((width, height))


class ChartRenderer:
    """Stateless painter; all inputs arrive with each ``draw`` call."""

    def __init__(self, style: ChartStyle | None = None) -> None:
        self._style = style or ChartStyle()

    @property
    def style(self) -> ChartStyle:
        return self._style

    def draw(
        self,
        surface: RasterSurface,
        points: Sequence[SeriesPoint],
        viewport: ChartViewport,
        trend_range: TrendRange,
        selected_index: int | None = None,
        window: tuple[date, date] | None = None,
    ) -> ChartGeometry | None:
        """Repaint ``surface`` and return the geometry used (None for no data)."""
        style = self._style
        scale = viewport.pixel_ratio
        surface.resize(viewport.surface_size, style.background)
        font = ImageFont.load_default(size=max(1, round(style.font_size * scale)))

        if not points:
            self._draw_no_data(surface, font)
            logger.debug("chart_rendered_empty", size=surface.size)
            return None

        geometry = ChartGeometry.build(points, viewport, trend_range, window)
        canvas = ImageDraw.Draw(surface.image, "RGBA")
        self._draw_grid(canvas, geometry, scale, font, surface.size[0])
        self._draw_value_labels(canvas, geometry, scale, font)
        coords = [
            (geometry.x_for_index(i) * scale, geometry.y_for_value(p.value) * scale)
            for i, p in enumerate(points)
        ]
        self._draw_area(surface, coords, viewport, scale)

        canvas = ImageDraw.Draw(surface.image, "RGBA")
        line_width = max(1, round(style.line_width * scale))
        if len(coords) > 1:
            canvas.line(coords, fill=style.line, width=line_width, joint="curve")
        else:
            self._dot(canvas, coords[0], style.line_width * scale, style.line)

        if selected_index is not None and 0 <= selected_index < len(points):
            self._draw_selection(canvas, coords[selected_index], viewport, scale)

        logger.debug(
            "chart_rendered",
            points=len(points),
            selected=selected_index,
            size=surface.size,
        )
        return geometry

    def _draw_no_data(self, surface: RasterSurface, font: ImageFont.ImageFont) -> None:
        canvas = ImageDraw.Draw(surface.image, "RGBA")
        text = self._style.no_data_text
        left, top, right, bottom = canvas.textbbox((0, 0), text, font=font)
        width, height = surface.size
        canvas.text(
            ((width - (right - left)) / 2, (height - (bottom - top)) / 2),
            text,
            fill=self._style.text,
            font=font,
        )

    def _draw_grid(
        self,
        canvas: ImageDraw.ImageDraw,
        geometry: ChartGeometry,
        scale: float,
        font: ImageFont.ImageFont,
        surface_width: int,
    ) -> None:
        style = self._style
        vp = geometry.viewport
        top, bottom = vp.plot_top * scale, vp.plot_bottom * scale
        grid_width = max(1, round(style.grid_width * scale))
        for tick in geometry.ticks:
            x = geometry.x_for_fraction(tick.fraction) * scale
            canvas.line([(x, top), (x, bottom)], fill=style.grid, width=grid_width)
            left, _, right, _ = canvas.textbbox((0, 0), tick.label, font=font)
            label_width = right - left
            label_x = min(max(0.0, x - label_width / 2), surface_width - label_width)
            canvas.text((label_x, bottom + 6 * scale), tick.label, fill=style.text, font=font)

    def _draw_value_labels(
        self,
        canvas: ImageDraw.ImageDraw,
        geometry: ChartGeometry,
        scale: float,
        font: ImageFont.ImageFont,
    ) -> None:
        vp = geometry.viewport
        high = format_amount(geometry.max_value)
        low = format_amount(geometry.min_value)
        _, top, _, bottom = canvas.textbbox((0, 0), low, font=font)
        x = (vp.plot_left + 4) * scale
        canvas.text((x, vp.plot_top * scale - (bottom - top) - 2 * scale), high, fill=self._style.text, font=font)
        canvas.text((x, vp.plot_bottom * scale - (bottom - top) - 4 * scale), low, fill=self._style.text, font=font)

    def _draw_area(
        self,
        surface: RasterSurface,
        coords: list[tuple[float, float]],
        viewport: ChartViewport,
        scale: float,
    ) -> None:
        if len(coords) < 2:
            return
        style = self._style
        bottom = viewport.plot_bottom * scale
        polygon = [(coords[0][0], bottom), *coords, (coords[-1][0], bottom)]

        mask = Image.new("L", surface.size, 0)
        ImageDraw.Draw(mask).polygon(polygon, fill=255)
        layer = _vertical_gradient(
            surface.size,
            round(viewport.plot_top * scale),
            round(bottom),
            style.fill_top,
            style.fill_bottom,
        )
        layer.putalpha(ImageChops.multiply(layer.getchannel("A"), mask))
        surface.image.alpha_composite(layer)

    def _draw_selection(
        self,
        canvas: ImageDraw.ImageDraw,
        point: tuple[float, float],
        viewport: ChartViewport,
        scale: float,
    ) -> None:
        style = self._style
        x, _ = point
        canvas.line(
            [(x, viewport.plot_top * scale), (x, viewport.plot_bottom * scale)],
            fill=style.marker,
            width=max(1, round(style.grid_width * scale)),
        )
        self._dot(canvas, point, style.marker_radius * scale, style.marker)

    @staticmethod
    def _dot(canvas: ImageDraw.ImageDraw, center: tuple[float, float], radius: float, color: Color) -> None:
        x, y = center
        canvas.ellipse([(x - radius, y - radius), (x + radius, y + radius)], fill=color)
