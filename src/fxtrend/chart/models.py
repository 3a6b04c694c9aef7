"""Chart viewport, tick and style types."""

from dataclasses import dataclass


@dataclass(frozen=True)
class ChartViewport:
    """Logical (CSS-pixel) size and placement of the chart surface.

    ``origin_x``/``origin_y`` are the surface's top-left corner in screen
    coordinates, used to translate raw pointer positions. Derived on every
    render from the surface size and device pixel ratio; never cached.
    """

    width: float
    height: float
    pixel_ratio: float = 1.0
    origin_x: float = 0.0
    origin_y: float = 0.0
    pad_left: float = 14.0
    pad_right: float = 14.0
    pad_top: float = 18.0
    pad_bottom: float = 28.0

    @property
    def plot_left(self) -> float:
        return self.pad_left

    @property
    def plot_right(self) -> float:
        return max(self.pad_left, self.width - self.pad_right)

    @property
    def plot_top(self) -> float:
        return self.pad_top

    @property
    def plot_bottom(self) -> float:
        return max(self.pad_top, self.height - self.pad_bottom)

    @property
    def plot_width(self) -> float:
        return self.plot_right - self.plot_left

    @property
    def plot_height(self) -> float:
        return self.plot_bottom - self.plot_top

    @property
    def surface_size(self) -> tuple[int, int]:
        """Device-pixel size of the backing raster."""
        return (
            max(1, round(self.width * self.pixel_ratio)),
            max(1, round(self.height * self.pixel_ratio)),
        )

    def to_local(self, screen_x: float, screen_y: float) -> tuple[float, float]:
        """Translate screen coordinates into chart-local logical coordinates."""
        return screen_x - self.origin_x, screen_y - self.origin_y

    def contains(self, screen_x: float, screen_y: float) -> bool:
        """Return True if a screen position falls on the chart surface."""
        x, y = self.to_local(screen_x, screen_y)
        return 0 <= x <= self.width and 0 <= y <= self.height


@dataclass(frozen=True)
class AxisTick:
    """A time-axis tick at ``fraction`` (0..1) of the plotted span."""

    fraction: float
    label: str


@dataclass(frozen=True)
class ChartStyle:
    """Colors and stroke sizes in logical pixels. RGBA tuples."""

    background: tuple[int, int, int, int] = (255, 255, 255, 255)
    line: tuple[int, int, int, int] = (37, 99, 235, 255)
    fill_top: tuple[int, int, int, int] = (37, 99, 235, 90)
    fill_bottom: tuple[int, int, int, int] = (37, 99, 235, 0)
    grid: tuple[int, int, int, int] = (148, 163, 184, 90)
    text: tuple[int, int, int, int] = (71, 85, 105, 255)
    marker: tuple[int, int, int, int] = (220, 38, 38, 255)
    line_width: float = 2.0
    grid_width: float = 1.0
    marker_radius: float = 4.0
    font_size: float = 11.0
    no_data_text: str = "No data"
