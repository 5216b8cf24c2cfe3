"""
Bar chart tool.

Draws a bar chart from label/value pairs with Plotly and hands the figure to
a chart sink, which is whatever "displays it to the user" means for the
running application (an HTML file by default).
"""
import uuid
from pathlib import Path
from typing import Callable, List, Optional, Union

import plotly.graph_objects as go
import structlog
from langchain_core.tools import StructuredTool
from pydantic import BaseModel, Field

logger = structlog.get_logger(__name__)

CHART_TOOL_NAME = "generate_bar_chart"
CHART_GENERATED_MESSAGE = "Chart has been generated and displayed to the user!"

WIDTH = 500
HEIGHT = 500
MARGIN = {"t": 20, "r": 30, "b": 30, "l": 40}

COLOR_PALETTE = [
    "#e6194B",
    "#3cb44b",
    "#ffe119",
    "#4363d8",
    "#f58231",
    "#911eb4",
    "#42d4f4",
    "#f032e6",
    "#bfef45",
    "#fabebe",
]

ChartSink = Callable[[go.Figure], Optional[str]]


class DataPoint(BaseModel):
    label: str
    value: float


class BarChartInput(BaseModel):
    data: List[DataPoint] = Field(..., min_length=1, description="Bars to draw, in display order")


def build_bar_chart(data: List[Union[DataPoint, dict]]) -> go.Figure:
    """
    Build the bar chart figure.

    Bars are colored from the palette by position (cycling after ten); the
    value axis always starts at zero.
    """
    points = BarChartInput.model_validate({"data": data}).data
    labels = [p.label for p in points]
    values = [p.value for p in points]
    colors = [COLOR_PALETTE[i % len(COLOR_PALETTE)] for i in range(len(points))]

    fig = go.Figure(go.Bar(x=labels, y=values, marker_color=colors))
    fig.update_layout(
        width=WIDTH,
        height=HEIGHT,
        margin=MARGIN,
        bargap=0.1,
        showlegend=False,
        plot_bgcolor="white",
    )
    fig.update_xaxes(type="category", showline=True, linecolor="black")
    fig.update_yaxes(rangemode="tozero", showline=True, linecolor="black", ticks="outside", ticklen=6)
    return fig


class HtmlChartSink:
    """Writes each chart to its own HTML file in ``output_dir``."""

    def __init__(self, output_dir: Union[str, Path]):
        self.output_dir = Path(output_dir)
        self.paths: List[Path] = []

    def __call__(self, figure: go.Figure) -> str:
        self.output_dir.mkdir(parents=True, exist_ok=True)
        path = self.output_dir / f"chart-{uuid.uuid4().hex[:12]}.html"
        figure.write_html(str(path), include_plotlyjs="cdn")
        self.paths.append(path)
        logger.info("chart_written", path=str(path))
        return str(path)


def create_chart_tool(sink: ChartSink) -> StructuredTool:
    """Build the bar chart tool; every generated figure goes to ``sink``."""

    def generate_bar_chart(data: List[DataPoint]) -> str:
        sink(build_bar_chart(data))
        return CHART_GENERATED_MESSAGE

    return StructuredTool.from_function(
        func=generate_bar_chart,
        name=CHART_TOOL_NAME,
        description="Generates a bar chart from an array of data points and displays it for the user.",
        args_schema=BarChartInput,
    )
