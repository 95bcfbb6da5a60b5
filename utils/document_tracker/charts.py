# utils/document_tracker/charts.py
"""
Altair charts for the document tracker dashboard.

VERSION: 1.0.0
"""

from typing import List
import altair as alt
import pandas as pd

from .constants import COLORS, CHART_HEIGHT
from .models import MetricCard


def empty_chart(message: str = "No data available") -> alt.Chart:
    """Return an empty chart with a message."""
    return alt.Chart(pd.DataFrame({'text': [message]})).mark_text(
        fontSize=14, color='#999999'
    ).encode(
        text='text:N'
    ).properties(width='container', height=CHART_HEIGHT)


def sparkline_chart(values: List[float], color: str, placeholder: bool = False,
                    height: int = CHART_HEIGHT) -> alt.Chart:
    """
    Small area chart without axes.

    Placeholder series are drawn dashed in grey so they cannot be taken
    for real history.
    """
    if not values:
        return empty_chart()

    df = pd.DataFrame({'step': range(len(values)), 'value': values})
    line_color = COLORS['placeholder'] if placeholder else color

    base = alt.Chart(df).encode(
        x=alt.X('step:Q', axis=None),
        y=alt.Y('value:Q', axis=None, scale=alt.Scale(zero=False)),
    )
    if placeholder:
        return base.mark_line(color=line_color, strokeDash=[4, 3]).properties(
            width='container', height=height
        )

    area = base.mark_area(color=line_color, opacity=0.15)
    line = base.mark_line(color=line_color, strokeWidth=2).encode(
        tooltip=[alt.Tooltip('value:Q', title='Value', format=',.0f')]
    )
    return (area + line).properties(width='container', height=height)


def metric_card_chart(card: MetricCard) -> alt.Chart:
    color = COLORS['good'] if card.trend_is_good else COLORS['bad']
    return sparkline_chart(card.series, color, placeholder=card.is_placeholder)
