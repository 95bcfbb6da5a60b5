# utils/document_tracker/metrics.py
"""
Metric derivation for the dashboard cards.

- percent_change: change between the two most recent history points
- on_target: current value within a configured (non-null) target
- chart_series: oldest-first values, or a flagged placeholder ramp
- build_metric_cards: one MetricCard per stats field
- StatsSnapshot: last good stats read, kept across failed refreshes

VERSION: 1.0.0
"""

import logging
from typing import Dict, List, Optional, Tuple
import pandas as pd

from .constants import (
    DEFAULT_HISTORY_LIMIT, DEFAULT_TOPX, METRIC_LABELS, METRIC_TARGETS, STATS_FIELDS,
)
from .models import AppSettings, MetricCard

logger = logging.getLogger(__name__)


def _as_number(value) -> float:
    if value is None:
        return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    return 0.0 if pd.isna(number) else number


def percent_change(history: pd.DataFrame, field: str) -> float:
    """
    Percentage change between the last two rows of an oldest-first history.

    Returns 0 with fewer than two rows. A previous value of exactly 0 gives
    100 when the latest is positive, else 0.
    """
    if history is None or len(history) < 2 or field not in history.columns:
        return 0.0
    latest = _as_number(history[field].iloc[-1])
    previous = _as_number(history[field].iloc[-2])
    if previous == 0:
        return 100.0 if latest > 0 else 0.0
    return round((latest - previous) / previous * 100, 2)


def on_target(current_value, target) -> bool:
    """True iff a target is set and current_value does not exceed it."""
    if target is None or pd.isna(target):
        return False
    return _as_number(current_value) <= _as_number(target)


def placeholder_series(length: int = DEFAULT_HISTORY_LIMIT, descending: bool = False) -> List[float]:
    """Deterministic ramp shown when no history exists."""
    start, end = (80.0, 20.0) if descending else (20.0, 80.0)
    if length <= 1:
        return [start]
    step = (end - start) / (length - 1)
    return [round(start + step * i, 2) for i in range(length)]


def chart_series(history: pd.DataFrame, field: str,
                 placeholder_length: int = DEFAULT_HISTORY_LIMIT,
                 descending_placeholder: bool = False) -> Tuple[List[float], bool]:
    """
    Chart values for field, oldest first.

    Returns:
        (values, is_placeholder)
    """
    if history is None or history.empty or field not in history.columns:
        return placeholder_series(placeholder_length, descending_placeholder), True
    return [_as_number(v) for v in history[field].tolist()], False


def current_value(latest: Optional[Dict], history: pd.DataFrame, field: str) -> int:
    """Latest snapshot value, falling back to the newest history row."""
    if latest and latest.get(field) is not None:
        return int(_as_number(latest.get(field)))
    if history is not None and not history.empty and field in history.columns:
        return int(_as_number(history[field].iloc[-1]))
    return 0


def build_metric_cards(
    latest: Optional[Dict],
    history: pd.DataFrame,
    settings: Optional[AppSettings],
    topx: int = DEFAULT_TOPX,
    placeholder_length: int = DEFAULT_HISTORY_LIMIT,
) -> List[MetricCard]:
    """
    Build the trend cards (total, top-N, invoices in process).

    Args:
        latest: Latest stats snapshot dict, or None
        history: Oldest-first stats history
        settings: Loaded settings (targets), or None while not loaded
        topx: Top-N size used in the top card label
        placeholder_length: Length of the placeholder series
    """
    cards = []
    for field in STATS_FIELDS:
        target = settings.target_for(METRIC_TARGETS[field]) if settings else None
        value = current_value(latest, history, field)
        series, is_placeholder = chart_series(
            history, field, placeholder_length, descending_placeholder=(field == 'total')
        )
        cards.append(MetricCard(
            field=field,
            label=METRIC_LABELS[field].format(topx=topx),
            value=value,
            change=percent_change(history, field),
            target=target,
            on_target=on_target(value, target),
            series=series,
            is_placeholder=is_placeholder,
        ))
    logger.debug(f"Built {len(cards)} metric cards")
    return cards


class StatsSnapshot:
    """
    Last good stats read for the metric cards.

    A failed refresh keeps latest/history from the previous read and sets
    .error until dismissed or the next successful read.
    """

    def __init__(self):
        self.latest: Optional[Dict] = None
        self.history: pd.DataFrame = pd.DataFrame()
        self.loaded = False
        self.error: Optional[str] = None

    def refresh(self, queries, limit: int = DEFAULT_HISTORY_LIMIT) -> bool:
        try:
            latest = queries.load_latest_stats(strict=True)
            history = queries.load_stats_history(limit, strict=True)
        except Exception as e:
            logger.warning(f"⚠️ Stats refresh failed, keeping last snapshot: {e}")
            self.error = "Failed to load statistics."
            return False
        self.latest = latest
        self.history = history
        self.loaded = True
        self.error = None
        return True

    def dismiss_error(self):
        self.error = None
