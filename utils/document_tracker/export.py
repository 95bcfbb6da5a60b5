# utils/document_tracker/export.py
"""
Export of the customer table (CSV / formatted Excel).

Exports the current projection: every row that passes the search,
in the current sort order, not only the visible page.

VERSION: 1.0.0
"""

import io
import numbers
import logging
from datetime import datetime
from typing import Sequence
import pandas as pd

from .constants import EXCEL_STYLES
from .models import ActorRef, ColumnKind, ColumnSpec

logger = logging.getLogger(__name__)


def export_frame(rows: pd.DataFrame, columns: Sequence[ColumnSpec]) -> pd.DataFrame:
    """Rows restricted to the declared columns, with column labels as headers."""
    out = pd.DataFrame(index=rows.index)
    for spec in columns:
        if spec.key not in rows.columns:
            continue
        values = rows[spec.key]
        if spec.key == 'last_updated_by':
            values = values.map(lambda a: str(a) if isinstance(a, ActorRef) else '')
        elif spec.kind is ColumnKind.DATE:
            # Excel cannot store tz-aware datetimes
            values = pd.to_datetime(values, utc=True, errors='coerce').dt.tz_localize(None)
        out[spec.label] = values
    return out.reset_index(drop=True)


class CustomerExport:
    """Handle CSV/Excel exports."""

    @staticmethod
    def to_csv(df: pd.DataFrame) -> bytes:
        return df.to_csv(index=False).encode('utf-8-sig')

    @staticmethod
    def to_excel(df: pd.DataFrame, sheet_name: str = 'Customers') -> bytes:
        """Convert DataFrame to formatted Excel bytes using openpyxl."""
        from openpyxl import Workbook
        from openpyxl.styles import Font, Alignment, Border, Side, PatternFill
        from openpyxl.utils import get_column_letter

        wb = Workbook()
        ws = wb.active
        ws.title = sheet_name

        header_fill = PatternFill(
            start_color=EXCEL_STYLES['header_fill_color'],
            end_color=EXCEL_STYLES['header_fill_color'],
            fill_type='solid'
        )
        header_font = Font(bold=True, color=EXCEL_STYLES['header_font_color'], size=11)
        thin = Side(style='thin', color='000000')
        cell_border = Border(left=thin, right=thin, top=thin, bottom=thin)

        for col_idx, col_name in enumerate(df.columns, 1):
            cell = ws.cell(row=1, column=col_idx, value=col_name)
            cell.fill = header_fill
            cell.font = header_font
            cell.alignment = Alignment(horizontal='center', vertical='center')
            cell.border = cell_border
            ws.column_dimensions[get_column_letter(col_idx)].width = max(len(str(col_name)) + 4, 14)

        for row_idx, row in enumerate(df.itertuples(index=False), 2):
            for col_idx, value in enumerate(row, 1):
                if value is not None and not isinstance(value, str) and pd.isna(value):
                    value = None
                cell = ws.cell(row=row_idx, column=col_idx, value=value)
                cell.border = cell_border
                if isinstance(value, (datetime, pd.Timestamp)):
                    cell.number_format = EXCEL_STYLES['datetime_format']
                elif isinstance(value, numbers.Number) and not isinstance(value, bool):
                    cell.number_format = EXCEL_STYLES['count_format']
                    cell.alignment = Alignment(horizontal='right')

        ws.freeze_panes = 'A2'

        buffer = io.BytesIO()
        wb.save(buffer)
        buffer.seek(0)
        logger.debug(f"Exported {len(df)} rows to Excel sheet '{sheet_name}'")
        return buffer.getvalue()
