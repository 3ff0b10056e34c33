"""Excel workbook responses built with openpyxl"""
import io
from datetime import date, datetime
from decimal import Decimal

from django.http import HttpResponse
from openpyxl import Workbook
from openpyxl.cell.cell import ILLEGAL_CHARACTERS_RE
from openpyxl.styles import Font, Alignment

XLSX_CONTENT_TYPE = 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'


def cell_value(value):
    """Decimals as numbers, dates as ISO strings, lists and dicts as text, control characters dropped"""
    if value is None:
        return None
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, (list, tuple)):
        value = ', '.join(str(v) for v in value)
    elif isinstance(value, dict):
        value = str(value)
    if isinstance(value, str):
        # control characters are rejected by the xlsx writer
        return ILLEGAL_CHARACTERS_RE.sub('', value)
    return value


def build_workbook(sheets):
    """
    ``sheets`` is a list of ``(title, headers, rows)``; each row is a
    sequence matching ``headers``.
    """
    wb = Workbook()
    wb.remove(wb.active)
    for title, headers, rows in sheets:
        # Sheet titles are limited to 31 characters
        ws = wb.create_sheet(title=title[:31])
        for col, header in enumerate(headers, 1):
            cell = ws.cell(row=1, column=col, value=header)
            cell.font = Font(bold=True)
            cell.alignment = Alignment(horizontal="center", vertical="center")
        for row_num, row in enumerate(rows, 2):
            for col, value in enumerate(row, 1):
                ws.cell(row=row_num, column=col, value=cell_value(value))
    return wb


def workbook_response(sheets, filename):
    wb = build_workbook(sheets)
    buf = io.BytesIO()
    wb.save(buf)
    buf.seek(0)
    response = HttpResponse(buf.read(), content_type=XLSX_CONTENT_TYPE)
    response['Content-Disposition'] = f'attachment; filename="{filename}"'
    return response
