"""Cell-based extraction for spreadsheet workbooks."""

from __future__ import annotations

import io
import logging
from typing import Iterator

import openpyxl
import xlrd
from pyxlsb import open_workbook as open_xlsb

from docingest.errors import DocumentParseError
from docingest.ingestion.formats import DocumentFormat
from docingest.ingestion.sheet_format import GENERAL, format_cell_value, format_general
from docingest.models import Cell, LabeledSpan

LOGGER = logging.getLogger(__name__)

CellText = tuple[str, int, int, str]


def _formula_text(value: object) -> str:
    # ArrayFormula keeps its source in ``text``
    return str(getattr(value, "text", value))


def iter_openpyxl_cells(data: bytes) -> Iterator[CellText]:
    """Yield ``(sheet, row, column, text)`` from an xlsx or xlsm workbook.

    The workbook is loaded twice: once for formulas and number formats and once
    for the values cached by the application that last saved it. A formula
    without a cached value is rendered as its formula text.
    """
    formulas = openpyxl.load_workbook(io.BytesIO(data), data_only=False)
    values = openpyxl.load_workbook(io.BytesIO(data), data_only=True)
    try:
        for sheet in formulas.worksheets:
            cached = values[sheet.title]
            for row in sheet.iter_rows():
                for cell in row:
                    if cell.value is None:
                        continue
                    if cell.data_type == "f":
                        result = cached.cell(row=cell.row, column=cell.column).value
                        if result is None:
                            text = _formula_text(cell.value)
                        else:
                            text = format_cell_value(result, cell.number_format)
                    else:
                        text = format_cell_value(cell.value, cell.number_format)
                    yield sheet.title, cell.row, cell.column, text
    finally:
        formulas.close()
        values.close()


def _xls_number_format(book, sheet, row: int, column: int) -> str:
    try:
        xf = book.xf_list[sheet.cell_xf_index(row, column)]
        return book.format_map[xf.format_key].format_str
    except (IndexError, KeyError, AttributeError):
        return GENERAL


def iter_xlrd_cells(data: bytes) -> Iterator[CellText]:
    book = xlrd.open_workbook(file_contents=data, formatting_info=True)
    try:
        for sheet in book.sheets():
            for row in range(sheet.nrows):
                for column in range(sheet.ncols):
                    cell = sheet.cell(row, column)
                    if cell.ctype in (xlrd.XL_CELL_EMPTY, xlrd.XL_CELL_BLANK):
                        continue
                    if cell.ctype == xlrd.XL_CELL_TEXT:
                        text = cell.value
                    elif cell.ctype == xlrd.XL_CELL_BOOLEAN:
                        text = format_general(bool(cell.value))
                    elif cell.ctype == xlrd.XL_CELL_ERROR:
                        text = xlrd.error_text_from_code.get(cell.value, "#N/A")
                    elif cell.ctype == xlrd.XL_CELL_DATE:
                        number_format = _xls_number_format(book, sheet, row, column)
                        try:
                            moment = xlrd.xldate_as_datetime(cell.value, book.datemode)
                        except (ValueError, OverflowError):
                            text = format_general(cell.value)
                        else:
                            text = format_cell_value(moment, number_format)
                    else:
                        text = format_cell_value(
                            cell.value, _xls_number_format(book, sheet, row, column)
                        )
                    yield sheet.name, row + 1, column + 1, text
    finally:
        book.release_resources()


def iter_xlsb_cells(data: bytes) -> Iterator[CellText]:
    """Binary workbooks expose cached values only; numbers render as General."""
    with open_xlsb(io.BytesIO(data)) as book:
        for name in book.sheets:
            with book.get_sheet(name) as sheet:
                for row in sheet.rows(sparse=True):
                    for cell in row:
                        if cell.v is None:
                            continue
                        yield name, cell.r + 1, cell.c + 1, format_general(cell.v)


_READERS = {
    DocumentFormat.XLSX: iter_openpyxl_cells,
    DocumentFormat.XLSM: iter_openpyxl_cells,
    DocumentFormat.XLS: iter_xlrd_cells,
    DocumentFormat.XLSB: iter_xlsb_cells,
}


def extract_cells(data: bytes, filename: str, fmt: DocumentFormat = DocumentFormat.XLSX) -> list[LabeledSpan]:
    """Return one span per non-empty cell in sheet, row, column order."""
    reader = _READERS.get(fmt)
    if reader is None:
        raise DocumentParseError(filename, f"not a spreadsheet format: {fmt.value}")

    spans: list[LabeledSpan] = []
    try:
        for sheet, row, column, text in reader(data):
            stripped = text.strip()
            if stripped:
                spans.append(
                    LabeledSpan(text=stripped, coordinate=Cell(sheet, row, column), order=len(spans))
                )
    except DocumentParseError:
        raise
    except Exception as exc:
        raise DocumentParseError(filename, exc) from exc

    LOGGER.debug("Extracted %s non-empty cells from %s", len(spans), filename)
    return spans
