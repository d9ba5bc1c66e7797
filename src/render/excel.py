"""
XLSX 렌더러: 모델 → 논리 구조 → openpyxl codec.

두 단계로 동작:
1. 수집: 용량 검사, 스타일 해석/등록 (StyleTable), 텍스트 등장 횟수 집계
2. 인코딩: 행 단위 지연 인코딩 → codec.write_sheet() 가 소비

규칙:
- 스타일 우선순위: 셀 > 행 > 컬럼 기본값
- 숫자 형식: 명시된 number_format 우선, 없으면 셀 타입에서 유도
- 같은 해석 결과의 스타일은 StyleTable에 한 번만 등록
- 텍스트는 절대 수식으로 해석하지 않음 ("=..." 텍스트도 텍스트)
- 포맷이 표현할 수 없는 값 → EncodingError (잘라내거나 조용히 바꾸지 않음)
"""

import logging
import math
from collections import Counter
from collections.abc import Callable, Iterator
from dataclasses import replace
from datetime import date, datetime
from decimal import Decimal
from typing import Any

from openpyxl.cell.cell import ILLEGAL_CHARACTERS_RE
from openpyxl.utils.datetime import to_excel

from src.core.config import WriterConfig
from src.core.sinks import TrackingSink
from src.domain.cells import CellType, CellValue
from src.domain.constants import (
    GENERAL_FORMAT,
    XLSX_MAX_DATE,
    XLSX_MAX_FORMULA_LENGTH,
    XLSX_MAX_SAFE_INTEGER,
    XLSX_MAX_TEXT_LENGTH,
    XLSX_MIN_DATE,
    XLSX_SUFFIX,
)
from src.domain.errors import (
    CapacityExceededError,
    EncodingError,
    ErrorCodes,
    ModelConstructionError,
)
from src.domain.model import Cell, ColumnSpec, Row, Sheet
from src.domain.schemas import WriteLog
from src.domain.styles import StyleDescriptor, effective_number_format
from src.render.base import BaseRenderer, Model
from src.render.codec import (
    CellKind,
    ContainerCodec,
    EncodedCell,
    EncodedRow,
    EncodedSheet,
    OpenpyxlCodec,
    SharedStringPool,
    StyleTable,
)

logger = logging.getLogger(__name__)

CodecFactory = Callable[[WriterConfig], ContainerCodec]


class XlsxRenderer(BaseRenderer):
    """
    XLSX 문서 렌더러.

    Usage:
        renderer = XlsxRenderer()
        renderer.to_path(workbook, Path("report.xlsx"))
        data = renderer.to_bytes(workbook)
    """

    format_name = "xlsx"
    suffix = XLSX_SUFFIX

    def __init__(
        self,
        config: WriterConfig | None = None,
        codec_factory: CodecFactory | None = None,
        password: str | None = None,
    ) -> None:
        """
        Args:
            config: writer 설정 (None이면 기본값)
            codec_factory: config → ContainerCodec (None이면 OpenpyxlCodec)
            password: 지정 시 config.password를 덮어씀 (워크북 암호화)
        """
        if password is not None:
            config = replace(config or WriterConfig(), password=password)
        super().__init__(config)
        self.codec_factory: CodecFactory = codec_factory or OpenpyxlCodec

    def _generate(self, model: Model, sink: TrackingSink, write_log: WriteLog) -> None:
        sheets = _sheets_of(model)

        # Pass 1: 용량 검사 + 스타일/텍스트 수집
        styles = StyleTable()
        text_counts: Counter[str] = Counter()
        column_widths: list[dict[int, float]] = []
        for sheet in sheets:
            column_widths.append(self._collect(sheet, styles, text_counts))

        shared_strings = SharedStringPool.from_counts(
            text_counts, self.config.shared_string_threshold
        )
        logger.debug(
            f"[{write_log.write_id}] collected: sheets={len(sheets)}, "
            f"styles={len(styles)}, shared_strings={len(shared_strings)}"
        )

        # Pass 2: 시트 순서대로 인코딩 → codec
        codec = self.codec_factory(self.config)
        for sheet, widths in zip(sheets, column_widths):
            encoded = EncodedSheet(
                name=sheet.name,
                column_widths=widths,
                rows=self._encode_rows(sheet, styles, shared_strings, write_log),
            )
            codec.write_sheet(encoded, styles, shared_strings)
            write_log.sheets.append(sheet.name)

        codec.save(sink)
        if self.config.password is not None:
            logger.info(f"[{write_log.write_id}] workbook encrypted")

    # =========================================================================
    # Pass 1
    # =========================================================================

    def _collect(
        self,
        sheet: Sheet,
        styles: StyleTable,
        text_counts: Counter[str],
    ) -> dict[int, float]:
        """
        시트 하나 수집.

        Returns:
            컬럼 인덱스 → 너비 (ColumnSpec 우선, 없으면 처음 본 스타일 힌트)

        Raises:
            CapacityExceededError: ROW_LIMIT_EXCEEDED, COLUMN_LIMIT_EXCEEDED
        """
        max_rows = self.config.max_rows
        max_columns = self.config.max_columns
        columns = sheet.columns

        widths: dict[int, float] = {}
        for column, spec in columns.items():
            if column >= max_columns:
                raise CapacityExceededError(
                    ErrorCodes.COLUMN_LIMIT_EXCEEDED,
                    sheet=sheet.name,
                    column=column,
                    limit=max_columns,
                )
            if spec.width is not None:
                widths[column] = spec.width

        for row_index, row in enumerate(sheet):
            if row_index >= max_rows:
                raise CapacityExceededError(
                    ErrorCodes.ROW_LIMIT_EXCEEDED,
                    sheet=sheet.name,
                    row=row_index,
                    limit=max_rows,
                )
            if row.max_column >= max_columns:
                raise CapacityExceededError(
                    ErrorCodes.COLUMN_LIMIT_EXCEEDED,
                    sheet=sheet.name,
                    row=row_index,
                    column=row.max_column,
                    limit=max_columns,
                )

            for cell in row:
                style = _cell_style(cell, row, columns)
                if style is not None and style.column_width is not None:
                    widths.setdefault(cell.column, style.column_width)

                resolved = self._resolve_style(cell.value, style)
                if resolved is not None:
                    styles.intern(resolved)
                if cell.value.type is CellType.TEXT:
                    text_counts[cell.value.value] += 1

        return widths

    def _resolve_style(
        self,
        value: CellValue,
        style: StyleDescriptor | None,
    ) -> StyleDescriptor | None:
        """
        셀에 실제로 적용할 스타일 (숫자 형식까지 확정).

        스타일도 없고 형식도 General이면 None (기본 서식).
        """
        number_format = effective_number_format(value, self.config.number_formats, style)
        if style is None:
            if number_format == GENERAL_FORMAT:
                return None
            return StyleDescriptor(number_format=number_format)
        if style.number_format is None and number_format == GENERAL_FORMAT:
            return style
        if style.number_format != number_format:
            return style.replace(number_format=number_format)
        return style

    # =========================================================================
    # Pass 2
    # =========================================================================

    def _encode_rows(
        self,
        sheet: Sheet,
        styles: StyleTable,
        shared_strings: SharedStringPool,
        write_log: WriteLog,
    ) -> Iterator[EncodedRow]:
        columns = sheet.columns
        for row_index, row in enumerate(sheet):
            encoded_cells: list[EncodedCell] = []
            for cell in row:
                resolved = self._resolve_style(cell.value, _cell_style(cell, row, columns))
                style_index = styles.index_of(resolved) if resolved is not None else None
                if cell.value.is_empty and style_index is None:
                    continue
                encoded_cells.append(
                    _encode_cell(sheet.name, row_index, cell, style_index, shared_strings)
                )
                if not cell.value.is_empty:
                    write_log.cells_written += 1

            write_log.rows_written += 1
            yield EncodedRow(index=row_index, cells=tuple(encoded_cells))

        logger.debug(f"Sheet encoded: {sheet.name} ({sheet.row_count} rows)")


def _sheets_of(model: Model) -> list[Sheet]:
    if isinstance(model, Sheet):
        return [model]
    sheets = model.sheets
    if not sheets:
        raise ModelConstructionError(
            ErrorCodes.WORKBOOK_EMPTY,
            error="workbook must contain at least one sheet",
        )
    return sheets


def _cell_style(
    cell: Cell,
    row: Row,
    columns: dict[int, ColumnSpec],
) -> StyleDescriptor | None:
    """셀 > 행 > 컬럼 기본값."""
    if cell.style is not None:
        return cell.style
    if row.style is not None:
        return row.style
    spec = columns.get(cell.column)
    return spec.style if spec is not None else None


def _encode_cell(
    sheet_name: str,
    row_index: int,
    cell: Cell,
    style_index: int | None,
    shared_strings: SharedStringPool,
) -> EncodedCell:
    """
    CellValue → EncodedCell.

    Raises:
        EncodingError: TEXT_TOO_LONG, ILLEGAL_CHARACTER, FORMULA_TOO_LONG,
            DATE_OUT_OF_RANGE, NUMBER_OUT_OF_RANGE
    """
    value = cell.value
    location: dict[str, Any] = {"sheet": sheet_name, "row": row_index, "column": cell.column}

    if value.type is CellType.EMPTY:
        return EncodedCell(cell.column, CellKind.BLANK, None, style_index)

    if value.type is CellType.TEXT:
        text = value.value
        _check_text(text, XLSX_MAX_TEXT_LENGTH, ErrorCodes.TEXT_TOO_LONG, location)
        pool_index = shared_strings.get(text)
        if pool_index is not None:
            return EncodedCell(cell.column, CellKind.SHARED_STRING, pool_index, style_index)
        return EncodedCell(cell.column, CellKind.STRING, text, style_index)

    if value.type is CellType.INTEGER:
        if abs(value.value) > XLSX_MAX_SAFE_INTEGER:
            raise EncodingError(
                ErrorCodes.NUMBER_OUT_OF_RANGE,
                value=value.value,
                limit=XLSX_MAX_SAFE_INTEGER,
                **location,
            )
        return EncodedCell(cell.column, CellKind.NUMBER, value.value, style_index)

    if value.type is CellType.DECIMAL:
        number = _to_float(value.value)
        if not math.isfinite(number):
            raise EncodingError(
                ErrorCodes.NUMBER_OUT_OF_RANGE,
                value=str(value.value),
                **location,
            )
        return EncodedCell(cell.column, CellKind.NUMBER, number, style_index)

    if value.type is CellType.BOOLEAN:
        return EncodedCell(cell.column, CellKind.BOOL, value.value, style_index)

    if value.type is CellType.DATETIME:
        return EncodedCell(
            cell.column,
            CellKind.NUMBER,
            _to_serial(value.value, location),
            style_index,
        )

    if value.type is CellType.FORMULA:
        expression = value.value if value.value.startswith("=") else f"={value.value}"
        _check_text(expression, XLSX_MAX_FORMULA_LENGTH, ErrorCodes.FORMULA_TOO_LONG, location)
        return EncodedCell(cell.column, CellKind.FORMULA, expression, style_index)

    raise EncodingError(ErrorCodes.RENDER_FAILED, type=str(value.type), **location)


def _check_text(text: str, limit: int, code: str, location: dict[str, Any]) -> None:
    # openpyxl은 초과분을 조용히 잘라내므로 먼저 검사
    if len(text) > limit:
        raise EncodingError(code, length=len(text), limit=limit, **location)
    match = ILLEGAL_CHARACTERS_RE.search(text)
    if match:
        raise EncodingError(
            ErrorCodes.ILLEGAL_CHARACTER,
            character=f"U+{ord(match.group()):04X}",
            position=match.start(),
            **location,
        )


def _to_float(value: Decimal | float) -> float:
    """Excel은 Decimal을 직접 지원하지 않음 → float."""
    if isinstance(value, Decimal):
        return float(value)
    return value


def _to_serial(value: date | datetime, location: dict[str, Any]) -> float | int:
    """날짜/일시 → 1900 date system 일련번호."""
    day = value.date() if isinstance(value, datetime) else value
    if not XLSX_MIN_DATE <= day <= XLSX_MAX_DATE:
        raise EncodingError(
            ErrorCodes.DATE_OUT_OF_RANGE,
            value=value.isoformat(),
            min=XLSX_MIN_DATE.isoformat(),
            max=XLSX_MAX_DATE.isoformat(),
            **location,
        )
    return to_excel(value)


def render_xlsx(
    model: Model,
    sink: Any,
    config: WriterConfig | None = None,
) -> WriteLog:
    """
    XLSX 문서 생성 (간편 함수).

    Args:
        model: Workbook 또는 Sheet
        sink: 파일 경로 또는 바이너리 스트림
        config: writer 설정

    Returns:
        완료된 WriteLog
    """
    return XlsxRenderer(config).render(model, sink)
