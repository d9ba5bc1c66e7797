"""
CSV(구분자 텍스트) 렌더러.

규칙:
- 첫 번째 시트만 기록 (나머지는 SHEETS_SKIPPED 경고)
- 셀 값은 CellValue.render_text() 정규 문자열
- 구분자/따옴표/줄바꿈을 포함한 필드만 따옴표로 감싸고 내부 따옴표는 두 번
- 희소 행의 빈칸은 빈 필드, 빈 행은 빈 줄
- 모든 줄(마지막 포함)은 line_terminator로 끝남
- 수식은 평가하지 않고 원문 그대로 (FORMULA_AS_TEXT 경고)
- 스타일은 무시
"""

import codecs
import logging
from typing import Any

from src.core.config import WriterConfig
from src.core.logging import emit_warning
from src.core.sinks import TrackingSink
from src.domain.cells import CellType
from src.domain.constants import CSV_SUFFIX
from src.domain.errors import (
    EncodingError,
    ErrorCodes,
    ModelConstructionError,
    WarningCodes,
)
from src.domain.model import Row, Sheet
from src.domain.schemas import WriteLog
from src.render.base import BaseRenderer, Model

logger = logging.getLogger(__name__)

QUOTE = '"'


def encode_field(text: str, delimiter: str = ",", quote: str = QUOTE) -> str:
    """
    필드 하나 인코딩.

    구분자, 따옴표, CR, LF 중 하나라도 포함하면 따옴표로 감싼다.

    Examples:
        encode_field("plain") → plain
        encode_field("a,b") → "a,b"
        encode_field('a"b') → "a""b"
    """
    if (
        delimiter in text
        or quote in text
        or "\n" in text
        or "\r" in text
    ):
        return quote + text.replace(quote, quote * 2) + quote
    return text


class CsvRenderer(BaseRenderer):
    """
    CSV 렌더러.

    Usage:
        renderer = CsvRenderer(WriterConfig(delimiter=";"))
        renderer.to_path(workbook, Path("report.csv"))
    """

    format_name = "csv"
    suffix = CSV_SUFFIX

    def _generate(self, model: Model, sink: TrackingSink, write_log: WriteLog) -> None:
        sheet = self._select_sheet(model, write_log)
        write_log.sheets.append(sheet.name)

        # 증분 인코더: utf-16 등에서 BOM이 한 번만 나오도록
        encoder = codecs.getincrementalencoder(self.config.encoding)()
        if self.config.bom:
            sink.write(encoder.encode("\ufeff"))

        formulas = 0
        for row_index, row in enumerate(sheet):
            line = self.render_row(row)
            try:
                sink.write(encoder.encode(line))
            except UnicodeEncodeError as e:
                raise EncodingError(
                    ErrorCodes.UNENCODABLE_TEXT,
                    sheet=sheet.name,
                    row=row_index,
                    encoding=self.config.encoding,
                    character=f"U+{ord(e.object[e.start]):04X}",
                ) from e

            write_log.rows_written += 1
            for cell in row:
                if cell.value.is_empty:
                    continue
                write_log.cells_written += 1
                if cell.value.type is CellType.FORMULA:
                    formulas += 1

        sink.write(encoder.encode("", final=True))

        if formulas:
            emit_warning(
                write_log,
                WarningCodes.FORMULA_AS_TEXT,
                f"{formulas} formula cell(s) written as expression text",
                sheet=sheet.name,
            )

        logger.debug(f"CSV sheet written: {sheet.name} ({write_log.rows_written} rows)")

    def render_row(self, row: Row) -> str:
        """행 → 한 줄 (line_terminator 포함)."""
        delimiter = self.config.delimiter
        fields: list[str] = []
        for cell in row:
            # 희소 행: 빈칸을 빈 필드로 채움
            while len(fields) < cell.column:
                fields.append("")
            fields.append(encode_field(cell.value.render_text(), delimiter))
        return delimiter.join(fields) + self.config.line_terminator

    def _select_sheet(self, model: Model, write_log: WriteLog) -> Sheet:
        if isinstance(model, Sheet):
            return model

        sheets = model.sheets
        if not sheets:
            raise ModelConstructionError(
                ErrorCodes.WORKBOOK_EMPTY,
                error="workbook must contain at least one sheet",
            )
        if len(sheets) > 1:
            skipped = [s.name for s in sheets[1:]]
            emit_warning(
                write_log,
                WarningCodes.SHEETS_SKIPPED,
                f"CSV holds one sheet; skipped: {', '.join(skipped)}",
                sheet=sheets[0].name,
            )
        return sheets[0]


def render_csv(
    model: Model,
    sink: Any,
    config: WriterConfig | None = None,
) -> WriteLog:
    """CSV 문서 생성 (간편 함수)."""
    return CsvRenderer(config).render(model, sink)
