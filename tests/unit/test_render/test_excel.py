"""
test_excel.py - XLSX 렌더러 테스트

검증:
- 쓰기 → openpyxl로 다시 읽기 = 원래 값
- 스타일 중복 제거 (N행이 같은 스타일 → 테이블 항목 1개)
- 동일 모델 = 동일 바이트
- 포맷 한계: 최대 행까지 성공, 한 행 더 → CapacityExceededError
- 표현 불가 값 → EncodingError (잘라내지 않음)
- password → 암호화 컨테이너, 복호화하면 같은 워크북
"""

import hashlib
from datetime import date, datetime
from decimal import Decimal
from io import BytesIO
from pathlib import Path

import msoffcrypto
import pytest
from openpyxl import load_workbook

from src.core.config import WriterConfig
from src.domain.cells import CellValue
from src.domain.errors import (
    CapacityExceededError,
    EncodingError,
    ErrorCodes,
    ModelConstructionError,
)
from src.domain.model import Row, Sheet, Workbook
from src.domain.styles import (
    HEADER_STYLE,
    Border,
    Color,
    NumberFormats,
    StyleDescriptor,
    TextAlign,
)
from src.render.codec import CellKind, EncodedSheet, SharedStringPool, StyleTable
from src.render.excel import XlsxRenderer, render_xlsx

# =============================================================================
# Fixtures
# =============================================================================


class RecordingCodec:
    """codec 경계로 넘어온 논리 구조를 기록하는 가짜 codec."""

    def __init__(self) -> None:
        self.sheets: list[dict] = []
        self.styles: StyleTable | None = None
        self.shared_strings: SharedStringPool | None = None

    def write_sheet(
        self,
        sheet: EncodedSheet,
        styles: StyleTable,
        shared_strings: SharedStringPool,
    ) -> None:
        self.sheets.append(
            {
                "name": sheet.name,
                "column_widths": dict(sheet.column_widths),
                "rows": list(sheet.rows),
            }
        )
        self.styles = styles
        self.shared_strings = shared_strings

    def save(self, sink) -> None:
        sink.write(b"recorded")


class ExplodingCodec(RecordingCodec):
    def save(self, sink) -> None:
        raise RuntimeError("codec crashed")


@pytest.fixture
def codec() -> RecordingCodec:
    return RecordingCodec()


@pytest.fixture
def recording_renderer(codec: RecordingCodec) -> XlsxRenderer:
    return XlsxRenderer(codec_factory=lambda config: codec)


def _read_back(data: bytes):
    return load_workbook(BytesIO(data))


def _single_sheet(*rows: list) -> Workbook:
    workbook = Workbook()
    sheet = workbook.add_sheet("Data")
    for values in rows:
        sheet.append_row(values)
    return workbook


# =============================================================================
# 읽기 검증 (openpyxl)
# =============================================================================


class TestXlsxRoundTrip:
    """쓰기 → 다시 읽기."""

    def test_report_values(self, report_workbook: Workbook):
        ws = _read_back(XlsxRenderer().to_bytes(report_workbook))["Report"]

        assert [c.value for c in ws[1]] == ["Name", "Amount", "Date"]
        assert ws["A2"].value == "Alice"
        assert ws["B2"].value == pytest.approx(12.5)
        assert ws["C2"].value == datetime(2025, 1, 15)
        assert ws["A3"].value == "Bob"
        assert ws["B3"].value == 7
        assert ws["C3"].value is None

    def test_header_bold(self, report_workbook: Workbook):
        ws = _read_back(XlsxRenderer().to_bytes(report_workbook))["Report"]

        assert ws["A1"].font.bold is True
        assert ws["A2"].font.bold is False

    def test_number_formats_from_type(self, report_workbook: Workbook):
        ws = _read_back(XlsxRenderer().to_bytes(report_workbook))["Report"]

        assert ws["B2"].number_format == "0.00"
        assert ws["C2"].number_format == "yyyy-mm-dd"
        assert ws["B3"].number_format == "General"

    def test_configured_number_formats(self):
        workbook = _single_sheet([date(2025, 1, 15), datetime(2025, 1, 15, 9, 30)])
        config = WriterConfig(
            number_formats=NumberFormats(date="dd/mm/yyyy", datetime="dd/mm/yyyy hh:mm")
        )

        ws = _read_back(XlsxRenderer(config).to_bytes(workbook))["Data"]

        assert ws["A1"].number_format == "dd/mm/yyyy"
        assert ws["B1"].number_format == "dd/mm/yyyy hh:mm"
        assert ws["B1"].value == datetime(2025, 1, 15, 9, 30)

    def test_all_semantic_types(self):
        workbook = _single_sheet(
            [
                "text",
                42,
                Decimal("3.25"),
                True,
                datetime(2024, 2, 29, 23, 59, 59),
                CellValue.formula("SUM(B1:C1)"),
            ]
        )

        ws = _read_back(XlsxRenderer().to_bytes(workbook))["Data"]

        assert ws["A1"].value == "text"
        assert ws["B1"].value == 42
        assert ws["C1"].value == pytest.approx(3.25)
        assert ws["D1"].value is True
        assert ws["E1"].value == datetime(2024, 2, 29, 23, 59, 59)
        assert ws["F1"].value == "=SUM(B1:C1)"
        assert ws["F1"].data_type == "f"

    def test_equals_text_stays_text(self):
        """'='로 시작하는 텍스트는 수식이 아님."""
        ws = _read_back(XlsxRenderer().to_bytes(_single_sheet(["=1+1", "#N/A"])))["Data"]

        assert ws["A1"].value == "=1+1"
        assert ws["A1"].data_type == "s"
        assert ws["B1"].value == "#N/A"
        assert ws["B1"].data_type == "s"

    def test_formula_with_leading_equals_not_doubled(self):
        workbook = _single_sheet([1, CellValue.formula("=A1*2")])

        ws = _read_back(XlsxRenderer().to_bytes(workbook))["Data"]

        assert ws["B1"].value == "=A1*2"

    def test_sheet_order(self, two_sheet_workbook: Workbook):
        wb = _read_back(XlsxRenderer().to_bytes(two_sheet_workbook))

        assert wb.sheetnames == ["Report", "Notes"]
        assert wb["Notes"]["A2"].value == "second note"

    def test_sparse_row(self):
        workbook = Workbook()
        workbook.add_sheet("Data").append(Row.from_mapping({0: "a", 3: "b"}))

        ws = _read_back(XlsxRenderer().to_bytes(workbook))["Data"]

        assert ws["A1"].value == "a"
        assert ws["B1"].value is None
        assert ws["D1"].value == "b"

    def test_sheet_as_model(self, report_sheet: Sheet):
        wb = _read_back(XlsxRenderer().to_bytes(report_sheet))

        assert wb.sheetnames == ["Report"]

    def test_visual_style(self):
        style = StyleDescriptor(
            bold=True,
            italic=True,
            font_color=Color.RED,
            background_color=Color.YELLOW,
            border=Border.THIN,
            horizontal_alignment=TextAlign.CENTER,
        )
        workbook = Workbook()
        workbook.add_sheet("Data").append_row(["styled"], style=style)

        cell = _read_back(XlsxRenderer().to_bytes(workbook))["Data"]["A1"]

        assert cell.font.bold is True
        assert cell.font.italic is True
        assert cell.font.color.rgb == "FFFF0000"
        assert cell.fill.fill_type == "solid"
        assert cell.fill.fgColor.rgb == "FFFFFF00"
        assert cell.border.left.style == "thin"
        assert cell.border.bottom.style == "thin"
        assert cell.alignment.horizontal == "center"

    def test_column_widths(self):
        workbook = Workbook()
        sheet = workbook.add_sheet("Data")
        sheet.set_column_width(0, 20)
        sheet.append_row(["a", "b"], style=StyleDescriptor(column_width=15))

        ws = _read_back(XlsxRenderer().to_bytes(workbook))["Data"]

        # ColumnSpec 너비 우선, 없으면 셀 스타일 힌트
        assert ws.column_dimensions["A"].width == 20
        assert ws.column_dimensions["B"].width == 15

    def test_text_at_max_length(self):
        text = "x" * 32_767

        ws = _read_back(XlsxRenderer().to_bytes(_single_sheet([text])))["Data"]

        assert ws["A1"].value == text


# =============================================================================
# 논리 구조 검증 (가짜 codec)
# =============================================================================


class TestStyleTable:
    """스타일 중복 제거."""

    def test_identical_styles_deduplicated(
        self,
        recording_renderer: XlsxRenderer,
        codec: RecordingCodec,
    ):
        """별도로 생성한 같은 스타일 100개 → 항목 1개."""
        workbook = Workbook()
        sheet = workbook.add_sheet("Data")
        for i in range(100):
            sheet.append_row([f"row {i}"], style=StyleDescriptor(bold=True, font_color="FF0000"))

        recording_renderer.to_bytes(workbook)

        assert len(codec.styles) == 1
        indices = {row.cells[0].style_index for row in codec.sheets[0]["rows"]}
        assert indices == {0}

    def test_report_style_entries(
        self,
        recording_renderer: XlsxRenderer,
        codec: RecordingCodec,
        report_workbook: Workbook,
    ):
        """헤더(굵게), 소수 형식, 날짜 형식 → 처음 본 순서대로 3개."""
        recording_renderer.to_bytes(report_workbook)

        assert list(codec.styles) == [
            HEADER_STYLE,
            StyleDescriptor(number_format="0.00"),
            StyleDescriptor(number_format="yyyy-mm-dd"),
        ]

    def test_unstyled_general_cells_have_no_style(
        self,
        recording_renderer: XlsxRenderer,
        codec: RecordingCodec,
    ):
        recording_renderer.to_bytes(_single_sheet(["a", 1, True]))

        assert len(codec.styles) == 0
        assert all(c.style_index is None for c in codec.sheets[0]["rows"][0].cells)

    def test_style_precedence(
        self,
        recording_renderer: XlsxRenderer,
        codec: RecordingCodec,
    ):
        """셀 > 행 > 컬럼 기본값."""
        cell_style = StyleDescriptor(bold=True)
        row_style = StyleDescriptor(italic=True)
        column_style = StyleDescriptor(font_color=Color.BLUE)

        workbook = Workbook()
        sheet = workbook.add_sheet("Data")
        sheet.set_column_style(0, column_style)
        sheet.set_column_style(1, column_style)
        row = Row(style=row_style)
        row.add(0, "cell", cell_style)
        row.add(1, "row")
        sheet.append(row)
        sheet.append_row(["column"])

        recording_renderer.to_bytes(workbook)

        rows = codec.sheets[0]["rows"]
        styles = codec.styles
        assert styles[rows[0].cells[0].style_index] == cell_style
        assert styles[rows[0].cells[1].style_index] == row_style
        assert styles[rows[1].cells[0].style_index] == column_style

    def test_styled_empty_cell_is_blank(
        self,
        recording_renderer: XlsxRenderer,
        codec: RecordingCodec,
    ):
        workbook = Workbook()
        row = Row()
        row.add(0, None, HEADER_STYLE)
        workbook.add_sheet("Data").append(row)

        write_log = recording_renderer.render(workbook, BytesIO())

        cell = codec.sheets[0]["rows"][0].cells[0]
        assert cell.kind is CellKind.BLANK
        assert write_log.cells_written == 0

    def test_table_fresh_per_write(self, report_workbook: Workbook):
        """쓰기 호출마다 새 테이블."""
        codecs: list[RecordingCodec] = []

        def factory(config):
            codecs.append(RecordingCodec())
            return codecs[-1]

        renderer = XlsxRenderer(codec_factory=factory)
        renderer.to_bytes(report_workbook)
        renderer.to_bytes(report_workbook)

        assert codecs[0].styles is not codecs[1].styles
        assert list(codecs[0].styles) == list(codecs[1].styles)


class TestSharedStrings:
    """반복 텍스트 pool."""

    def test_repeated_text_pooled(
        self,
        recording_renderer: XlsxRenderer,
        codec: RecordingCodec,
    ):
        recording_renderer.to_bytes(_single_sheet(["x", "y"], ["x"], ["x", "z"]))

        assert list(codec.shared_strings) == ["x"]
        first_row = codec.sheets[0]["rows"][0]
        assert first_row.cells[0].kind is CellKind.SHARED_STRING
        assert first_row.cells[0].value == 0
        assert first_row.cells[1].kind is CellKind.STRING
        assert first_row.cells[1].value == "y"

    def test_threshold_configurable(self, codec: RecordingCodec):
        renderer = XlsxRenderer(
            WriterConfig(shared_string_threshold=1),
            codec_factory=lambda config: codec,
        )

        renderer.to_bytes(_single_sheet(["b", "a"], ["b"]))

        # 처음 본 순서
        assert list(codec.shared_strings) == ["b", "a"]

    def test_pool_spans_sheets(
        self,
        recording_renderer: XlsxRenderer,
        codec: RecordingCodec,
    ):
        workbook = Workbook()
        workbook.add_sheet("A").append_row(["shared"])
        workbook.add_sheet("B").append_row(["shared"])

        recording_renderer.to_bytes(workbook)

        assert "shared" in codec.shared_strings

    def test_threshold_does_not_change_bytes(self):
        """openpyxl은 inline string으로 기록 → threshold는 논리 구조에만 영향."""
        workbook = _single_sheet(["x", "y"], ["x"], ["x", "z"])

        pooled = XlsxRenderer(WriterConfig(shared_string_threshold=1)).to_bytes(workbook)
        unpooled = XlsxRenderer(WriterConfig(shared_string_threshold=1000)).to_bytes(workbook)

        assert pooled == unpooled


# =============================================================================
# 결정성 / WriteLog
# =============================================================================


class TestDeterminism:

    def test_same_model_same_bytes(self, report_workbook: Workbook):
        first = XlsxRenderer().to_bytes(report_workbook)
        second = XlsxRenderer().to_bytes(report_workbook)

        assert first == second

    def test_path_and_bytes_identical(self, tmp_path: Path, report_workbook: Workbook):
        renderer = XlsxRenderer()
        path = renderer.to_path(report_workbook, tmp_path / "report.xlsx")

        assert path.read_bytes() == renderer.to_bytes(report_workbook)

    def test_document_timestamp(self, report_workbook: Workbook):
        stamp = datetime(2024, 6, 1, 12, 0)
        wb = _read_back(XlsxRenderer(WriterConfig(document_timestamp=stamp)).to_bytes(report_workbook))

        assert wb.properties.created == stamp
        assert wb.properties.modified == stamp


class TestWriteLog:

    def test_counts_and_hash(self, report_workbook: Workbook):
        buffer = BytesIO()

        write_log = XlsxRenderer().render(report_workbook, buffer)

        assert write_log.succeeded
        assert write_log.format == "xlsx"
        assert write_log.sheets == ["Report"]
        assert write_log.rows_written == 3
        assert write_log.cells_written == 8
        assert write_log.bytes_written == len(buffer.getvalue())
        assert write_log.sha256 == hashlib.sha256(buffer.getvalue()).hexdigest()

    def test_render_xlsx_helper(self, tmp_path: Path, report_workbook: Workbook):
        write_log = render_xlsx(report_workbook, tmp_path / "report.xlsx")

        assert write_log.succeeded
        assert (tmp_path / "report.xlsx").exists()


class TestPassword:
    """워크북 암호화 (password)."""

    def _decrypt(self, data: bytes, password: str) -> bytes:
        office = msoffcrypto.OfficeFile(BytesIO(data))
        office.load_key(password=password, verify_password=True)
        out = BytesIO()
        office.decrypt(out)
        return out.getvalue()

    def test_password_argument(self, report_workbook: Workbook):
        data = XlsxRenderer(password="secret").to_bytes(report_workbook)

        assert data.startswith(b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1")
        ws = _read_back(self._decrypt(data, "secret"))["Report"]
        assert ws["A2"].value == "Alice"
        assert ws["B2"].value == 12.5

    def test_password_from_config(self, tmp_path: Path, report_workbook: Workbook):
        renderer = XlsxRenderer(WriterConfig(password="secret"))

        path = renderer.to_path(report_workbook, tmp_path / "locked.xlsx")

        assert msoffcrypto.OfficeFile(BytesIO(path.read_bytes())).is_encrypted()
        assert renderer.last_write_log.succeeded
        assert renderer.last_write_log.bytes_written == path.stat().st_size

    def test_argument_overrides_config(self):
        renderer = XlsxRenderer(WriterConfig(delimiter=";", password="old"), password="new")

        assert renderer.config.password == "new"
        assert renderer.config.delimiter == ";"

    def test_no_password_is_plain_zip(self, report_workbook: Workbook):
        assert XlsxRenderer().to_bytes(report_workbook).startswith(b"PK")

    def test_password_not_logged(
        self,
        report_workbook: Workbook,
        caplog: pytest.LogCaptureFixture,
    ):
        with caplog.at_level("DEBUG"):
            XlsxRenderer(password="hunter2").to_bytes(report_workbook)

        assert "hunter2" not in caplog.text
        assert "workbook encrypted" in caplog.text


# =============================================================================
# 실패 케이스
# =============================================================================


class TestCapacity:
    """writer 단계 용량 한계."""

    def test_max_rows_succeeds(self, small_config: WriterConfig):
        workbook = _single_sheet([1], [2], [3])

        data = XlsxRenderer(small_config).to_bytes(workbook)

        assert _read_back(data)["Data"]["A3"].value == 3

    def test_one_more_row_fails(self, small_config: WriterConfig):
        workbook = _single_sheet([1], [2], [3], [4])

        with pytest.raises(CapacityExceededError) as exc_info:
            XlsxRenderer(small_config).to_bytes(workbook)

        assert exc_info.value.code == ErrorCodes.ROW_LIMIT_EXCEEDED
        assert exc_info.value.context == {"sheet": "Data", "row": 3, "limit": 3}
        # 모델은 그대로
        assert workbook.sheet("Data").row_count == 4

    def test_column_limit(self, small_config: WriterConfig):
        workbook = Workbook()
        workbook.add_sheet("Data").append(Row.from_mapping({4: "x"}))

        with pytest.raises(CapacityExceededError) as exc_info:
            XlsxRenderer(small_config).to_bytes(workbook)

        assert exc_info.value.code == ErrorCodes.COLUMN_LIMIT_EXCEEDED
        assert exc_info.value.context["column"] == 4

    def test_column_spec_beyond_limit(self, small_config: WriterConfig):
        workbook = Workbook()
        workbook.add_sheet("Data").set_column_width(10, 12)

        with pytest.raises(CapacityExceededError):
            XlsxRenderer(small_config).to_bytes(workbook)


class TestEncodingErrors:
    """표현 불가 값."""

    def test_text_too_long(self):
        with pytest.raises(EncodingError) as exc_info:
            XlsxRenderer().to_bytes(_single_sheet(["ok", "x" * 32_768]))

        assert exc_info.value.code == ErrorCodes.TEXT_TOO_LONG
        assert exc_info.value.context["sheet"] == "Data"
        assert exc_info.value.context["row"] == 0
        assert exc_info.value.context["column"] == 1

    def test_illegal_character(self):
        with pytest.raises(EncodingError) as exc_info:
            XlsxRenderer().to_bytes(_single_sheet(["bell\x07"]))

        assert exc_info.value.code == ErrorCodes.ILLEGAL_CHARACTER
        assert exc_info.value.context["character"] == "U+0007"

    def test_tab_and_newline_allowed(self):
        ws = _read_back(XlsxRenderer().to_bytes(_single_sheet(["a\tb\nc"])))["Data"]

        assert ws["A1"].value == "a\tb\nc"

    def test_formula_too_long(self):
        expression = "+".join(["A1"] * 3000)

        with pytest.raises(EncodingError) as exc_info:
            XlsxRenderer().to_bytes(_single_sheet([CellValue.formula(expression)]))

        assert exc_info.value.code == ErrorCodes.FORMULA_TOO_LONG

    @pytest.mark.parametrize("day", [date(1899, 12, 31), date(1, 1, 1)])
    def test_date_out_of_range(self, day: date):
        with pytest.raises(EncodingError) as exc_info:
            XlsxRenderer().to_bytes(_single_sheet([day]))

        assert exc_info.value.code == ErrorCodes.DATE_OUT_OF_RANGE

    def test_unsafe_integer(self):
        with pytest.raises(EncodingError) as exc_info:
            XlsxRenderer().to_bytes(_single_sheet([2**53 + 1]))

        assert exc_info.value.code == ErrorCodes.NUMBER_OUT_OF_RANGE

    def test_safe_integer_boundary(self):
        ws = _read_back(XlsxRenderer().to_bytes(_single_sheet([2**53])))["Data"]

        assert ws["A1"].value == 2**53

    def test_decimal_beyond_double(self):
        with pytest.raises(EncodingError) as exc_info:
            XlsxRenderer().to_bytes(_single_sheet([Decimal("1e400")]))

        assert exc_info.value.code == ErrorCodes.NUMBER_OUT_OF_RANGE

    def test_failure_keeps_existing_file(self, tmp_path: Path):
        target = tmp_path / "report.xlsx"
        target.write_bytes(b"previous")

        with pytest.raises(EncodingError):
            XlsxRenderer().to_path(_single_sheet(["x" * 40_000]), target)

        assert target.read_bytes() == b"previous"
        assert [p.name for p in tmp_path.iterdir()] == ["report.xlsx"]


class TestRenderFailures:

    def test_empty_workbook(self):
        renderer = XlsxRenderer()

        with pytest.raises(ModelConstructionError) as exc_info:
            renderer.to_bytes(Workbook())

        assert exc_info.value.code == ErrorCodes.WORKBOOK_EMPTY
        assert renderer.last_write_log.result == "failed"
        assert renderer.last_write_log.error_code == ErrorCodes.WORKBOOK_EMPTY

    def test_unexpected_codec_error_wrapped(self, report_workbook: Workbook):
        renderer = XlsxRenderer(codec_factory=lambda config: ExplodingCodec())

        with pytest.raises(EncodingError) as exc_info:
            renderer.to_bytes(report_workbook)

        assert exc_info.value.code == ErrorCodes.RENDER_FAILED
        assert "codec crashed" in exc_info.value.context["error"]
        assert isinstance(exc_info.value.__cause__, RuntimeError)

    def test_not_a_model(self):
        with pytest.raises(ModelConstructionError) as exc_info:
            XlsxRenderer().to_bytes([["a"]])

        assert exc_info.value.code == ErrorCodes.UNSUPPORTED_VALUE
