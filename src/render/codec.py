"""
Container codec 경계: 논리 구조 → XLSX 패키지 (openpyxl).

Spreadsheet Writer의 책임은 논리 구조까지:
- EncodedSheet: 시트 이름, 컬럼 너비, 인코딩된 행/셀
- StyleTable: 인덱스 → Style Descriptor (중복 없음)
- SharedStringPool: 인덱스 → 반복 텍스트

압축/매니페스트/관계 연결은 codec(openpyxl)에 위임한다.
ContainerCodec은 좁은 인터페이스이므로 테스트에서 가짜 codec으로 교체 가능.
"""

from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from io import BytesIO
from typing import Any, Protocol
from zipfile import ZIP_DEFLATED, ZipFile, ZipInfo

from msoffcrypto.exceptions import EncryptionError
from msoffcrypto.format.ooxml import OOXMLFile
from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter
from openpyxl.writer.excel import ExcelWriter

from src.core.config import WriterConfig
from src.core.sinks import TrackingSink
from src.domain.errors import EncodingError, ErrorCodes
from src.domain.styles import Border as BorderStyle
from src.domain.styles import StyleDescriptor, style_fields

# zip 엔트리 타임스탬프 하한 (ZIP 포맷 제약)
_ZIP_MIN_DATE_TIME = (1980, 1, 1, 0, 0, 0)


# =============================================================================
# Logical Structures
# =============================================================================

class CellKind(str, Enum):
    """인코딩된 셀 종류 (codec이 소비)."""
    NUMBER = "number"
    BOOL = "bool"
    STRING = "string"  # 인라인 텍스트 (pool 미등록)
    SHARED_STRING = "shared_string"  # value = pool 인덱스
    FORMULA = "formula"  # value = "=" 로 시작하는 식
    BLANK = "blank"  # 값 없이 스타일만


@dataclass(frozen=True)
class EncodedCell:
    column: int
    kind: CellKind
    value: Any = None
    style_index: int | None = None


@dataclass(frozen=True)
class EncodedRow:
    index: int
    cells: tuple[EncodedCell, ...] = ()


@dataclass
class EncodedSheet:
    """
    codec에 넘기는 시트.

    rows는 지연 이터러블: codec이 소비하는 동안 행 단위로 인코딩된다.
    """
    name: str
    column_widths: dict[int, float] = field(default_factory=dict)
    rows: Iterable[EncodedRow] = ()


class StyleTable:
    """
    내용 주소 스타일 테이블: StyleDescriptor → 정수 인덱스.

    - 처음 본 순서대로 인덱스 부여 (안정적)
    - 구조적으로 같은 기술자는 한 항목만 (중복 없음)
    - 쓰기 호출마다 새로 생성 (전역 캐시 없음)
    """

    def __init__(self) -> None:
        self._entries: list[StyleDescriptor] = []
        self._index: dict[StyleDescriptor, int] = {}

    def intern(self, style: StyleDescriptor) -> int:
        index = self._index.get(style)
        if index is None:
            index = len(self._entries)
            self._entries.append(style)
            self._index[style] = index
        return index

    def index_of(self, style: StyleDescriptor) -> int:
        return self._index[style]

    def __getitem__(self, index: int) -> StyleDescriptor:
        return self._entries[index]

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[StyleDescriptor]:
        return iter(self._entries)

    def to_list(self) -> list[dict[str, Any]]:
        """디버그/로그용."""
        return [style_fields(s) for s in self._entries]


class SharedStringPool:
    """
    반복 텍스트 pool.

    threshold 이상 등장한 텍스트만 등록 (처음 본 순서).
    """

    def __init__(self, strings: Iterable[str] = ()) -> None:
        self._strings: list[str] = []
        self._index: dict[str, int] = {}
        for text in strings:
            self.add(text)

    @classmethod
    def from_counts(cls, counts: dict[str, int], threshold: int) -> "SharedStringPool":
        # dict는 삽입 순서 유지 → 처음 본 순서
        return cls(text for text, count in counts.items() if count >= threshold)

    def add(self, text: str) -> int:
        index = self._index.get(text)
        if index is None:
            index = len(self._strings)
            self._strings.append(text)
            self._index[text] = index
        return index

    def get(self, text: str) -> int | None:
        return self._index.get(text)

    def __getitem__(self, index: int) -> str:
        return self._strings[index]

    def __len__(self) -> int:
        return len(self._strings)

    def __iter__(self) -> Iterator[str]:
        return iter(self._strings)

    def __contains__(self, text: object) -> bool:
        return text in self._index


class ContainerCodec(Protocol):
    """XLSX 패키징 codec 인터페이스."""

    def write_sheet(
        self,
        sheet: EncodedSheet,
        styles: StyleTable,
        shared_strings: SharedStringPool,
    ) -> None:
        ...

    def save(self, sink: TrackingSink) -> None:
        ...


# =============================================================================
# openpyxl Codec
# =============================================================================

@dataclass(frozen=True)
class _CellFormat:
    font: Font | None
    fill: PatternFill | None
    border: Border | None
    alignment: Alignment | None
    number_format: str | None


class OpenpyxlCodec:
    """
    openpyxl 기반 codec.

    - openpyxl 3.1은 텍스트를 inline string으로 기록하므로 STRING/SHARED_STRING
      모두 같은 텍스트 셀이 된다 (pool은 codec 경계의 논리 구조로만 쓰임)
    - 문서 속성/zip 엔트리 타임스탬프를 고정해 동일 입력 = 동일 바이트
    - config.password가 있으면 패키지를 암호화해 OLE compound file로 기록
      (msoffcrypto, 무작위 salt이므로 이 경우 바이트는 매번 다름)
    """

    def __init__(self, config: WriterConfig | None = None) -> None:
        self.config = config or WriterConfig()
        self._wb = Workbook()
        # 기본 생성 시트 제거 (시트는 모델 순서대로만 생성)
        self._wb.remove(self._wb.active)
        self._wb.properties.created = self.config.document_timestamp
        self._wb.properties.modified = self.config.document_timestamp
        self._formats: dict[int, _CellFormat] = {}

    def write_sheet(
        self,
        sheet: EncodedSheet,
        styles: StyleTable,
        shared_strings: SharedStringPool,
    ) -> None:
        ws = self._wb.create_sheet(title=sheet.name)

        for column, width in sorted(sheet.column_widths.items()):
            ws.column_dimensions[get_column_letter(column + 1)].width = width

        for row in sheet.rows:
            for encoded in row.cells:
                cell = ws.cell(row=row.index + 1, column=encoded.column + 1)
                self._set_value(cell, encoded, shared_strings)
                if encoded.style_index is not None:
                    self._apply_format(cell, encoded.style_index, styles)

    def _set_value(
        self,
        cell: Any,
        encoded: EncodedCell,
        shared_strings: SharedStringPool,
    ) -> None:
        if encoded.kind is CellKind.BLANK:
            return
        if encoded.kind is CellKind.SHARED_STRING:
            cell.value = shared_strings[encoded.value]
            # "="/"#N/A" 등으로 시작해도 텍스트로 유지
            cell.data_type = "s"
        elif encoded.kind is CellKind.STRING:
            cell.value = encoded.value
            cell.data_type = "s"
        elif encoded.kind is CellKind.FORMULA:
            cell.value = encoded.value
            cell.data_type = "f"
        elif encoded.kind in (CellKind.NUMBER, CellKind.BOOL):
            cell.value = encoded.value
        else:
            raise ValueError(f"Unsupported encoded cell kind: {encoded.kind}")

    def _apply_format(self, cell: Any, style_index: int, styles: StyleTable) -> None:
        cell_format = self._formats.get(style_index)
        if cell_format is None:
            cell_format = _to_openpyxl_format(styles[style_index])
            self._formats[style_index] = cell_format

        if cell_format.font is not None:
            cell.font = cell_format.font
        if cell_format.fill is not None:
            cell.fill = cell_format.fill
        if cell_format.border is not None:
            cell.border = cell_format.border
        if cell_format.alignment is not None:
            cell.alignment = cell_format.alignment
        if cell_format.number_format is not None:
            cell.number_format = cell_format.number_format

    def save(self, sink: TrackingSink) -> None:
        """
        패키징 후 sink에 기록.

        save_workbook()은 modified를 현재 시각으로 덮어쓰므로 ExcelWriter를 직접 사용.
        """
        buffer = BytesIO()
        archive = ZipFile(buffer, "w", ZIP_DEFLATED, allowZip64=True)
        ExcelWriter(self._wb, archive).save()
        package = _normalize_archive(buffer.getvalue(), self.config.document_timestamp)

        if self.config.password is not None:
            package = encrypt_package(package, self.config.password)

        sink.write(package)


def encrypt_package(package: bytes, password: str) -> bytes:
    """
    XLSX 패키지 → ECMA-376 agile 암호화 OLE compound file.

    Raises:
        EncodingError: ENCRYPTION_FAILED
    """
    out = BytesIO()
    try:
        OOXMLFile(BytesIO(package)).encrypt(password, out)
    except EncryptionError as e:
        raise EncodingError(
            ErrorCodes.ENCRYPTION_FAILED,
            error=str(e),
        ) from e
    return out.getvalue()


def _to_openpyxl_format(style: StyleDescriptor) -> _CellFormat:
    """StyleDescriptor → openpyxl 스타일 객체."""
    font = None
    if style.bold or style.italic or style.font_color:
        font = Font(bold=style.bold, italic=style.italic, color=style.font_color)

    fill = None
    if style.background_color:
        fill = PatternFill(fill_type="solid", fgColor=style.background_color)

    border = None
    if style.border is not None and not style.border.is_empty:
        border = Border(
            left=_side(style.border.left),
            right=_side(style.border.right),
            top=_side(style.border.top),
            bottom=_side(style.border.bottom),
        )

    alignment = None
    if style.horizontal_alignment is not None:
        alignment = Alignment(horizontal=style.horizontal_alignment.value)

    return _CellFormat(
        font=font,
        fill=fill,
        border=border,
        alignment=alignment,
        number_format=style.number_format,
    )


def _side(border: BorderStyle) -> Side:
    if border is BorderStyle.NONE:
        return Side(style=None)
    return Side(style=border.value)


def _normalize_archive(data: bytes, timestamp: datetime) -> bytes:
    """
    zip 엔트리 재포장: 타임스탬프/권한 고정.

    엔트리 순서와 내용은 그대로 유지.
    """
    date_time = max(timestamp.timetuple()[:6], _ZIP_MIN_DATE_TIME)
    out = BytesIO()
    with ZipFile(BytesIO(data)) as source, ZipFile(
        out, "w", ZIP_DEFLATED, allowZip64=True
    ) as target:
        for info in source.infolist():
            entry = ZipInfo(info.filename, date_time=date_time)
            entry.compress_type = ZIP_DEFLATED
            entry.external_attr = 0o644 << 16
            target.writestr(entry, source.read(info.filename))
    return out.getvalue()
