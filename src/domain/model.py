"""
Workbook Model: Workbook → Sheet → Row → Cell.

규칙:
- 모든 변경 연산은 즉시 검증 (fail-fast): 중복 시트 이름, 음수 컬럼 인덱스,
  설정된 최대 행/열 초과 → 쓰기 시점으로 미루지 않음
- 시트에 추가된 행은 그 시트에 묶임: 이후 row.add/row.set도 시트 한계로 검사
- 워크북 한계는 add_sheet로 들어온 Sheet 인스턴스에도 (더 좁은 쪽으로) 적용
- 행 추가는 amortized O(1), (row, col) 접근은 인덱스 조회 (이전 행 재스캔 없음)
- 모델 자체에는 기본 한계 없음. 포맷 한계는 writer가 강제
- 내부 동기화 없음: 쓰기 도중 같은 모델을 변경하는 것은 호출자 책임 (정의되지 않은 동작).
  서로 다른 모델은 별도 스레드에서 동시에 만들고 써도 공유 상태 없음
"""

from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass
from typing import Any

from src.domain.cells import CellValue
from src.domain.constants import SHEET_NAME_FORBIDDEN_CHARS, SHEET_NAME_MAX_LENGTH
from src.domain.errors import (
    CapacityExceededError,
    ErrorCodes,
    ModelConstructionError,
)
from src.domain.styles import HEADER_STYLE, StyleDescriptor, validate_column_width

# =============================================================================
# Cell / Row
# =============================================================================


@dataclass(frozen=True)
class Cell:
    """(컬럼 인덱스, 값, 스타일) 트리플."""
    column: int
    value: CellValue
    style: StyleDescriptor | None = None


def _check_column(column: Any) -> int:
    if isinstance(column, bool) or not isinstance(column, int) or column < 0:
        raise ModelConstructionError(
            ErrorCodes.INVALID_COLUMN_INDEX,
            column=column,
            error="column index must be a non-negative int",
        )
    return column


def _tighter(current: int | None, other: int | None) -> int | None:
    if current is None:
        return other
    if other is None:
        return current
    return min(current, other)


def _check_style(style: Any) -> StyleDescriptor | None:
    if style is not None and not isinstance(style, StyleDescriptor):
        raise ModelConstructionError(
            ErrorCodes.INVALID_STYLE,
            value=repr(style),
            error="style must be a StyleDescriptor",
        )
    return style


class Row:
    """
    컬럼 인덱스 → Cell 의 희소 행.

    - 컬럼 인덱스는 0부터, 빈칸 허용 (희소 행은 빈 셀로 렌더링)
    - 한 행 안에서 중복 인덱스는 생성 에러 (add), 교체는 set으로 명시
    - style: 셀 스타일이 없는 셀에 적용되는 행 스타일
    - 시트에 추가된 뒤의 add/set도 시트의 max_columns 검사를 거친다
    """

    __slots__ = ("_cells", "_max_column", "_sheet", "style")

    def __init__(self, style: StyleDescriptor | None = None) -> None:
        self._cells: dict[int, Cell] = {}
        self._max_column = -1
        self._sheet: "Sheet | None" = None
        self.style = _check_style(style)

    @classmethod
    def from_values(
        cls,
        values: Iterable[Any],
        style: StyleDescriptor | None = None,
    ) -> "Row":
        """연속 값 → 0번 컬럼부터 채운 행. None은 빈 셀 (저장하지 않음)."""
        row = cls(style=style)
        for column, value in enumerate(values):
            if value is None:
                continue
            row.add(column, value)
        return row

    @classmethod
    def from_mapping(
        cls,
        cells: Mapping[int, Any],
        style: StyleDescriptor | None = None,
    ) -> "Row":
        """{컬럼: 값} → 희소 행. 예: {0: "a", 3: "b"}."""
        row = cls(style=style)
        for column, value in cells.items():
            row.add(column, value)
        return row

    def add(
        self,
        column: int,
        value: Any,
        style: StyleDescriptor | None = None,
    ) -> Cell:
        """
        셀 추가.

        Raises:
            ModelConstructionError: INVALID_COLUMN_INDEX, DUPLICATE_COLUMN
            CapacityExceededError: 소속 시트의 max_columns 초과
        """
        column = _check_column(column)
        if column in self._cells:
            raise ModelConstructionError(
                ErrorCodes.DUPLICATE_COLUMN,
                column=column,
            )
        return self._put(column, value, style)

    def set(
        self,
        column: int,
        value: Any,
        style: StyleDescriptor | None = None,
    ) -> Cell:
        """셀 설정 (기존 셀이 있으면 교체)."""
        column = _check_column(column)
        return self._put(column, value, style)

    def _put(self, column: int, value: Any, style: StyleDescriptor | None) -> Cell:
        cell = Cell(column, CellValue.of(value), _check_style(style))
        if self._sheet is not None:
            self._sheet._check_column_capacity(column)
        self._cells[column] = cell
        if column > self._max_column:
            self._max_column = column
        if self._sheet is not None:
            self._sheet._track_column(column)
        return cell

    def get(self, column: int) -> Cell | None:
        return self._cells.get(column)

    def value(self, column: int) -> CellValue:
        cell = self._cells.get(column)
        return cell.value if cell is not None else CellValue.empty()

    @property
    def max_column(self) -> int:
        """채워진 최대 컬럼 인덱스. 빈 행이면 -1."""
        return self._max_column

    def cells(self) -> list[Cell]:
        """컬럼 순서로 정렬된 셀 목록."""
        return [self._cells[c] for c in sorted(self._cells)]

    def __iter__(self) -> Iterator[Cell]:
        return iter(self.cells())

    def __len__(self) -> int:
        return len(self._cells)

    def __repr__(self) -> str:
        return f"Row(cells={len(self._cells)}, max_column={self._max_column})"


# =============================================================================
# Sheet
# =============================================================================


@dataclass(frozen=True)
class ColumnSpec:
    """컬럼 메타데이터: 너비(문자 단위), 기본 스타일."""
    width: float | None = None
    style: StyleDescriptor | None = None


def validate_sheet_name(name: Any) -> str:
    """
    시트 이름 검증.

    - 비어 있으면 안 됨 (공백만 있어도 안 됨)
    - 최대 31자
    - 금지 문자: [ ] : * ? / \\
    - 작은따옴표로 시작/끝나면 안 됨

    Raises:
        ModelConstructionError: INVALID_SHEET_NAME
    """
    if not isinstance(name, str) or not name.strip():
        raise ModelConstructionError(
            ErrorCodes.INVALID_SHEET_NAME,
            sheet=name,
            error="sheet name must not be blank",
        )
    if len(name) > SHEET_NAME_MAX_LENGTH:
        raise ModelConstructionError(
            ErrorCodes.INVALID_SHEET_NAME,
            sheet=name,
            error=f"sheet name must be at most {SHEET_NAME_MAX_LENGTH} characters",
        )
    forbidden = sorted(set(name) & SHEET_NAME_FORBIDDEN_CHARS)
    if forbidden:
        raise ModelConstructionError(
            ErrorCodes.INVALID_SHEET_NAME,
            sheet=name,
            error=f"sheet name contains forbidden characters: {''.join(forbidden)}",
        )
    if name.startswith("'") or name.endswith("'"):
        raise ModelConstructionError(
            ErrorCodes.INVALID_SHEET_NAME,
            sheet=name,
            error="sheet name must not start or end with an apostrophe",
        )
    return name


class Sheet:
    """
    이름 있는 행 목록 + 컬럼 메타데이터.

    Usage:
        sheet = Sheet("Report")
        sheet.append_header(["Name", "Amount", "Date"])
        sheet.append_row(["Alice", 12.5, date(2025, 1, 15)])
        sheet.set_column_width(0, 20)
    """

    def __init__(
        self,
        name: str,
        max_rows: int | None = None,
        max_columns: int | None = None,
    ) -> None:
        self.name = validate_sheet_name(name)
        self.max_rows = max_rows
        self.max_columns = max_columns
        self._rows: list[Row] = []
        self._columns: dict[int, ColumnSpec] = {}
        self._max_column = -1

    # =========================================================================
    # Mutations
    # =========================================================================

    def append(self, row: Row) -> Row:
        """
        행 추가 (amortized O(1)).

        추가된 행은 이 시트에 묶인다. 이후 row.add/row.set도 용량 검사 대상.

        Raises:
            ModelConstructionError: Row가 아니거나 이미 다른 시트(또는 이 시트)에 추가된 행
            CapacityExceededError: 설정된 max_rows/max_columns 초과
        """
        if not isinstance(row, Row):
            raise ModelConstructionError(
                ErrorCodes.UNSUPPORTED_VALUE,
                value=repr(row),
                error="append() expects a Row",
            )
        if row._sheet is not None:
            raise ModelConstructionError(
                ErrorCodes.UNSUPPORTED_VALUE,
                sheet=self.name,
                owner=row._sheet.name,
                error="row already belongs to a sheet",
            )
        self._check_capacity(len(self._rows), row.max_column)
        self._attach(row)
        self._track_column(row.max_column)
        return row

    def append_row(
        self,
        values: Iterable[Any],
        style: StyleDescriptor | None = None,
    ) -> Row:
        """값 목록을 새 행으로 추가. None은 빈 셀."""
        return self.append(Row.from_values(values, style=style))

    def append_header(
        self,
        titles: Iterable[str],
        style: StyleDescriptor | None = HEADER_STYLE,
    ) -> Row:
        """헤더 행 추가 (기본: 굵게)."""
        row = Row()
        for column, title in enumerate(titles):
            row.add(column, CellValue.text("" if title is None else title), style)
        return self.append(row)

    def append_lines(self, lines: Iterable[str]) -> None:
        """한 줄 = 한 행 (0번 컬럼 텍스트)."""
        for line in lines:
            if line is None:
                continue
            self.append(Row.from_values([CellValue.text(line)]))

    def set_cell(
        self,
        row: int,
        column: int,
        value: Any,
        style: StyleDescriptor | None = None,
    ) -> Cell:
        """
        (row, col) 셀 설정.

        행이 아직 없으면 빈 행으로 채워 확장한다. 기존 셀은 교체.
        """
        if isinstance(row, bool) or not isinstance(row, int) or row < 0:
            raise ModelConstructionError(
                ErrorCodes.INVALID_ROW_INDEX,
                sheet=self.name,
                row=row,
            )
        _check_column(column)
        self._check_capacity(row, column)

        while len(self._rows) <= row:
            self._attach(Row())

        return self._rows[row].set(column, value, style)

    def set_column_width(self, column: int, width: float) -> None:
        column = _check_column(column)
        spec = self._columns.get(column, ColumnSpec())
        self._columns[column] = ColumnSpec(validate_column_width(width), spec.style)

    def set_column_style(self, column: int, style: StyleDescriptor | None) -> None:
        """컬럼 기본 스타일 (셀/행 스타일이 없는 셀에 적용)."""
        column = _check_column(column)
        spec = self._columns.get(column, ColumnSpec())
        self._columns[column] = ColumnSpec(spec.width, _check_style(style))

    def _check_capacity(self, row_index: int, max_column: int) -> None:
        if self.max_rows is not None and row_index >= self.max_rows:
            raise CapacityExceededError(
                ErrorCodes.ROW_LIMIT_EXCEEDED,
                sheet=self.name,
                row=row_index,
                limit=self.max_rows,
            )
        self._check_column_capacity(max_column)

    def _check_column_capacity(self, column: int) -> None:
        if self.max_columns is not None and column >= self.max_columns:
            raise CapacityExceededError(
                ErrorCodes.COLUMN_LIMIT_EXCEEDED,
                sheet=self.name,
                column=column,
                limit=self.max_columns,
            )

    def _attach(self, row: Row) -> None:
        row._sheet = self
        self._rows.append(row)

    def _track_column(self, column: int) -> None:
        if column > self._max_column:
            self._max_column = column

    def restrict_limits(
        self,
        max_rows: int | None = None,
        max_columns: int | None = None,
    ) -> None:
        """
        용량 한계를 더 좁게 조정 (기존 한계와 비교해 작은 쪽 적용).

        이미 들어 있는 행/열이 새 한계를 넘으면 아무것도 바꾸지 않고 실패.

        Raises:
            CapacityExceededError: ROW_LIMIT_EXCEEDED, COLUMN_LIMIT_EXCEEDED
        """
        rows = _tighter(self.max_rows, max_rows)
        columns = _tighter(self.max_columns, max_columns)

        if rows is not None and len(self._rows) > rows:
            raise CapacityExceededError(
                ErrorCodes.ROW_LIMIT_EXCEEDED,
                sheet=self.name,
                row=len(self._rows) - 1,
                limit=rows,
            )
        if columns is not None and self._max_column >= columns:
            raise CapacityExceededError(
                ErrorCodes.COLUMN_LIMIT_EXCEEDED,
                sheet=self.name,
                column=self._max_column,
                limit=columns,
            )

        self.max_rows = rows
        self.max_columns = columns

    # =========================================================================
    # Accessors
    # =========================================================================

    def cell(self, row: int, column: int) -> CellValue:
        """(row, col) 값 조회 (O(1)). 없으면 EMPTY."""
        if 0 <= row < len(self._rows):
            return self._rows[row].value(column)
        return CellValue.empty()

    def row(self, index: int) -> Row:
        return self._rows[index]

    @property
    def rows(self) -> list[Row]:
        return list(self._rows)

    @property
    def columns(self) -> dict[int, ColumnSpec]:
        return dict(self._columns)

    def column(self, index: int) -> ColumnSpec | None:
        return self._columns.get(index)

    @property
    def row_count(self) -> int:
        return len(self._rows)

    @property
    def max_column(self) -> int:
        """set_cell 교체로 줄어들지 않는 상한 (쓰기 전 용량 확인용)."""
        return self._max_column

    def __iter__(self) -> Iterator[Row]:
        return iter(self._rows)

    def __len__(self) -> int:
        return len(self._rows)

    def __repr__(self) -> str:
        return f"Sheet(name={self.name!r}, rows={len(self._rows)})"


# =============================================================================
# Workbook
# =============================================================================


class Workbook:
    """
    순서 있는 시트 모음 = 문서 전체.

    - XLSX 출력: 시트 1개 이상 필요
    - CSV 출력: 첫 시트만 사용

    Usage:
        wb = Workbook()
        report = wb.add_sheet("Report")
        report.append_row(["a", 1])
    """

    def __init__(
        self,
        max_rows: int | None = None,
        max_columns: int | None = None,
    ) -> None:
        self.max_rows = max_rows
        self.max_columns = max_columns
        self._sheets: list[Sheet] = []
        self._names: dict[str, Sheet] = {}  # casefold(name) → Sheet

    def add_sheet(self, sheet: "str | Sheet") -> Sheet:
        """
        시트 추가.

        Sheet 인스턴스를 넘기면 워크북의 max_rows/max_columns가 시트 한계와
        비교해 더 좁은 쪽으로 적용된다 (restrict_limits).

        Args:
            sheet: 시트 이름 또는 Sheet 인스턴스

        Raises:
            ModelConstructionError: INVALID_SHEET_NAME, DUPLICATE_SHEET_NAME
            CapacityExceededError: 기존 시트 내용이 워크북 한계를 이미 넘음
        """
        if isinstance(sheet, Sheet):
            new_sheet = sheet
        else:
            new_sheet = Sheet(sheet, max_rows=self.max_rows, max_columns=self.max_columns)

        # Excel은 시트 이름 대소문자를 구분하지 않음
        key = new_sheet.name.casefold()
        if key in self._names:
            raise ModelConstructionError(
                ErrorCodes.DUPLICATE_SHEET_NAME,
                sheet=new_sheet.name,
                existing=self._names[key].name,
            )

        new_sheet.restrict_limits(self.max_rows, self.max_columns)
        self._sheets.append(new_sheet)
        self._names[key] = new_sheet
        return new_sheet

    def add_sheet_rows(
        self,
        name: str,
        rows: Iterable[Iterable[Any]],
        header: Iterable[str] | None = None,
    ) -> Sheet:
        """이름 + 행 목록(+ 헤더)으로 시트를 한 번에 추가."""
        sheet = self.add_sheet(name)
        if header is not None:
            sheet.append_header(header)
        for values in rows:
            sheet.append_row(values)
        return sheet

    def sheet(self, name: str) -> Sheet:
        try:
            return self._names[name.casefold()]
        except KeyError:
            raise ModelConstructionError(
                ErrorCodes.SHEET_NOT_FOUND,
                sheet=name,
            ) from None

    @property
    def sheets(self) -> list[Sheet]:
        return list(self._sheets)

    @property
    def first_sheet(self) -> Sheet:
        if not self._sheets:
            raise ModelConstructionError(ErrorCodes.WORKBOOK_EMPTY)
        return self._sheets[0]

    def __iter__(self) -> Iterator[Sheet]:
        return iter(self._sheets)

    def __len__(self) -> int:
        return len(self._sheets)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and name.casefold() in self._names

    def __repr__(self) -> str:
        return f"Workbook(sheets={[s.name for s in self._sheets]!r})"
