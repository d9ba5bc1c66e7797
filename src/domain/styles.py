"""
Style Descriptor: 셀/컬럼에 적용되는 시각 서식.

규칙:
- 생성 후 불변 (frozen dataclass)
- 동등성은 구조적 (필드 단위) → Spreadsheet Writer의 스타일 테이블 중복 제거 기준
- 숫자 표시 형식 fallback (타입 → 기본 형식)은 effective_number_format 한 곳에서만 결정
"""

import re
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any

from src.domain.cells import CellType, CellValue
from src.domain.constants import (
    DEFAULT_DATE_FORMAT,
    DEFAULT_DATETIME_FORMAT,
    DEFAULT_DECIMAL_FORMAT,
    DEFAULT_INTEGER_FORMAT,
    GENERAL_FORMAT,
    XLSX_MAX_COLUMN_WIDTH,
)
from src.domain.errors import ErrorCodes, ModelConstructionError

_HEX_COLOR_RE = re.compile(r"^#?([0-9A-Fa-f]{6}|[0-9A-Fa-f]{8})$")


# =============================================================================
# Attribute Enums
# =============================================================================

class Color(str, Enum):
    """이름 있는 색상 (ARGB)."""
    BLACK = "FF000000"
    WHITE = "FFFFFFFF"
    RED = "FFFF0000"
    BLUE = "FF0000FF"
    GREEN = "FF008000"
    YELLOW = "FFFFFF00"
    GREY = "FF808080"
    ORANGE = "FFFFA500"


class Border(str, Enum):
    NONE = "none"
    THIN = "thin"
    MEDIUM = "medium"
    THICK = "thick"


class TextAlign(str, Enum):
    LEFT = "left"
    CENTER = "center"
    RIGHT = "right"


@dataclass(frozen=True)
class BorderSet:
    """네 변 테두리 (상/우/하/좌)."""
    top: Border = Border.NONE
    right: Border = Border.NONE
    bottom: Border = Border.NONE
    left: Border = Border.NONE

    @classmethod
    def all(cls, border: Border) -> "BorderSet":
        """네 변 모두 같은 테두리."""
        return cls(top=border, right=border, bottom=border, left=border)

    @property
    def is_empty(self) -> bool:
        return all(
            side is Border.NONE
            for side in (self.top, self.right, self.bottom, self.left)
        )


# =============================================================================
# Style Descriptor
# =============================================================================

@dataclass(frozen=True)
class StyleDescriptor:
    """
    불변 스타일 기술자.

    Usage:
        header = StyleDescriptor(bold=True, background_color=Color.GREY)
        money = header.replace(bold=False, number_format="#,##0.00")

    색상은 Color 또는 hex 문자열("FF0000", "#FFFF0000") 모두 허용하며
    8자리 ARGB 대문자로 정규화된다. 따라서 Color.RED와 "FF0000"은 같은 스타일.
    """
    horizontal_alignment: TextAlign | None = None
    bold: bool = False
    italic: bool = False
    font_color: str | None = None
    background_color: str | None = None
    border: BorderSet | None = None
    number_format: str | None = None
    column_width: float | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "font_color", _normalize_color(self.font_color, "font_color"))
        object.__setattr__(
            self,
            "background_color",
            _normalize_color(self.background_color, "background_color"),
        )

        if self.horizontal_alignment is not None:
            try:
                object.__setattr__(
                    self, "horizontal_alignment", TextAlign(self.horizontal_alignment)
                )
            except ValueError as e:
                raise ModelConstructionError(
                    ErrorCodes.INVALID_STYLE,
                    attribute="horizontal_alignment",
                    value=self.horizontal_alignment,
                ) from e

        if self.border is not None and not isinstance(self.border, BorderSet):
            if isinstance(self.border, (Border, str)):
                try:
                    object.__setattr__(self, "border", BorderSet.all(Border(self.border)))
                except ValueError as e:
                    raise ModelConstructionError(
                        ErrorCodes.INVALID_STYLE,
                        attribute="border",
                        value=self.border,
                    ) from e
            else:
                raise ModelConstructionError(
                    ErrorCodes.INVALID_STYLE,
                    attribute="border",
                    value=self.border,
                )

        if self.number_format is not None and (
            not isinstance(self.number_format, str) or not self.number_format
        ):
            raise ModelConstructionError(
                ErrorCodes.INVALID_STYLE,
                attribute="number_format",
                value=self.number_format,
            )

        if self.column_width is not None:
            validate_column_width(self.column_width)

    def replace(self, **changes: Any) -> "StyleDescriptor":
        """변경된 속성으로 새 기술자 생성 (빌더 단계)."""
        return replace(self, **changes)

    @property
    def is_default(self) -> bool:
        """아무 속성도 지정되지 않은 기본 스타일인지."""
        return self == _DEFAULT_STYLE

    def effective_number_format(
        self,
        value: CellValue,
        formats: "NumberFormats | None" = None,
    ) -> str:
        return effective_number_format(value, formats, self)


# =============================================================================
# Number Format Policy
# =============================================================================

@dataclass(frozen=True)
class NumberFormats:
    """타입별 기본 표시 형식 (전역 설정으로 덮어쓰기 가능)."""
    date: str = DEFAULT_DATE_FORMAT
    datetime: str = DEFAULT_DATETIME_FORMAT
    decimal: str = DEFAULT_DECIMAL_FORMAT
    integer: str = DEFAULT_INTEGER_FORMAT


DEFAULT_NUMBER_FORMATS = NumberFormats()


def effective_number_format(
    value: CellValue,
    formats: NumberFormats | None = None,
    style: StyleDescriptor | None = None,
) -> str:
    """
    셀에 실제로 적용할 숫자 표시 형식.

    1. 스타일에 명시된 number_format 우선
    2. 없으면 셀 의미 타입에서 유도
       - DATETIME (date_only) → formats.date
       - DATETIME → formats.datetime
       - DECIMAL → formats.decimal
       - INTEGER → formats.integer
       - 그 외 → General

    Args:
        value: 셀 값
        formats: 기본 형식 (None이면 DEFAULT_NUMBER_FORMATS)
        style: 셀 스타일 (없을 수 있음)

    Returns:
        숫자 형식 패턴 문자열
    """
    if style is not None and style.number_format:
        return style.number_format

    formats = formats or DEFAULT_NUMBER_FORMATS

    if value.type is CellType.DATETIME:
        return formats.date if value.date_only else formats.datetime
    if value.type is CellType.DECIMAL:
        return formats.decimal
    if value.type is CellType.INTEGER:
        return formats.integer
    return GENERAL_FORMAT


# =============================================================================
# Helpers
# =============================================================================

def validate_column_width(width: Any) -> float:
    """컬럼 너비 검증: 0 < width <= 255 (문자 단위)."""
    if isinstance(width, bool) or not isinstance(width, (int, float)):
        raise ModelConstructionError(
            ErrorCodes.INVALID_COLUMN_WIDTH,
            width=width,
            error="column width must be a number",
        )
    if not 0 < width <= XLSX_MAX_COLUMN_WIDTH:
        raise ModelConstructionError(
            ErrorCodes.INVALID_COLUMN_WIDTH,
            width=width,
            error=f"column width must be in (0, {XLSX_MAX_COLUMN_WIDTH}]",
        )
    return float(width)


def _normalize_color(value: Any, attribute: str) -> str | None:
    """Color 또는 hex 문자열 → 8자리 ARGB 대문자."""
    if value is None:
        return None
    if isinstance(value, Color):
        return value.value
    if isinstance(value, str):
        match = _HEX_COLOR_RE.match(value)
        if match:
            hex_value = match.group(1).upper()
            return hex_value if len(hex_value) == 8 else f"FF{hex_value}"
        # 이름 있는 색상 문자열 ("red")
        try:
            return Color[value.upper()].value
        except KeyError:
            pass

    raise ModelConstructionError(
        ErrorCodes.INVALID_STYLE,
        attribute=attribute,
        value=value,
    )


def style_fields(style: StyleDescriptor) -> dict[str, Any]:
    """직렬화/로그용 속성 dict (기본값 제외)."""
    result: dict[str, Any] = {}
    for name in StyleDescriptor.__dataclass_fields__:
        current = getattr(style, name)
        if current != getattr(_DEFAULT_STYLE, name):
            result[name] = current
    return result


# =============================================================================
# Defaults
# =============================================================================

_DEFAULT_STYLE = StyleDescriptor()

# 헤더 기본 스타일: 굵게
HEADER_STYLE = StyleDescriptor(bold=True)
