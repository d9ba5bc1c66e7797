"""
Cell Value: 한 셀의 내용과 의미 타입.

규칙:
- 닫힌 변형 집합 (CellType) 중 정확히 하나만 활성
- 생성은 팩토리로만, 생성 시점에 검증 (fail-fast)
- Formula는 원문 그대로 저장, 평가하지 않음
- NaN/Inf → 항상 reject
"""

import math
from dataclasses import dataclass
from datetime import UTC, date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any

from src.domain.constants import INT64_MAX, INT64_MIN
from src.domain.errors import ErrorCodes, ModelConstructionError


class CellType(str, Enum):
    """셀 의미 타입. 두 writer 모두 이 값으로 네이티브 인코딩을 고른다."""
    EMPTY = "empty"
    TEXT = "text"
    INTEGER = "integer"
    DECIMAL = "decimal"
    BOOLEAN = "boolean"
    DATETIME = "datetime"
    FORMULA = "formula"


@dataclass(frozen=True)
class CellValue:
    """
    태그된 셀 값.

    Usage:
        CellValue.text("Alice")
        CellValue.decimal(12.5)
        CellValue.datetime(date(2025, 1, 15))
        CellValue.of(value)  # Python 값에서 타입 추론
    """
    type: CellType
    value: Any = None
    date_only: bool = False

    # =========================================================================
    # Factories
    # =========================================================================

    @classmethod
    def empty(cls) -> "CellValue":
        return _EMPTY

    @classmethod
    def text(cls, value: str) -> "CellValue":
        if not isinstance(value, str):
            raise ModelConstructionError(
                ErrorCodes.INVALID_TEXT,
                value=value,
                error="text value must be str",
            )
        return cls(CellType.TEXT, value)

    @classmethod
    def integer(cls, value: int) -> "CellValue":
        # bool은 int의 하위 타입이므로 명시적으로 거절
        if isinstance(value, bool) or not isinstance(value, int):
            raise ModelConstructionError(
                ErrorCodes.INVALID_NUMBER,
                value=value,
                error="integer value must be int",
            )
        if not INT64_MIN <= value <= INT64_MAX:
            raise ModelConstructionError(
                ErrorCodes.INVALID_NUMBER,
                value=value,
                error="integer value out of int64 range",
            )
        return cls(CellType.INTEGER, value)

    @classmethod
    def decimal(cls, value: float | int | Decimal) -> "CellValue":
        """
        소수 값 생성.

        Raises:
            ModelConstructionError: INVALID_NUMBER (NaN/Inf, 숫자 아님)
        """
        if isinstance(value, bool):
            raise ModelConstructionError(
                ErrorCodes.INVALID_NUMBER,
                value=value,
                error="decimal value must not be bool",
            )

        if isinstance(value, Decimal):
            if not value.is_finite():
                raise ModelConstructionError(
                    ErrorCodes.INVALID_NUMBER,
                    value=str(value),
                    error="NaN/Inf is not allowed",
                )
            return cls(CellType.DECIMAL, value)

        if isinstance(value, int):
            return cls(CellType.DECIMAL, Decimal(value))

        if isinstance(value, float):
            if not math.isfinite(value):
                raise ModelConstructionError(
                    ErrorCodes.INVALID_NUMBER,
                    value=repr(value),
                    error="NaN/Inf is not allowed",
                )
            return cls(CellType.DECIMAL, value)

        raise ModelConstructionError(
            ErrorCodes.INVALID_NUMBER,
            value=value,
            error="decimal value must be float, int or Decimal",
        )

    @classmethod
    def boolean(cls, value: bool) -> "CellValue":
        if not isinstance(value, bool):
            raise ModelConstructionError(
                ErrorCodes.INVALID_BOOLEAN,
                value=value,
            )
        return cls(CellType.BOOLEAN, value)

    @classmethod
    def datetime(
        cls,
        value: datetime | date | str,
        date_only: bool | None = None,
    ) -> "CellValue":
        """
        날짜/일시 값 생성.

        Args:
            value: datetime, date 또는 ISO 8601 문자열
            date_only: None이면 값에서 추론 (date → True, datetime → False)

        Raises:
            ModelConstructionError: INVALID_DATE
        """
        if isinstance(value, str):
            value = _parse_iso(value)

        if isinstance(value, datetime):
            # timezone-aware → naive UTC (스프레드시트에는 시간대 개념 없음)
            if value.tzinfo is not None:
                value = value.astimezone(UTC).replace(tzinfo=None)
            if date_only:
                return cls(CellType.DATETIME, value.date(), True)
            return cls(CellType.DATETIME, value, False)

        if isinstance(value, date):
            if date_only is False:
                return cls(
                    CellType.DATETIME,
                    datetime(value.year, value.month, value.day),
                    False,
                )
            return cls(CellType.DATETIME, value, True)

        raise ModelConstructionError(
            ErrorCodes.INVALID_DATE,
            value=value,
            error="datetime value must be datetime, date or ISO string",
        )

    @classmethod
    def formula(cls, expression: str) -> "CellValue":
        if not isinstance(expression, str) or not expression.strip():
            raise ModelConstructionError(
                ErrorCodes.INVALID_FORMULA,
                value=expression,
                error="formula must be a non-empty string",
            )
        return cls(CellType.FORMULA, expression)

    @classmethod
    def of(cls, value: Any) -> "CellValue":
        """
        Python 값에서 CellValue 생성.

        문자열은 항상 TEXT ("="로 시작해도 수식으로 취급하지 않음).
        수식은 CellValue.formula()로 명시해야 한다.
        """
        if value is None:
            return _EMPTY
        if isinstance(value, CellValue):
            return value
        if isinstance(value, bool):
            return cls.boolean(value)
        if isinstance(value, int):
            return cls.integer(value)
        if isinstance(value, (float, Decimal)):
            return cls.decimal(value)
        if isinstance(value, (datetime, date)):
            return cls.datetime(value)
        if isinstance(value, str):
            return cls.text(value)

        raise ModelConstructionError(
            ErrorCodes.UNSUPPORTED_VALUE,
            value=repr(value),
            type=type(value).__name__,
        )

    # =========================================================================
    # Accessors
    # =========================================================================

    @property
    def semantic_type(self) -> CellType:
        return self.type

    @property
    def is_empty(self) -> bool:
        return self.type is CellType.EMPTY

    def render_text(self) -> str:
        """
        구분자 텍스트용 정규 문자열.

        - DATETIME: YYYY-MM-DD 또는 YYYY-MM-DD HH:MM:SS[.ffffff]
        - BOOLEAN: TRUE/FALSE
        - FORMULA: 원문 그대로 (평가하지 않음)
        """
        if self.type is CellType.EMPTY:
            return ""
        if self.type is CellType.TEXT:
            return self.value
        if self.type is CellType.INTEGER:
            return str(self.value)
        if self.type is CellType.DECIMAL:
            if isinstance(self.value, Decimal):
                return format(self.value, "f")
            return repr(self.value)
        if self.type is CellType.BOOLEAN:
            return "TRUE" if self.value else "FALSE"
        if self.type is CellType.DATETIME:
            if self.date_only:
                return self.value.isoformat()
            return self.value.isoformat(sep=" ")
        if self.type is CellType.FORMULA:
            return self.value

        raise ModelConstructionError(ErrorCodes.UNSUPPORTED_VALUE, type=self.type)


_EMPTY = CellValue(CellType.EMPTY)


def _parse_iso(value: str) -> date | datetime:
    """ISO 8601 문자열 파싱. 날짜만 있으면 date 반환."""
    text = value.strip()
    try:
        if len(text) == 10:
            return date.fromisoformat(text)
        return datetime.fromisoformat(text)
    except ValueError as e:
        raise ModelConstructionError(
            ErrorCodes.INVALID_DATE,
            value=value,
            error=str(e),
        ) from e
