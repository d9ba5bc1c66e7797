"""
Error definitions for the document makers.

규칙:
- 조용한 실패 금지 → 모든 실패는 SheetMakerError 계열로 명시적 실패
- 모델 변경 시점 검증 (fail-fast), 쓰기 시점으로 미루지 않음
- NaN/Inf → 항상 reject
- 부분 복구 없음: 쓰기 도중 실패하면 sink 내용은 무효
"""

from typing import Any


class SheetMakerError(Exception):
    """
    문서 생성 실패 시 발생하는 에러의 기반 클래스.

    code + context로 구조화된 실패 정보를 전달한다:
    - code: ErrorCodes 상수
    - context: sheet, row, column 등 위치 정보

    Usage:
        raise ModelConstructionError("INVALID_SHEET_NAME", sheet="a/b")
    """

    kind = "SheetMakerError"

    def __init__(self, code: str, **context: Any) -> None:
        self.code = code
        self.context = context
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        ctx_str = ", ".join(f"{k}={v!r}" for k, v in self.context.items())
        return f"[{self.code}] {ctx_str}" if ctx_str else f"[{self.code}]"

    def to_dict(self) -> dict[str, Any]:
        """로그/JSON 직렬화용."""
        return {
            "kind": self.kind,
            "code": self.code,
            **self.context,
        }


class ModelConstructionError(SheetMakerError):
    """
    모델 변경 시점의 불변식 위반.

    - 잘못된/중복된 시트 이름
    - 음수/중복 컬럼 인덱스
    - NaN/Inf, 잘못된 날짜
    """

    kind = "ModelConstructionError"


class CapacityExceededError(SheetMakerError):
    """행/열 수가 포맷(또는 설정된 모델)의 한계를 초과."""

    kind = "CapacityExceededError"


class EncodingError(SheetMakerError):
    """셀 값을 대상 포맷으로 표현할 수 없음."""

    kind = "EncodingError"


class SinkIOError(SheetMakerError):
    """출력 sink가 write/close를 거부함. 해당 쓰기 호출은 종료된다."""

    kind = "SinkIOError"


class ConfigError(SheetMakerError):
    """설정 값이 잘못됨."""

    kind = "ConfigError"


# =============================================================================
# Error Codes
# =============================================================================

class ErrorCodes:
    """에러 코드 상수."""

    # === Model ===
    INVALID_SHEET_NAME = "INVALID_SHEET_NAME"
    DUPLICATE_SHEET_NAME = "DUPLICATE_SHEET_NAME"
    SHEET_NOT_FOUND = "SHEET_NOT_FOUND"
    INVALID_ROW_INDEX = "INVALID_ROW_INDEX"
    INVALID_COLUMN_INDEX = "INVALID_COLUMN_INDEX"
    DUPLICATE_COLUMN = "DUPLICATE_COLUMN"
    INVALID_NUMBER = "INVALID_NUMBER"  # NaN/Inf, int64 범위 초과
    INVALID_DATE = "INVALID_DATE"
    INVALID_TEXT = "INVALID_TEXT"
    INVALID_FORMULA = "INVALID_FORMULA"
    INVALID_BOOLEAN = "INVALID_BOOLEAN"
    UNSUPPORTED_VALUE = "UNSUPPORTED_VALUE"
    INVALID_STYLE = "INVALID_STYLE"
    INVALID_COLUMN_WIDTH = "INVALID_COLUMN_WIDTH"
    INVALID_FILE_NAME = "INVALID_FILE_NAME"
    WORKBOOK_EMPTY = "WORKBOOK_EMPTY"

    # === Capacity ===
    ROW_LIMIT_EXCEEDED = "ROW_LIMIT_EXCEEDED"
    COLUMN_LIMIT_EXCEEDED = "COLUMN_LIMIT_EXCEEDED"

    # === Encoding ===
    TEXT_TOO_LONG = "TEXT_TOO_LONG"
    ILLEGAL_CHARACTER = "ILLEGAL_CHARACTER"
    FORMULA_TOO_LONG = "FORMULA_TOO_LONG"
    DATE_OUT_OF_RANGE = "DATE_OUT_OF_RANGE"
    NUMBER_OUT_OF_RANGE = "NUMBER_OUT_OF_RANGE"
    UNENCODABLE_TEXT = "UNENCODABLE_TEXT"  # CSV: 설정된 인코딩으로 표현 불가
    ENCRYPTION_FAILED = "ENCRYPTION_FAILED"  # XLSX: 암호 설정 시 패키지 암호화 실패
    RENDER_FAILED = "RENDER_FAILED"

    # === Sink ===
    SINK_WRITE_FAILED = "SINK_WRITE_FAILED"
    SINK_CLOSE_FAILED = "SINK_CLOSE_FAILED"
    SINK_INVALID = "SINK_INVALID"

    # === Config ===
    INVALID_CONFIG = "INVALID_CONFIG"


# =============================================================================
# Warning Codes (reject 아님, WriteLog에 기록)
# =============================================================================

class WarningCodes:
    """경고 코드 상수."""

    SHEETS_SKIPPED = "SHEETS_SKIPPED"  # CSV: 첫 시트 외 무시
    FORMULA_AS_TEXT = "FORMULA_AS_TEXT"  # CSV: 수식을 원문 텍스트로 기록
