"""
Domain Constants: 포맷 한계와 기본값.

XLSX(Office Open XML) 포맷이 강제하는 하드 한계와
스타일 fallback 규칙의 기본 숫자 포맷을 정의한다.
"""

from datetime import date, datetime

# =============================================================================
# XLSX Format Ceilings (포맷 하드 한계)
# =============================================================================

XLSX_MAX_ROWS = 1_048_576
XLSX_MAX_COLUMNS = 16_384
XLSX_MAX_TEXT_LENGTH = 32_767
XLSX_MAX_FORMULA_LENGTH = 8_192
XLSX_MAX_COLUMN_WIDTH = 255

# Excel은 double로 저장 → 2^53 초과 정수는 정밀도 손실
XLSX_MAX_SAFE_INTEGER = 2**53

# 1900 date system 표현 범위
XLSX_MIN_DATE = date(1900, 1, 1)
XLSX_MAX_DATE = date(9999, 12, 31)

# =============================================================================
# Sheet Name Policy (시트 이름 정책)
# =============================================================================
# - 비어 있으면 안 됨, 최대 31자
# - 금지 문자: [ ] : * ? / \
# - 작은따옴표로 시작/끝나면 안 됨
# - 워크북 내 유일 (대소문자 무시)

SHEET_NAME_MAX_LENGTH = 31
SHEET_NAME_FORBIDDEN_CHARS = frozenset("[]:*?/\\")

# =============================================================================
# File Name Policy (to_file 용)
# =============================================================================

FILE_NAME_FORBIDDEN_CHARS = frozenset('\\/:*?"<>|')

# =============================================================================
# Number Formats (타입 기반 기본 표시 형식)
# =============================================================================

GENERAL_FORMAT = "General"
DEFAULT_DATE_FORMAT = "yyyy-mm-dd"
DEFAULT_DATETIME_FORMAT = "yyyy-mm-dd hh:mm:ss"
DEFAULT_DECIMAL_FORMAT = "0.00"
DEFAULT_INTEGER_FORMAT = GENERAL_FORMAT

# =============================================================================
# Integer Range (Cell Value 검증)
# =============================================================================

INT64_MIN = -(2**63)
INT64_MAX = 2**63 - 1

# =============================================================================
# Writer Defaults
# =============================================================================

DEFAULT_DELIMITER = ","
DEFAULT_LINE_TERMINATOR = "\r\n"
DEFAULT_ENCODING = "utf-8"
DEFAULT_SHARED_STRING_THRESHOLD = 2

# 문서 속성/zip 엔트리 타임스탬프 고정 → 동일 모델 = 동일 바이트
DEFAULT_DOCUMENT_TIMESTAMP = datetime(2000, 1, 1, 0, 0, 0)

XLSX_SUFFIX = ".xlsx"
CSV_SUFFIX = ".csv"
