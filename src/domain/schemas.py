"""
Write result schemas.

규칙:
- 쓰기 호출 1회 = WriteLog 1개
- 경고 필수 컨텍스트: level, code, sheet, message
- 실패 시 error_code + error_context (SheetMakerError.to_dict)
"""

from dataclasses import dataclass, field
from typing import Any


@dataclass
class WarningLog:
    """
    경고 로그.

    reject는 아니지만 호출자가 알아야 하는 손실/생략 (예: CSV에서 무시된 시트).
    """
    level: str = "warning"
    code: str = ""
    sheet: str | None = None
    message: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "level": self.level,
            "code": self.code,
            "sheet": self.sheet,
            "message": self.message,
        }


@dataclass
class WriteLog:
    """
    쓰기 실행 로그.

    writer 호출 단위 실행 결과 및 메타데이터.
    """
    write_id: str
    format: str  # xlsx, csv
    started_at: str  # ISO 8601
    finished_at: str | None = None
    result: str = "pending"  # pending, success, failed

    # Output
    sheets: list[str] = field(default_factory=list)
    rows_written: int = 0
    cells_written: int = 0
    bytes_written: int = 0
    sha256: str | None = None

    # Events
    warnings: list[WarningLog] = field(default_factory=list)

    # Error (if failed)
    error_code: str | None = None
    error_context: dict[str, Any] | None = None

    @property
    def succeeded(self) -> bool:
        return self.result == "success"

    def to_dict(self) -> dict[str, Any]:
        """JSON 직렬화용."""
        return {
            "write_id": self.write_id,
            "format": self.format,
            "started_at": self.started_at,
            "finished_at": self.finished_at,
            "result": self.result,
            "sheets": list(self.sheets),
            "rows_written": self.rows_written,
            "cells_written": self.cells_written,
            "bytes_written": self.bytes_written,
            "sha256": self.sha256,
            "warnings": [w.to_dict() for w in self.warnings],
            "error_code": self.error_code,
            "error_context": self.error_context,
        }
