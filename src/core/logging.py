"""
Write logging: write log lifecycle, warnings

규칙:
- 경고는 WriteLog에 기록 + 표준 logging WARNING으로도 남김
- 실패 시 error_code/error_context 필수
"""

import logging
from datetime import UTC, datetime
from typing import Any

from src.core.ids import generate_write_id
from src.domain.schemas import WarningLog, WriteLog

logger = logging.getLogger(__name__)


def create_write_log(output_format: str) -> WriteLog:
    """
    새 WriteLog 생성.

    Args:
        output_format: "xlsx" 또는 "csv"

    Returns:
        초기화된 WriteLog
    """
    return WriteLog(
        write_id=generate_write_id(),
        format=output_format,
        started_at=datetime.now(UTC).isoformat(),
        result="pending",
    )


def emit_warning(
    write_log: WriteLog,
    code: str,
    message: str,
    sheet: str | None = None,
) -> None:
    """
    경고 이벤트 기록.

    Args:
        write_log: WriteLog 인스턴스
        code: 경고 코드 (WarningCodes)
        message: 경고 메시지
        sheet: 관련 시트 이름
    """
    write_log.warnings.append(
        WarningLog(level="warning", code=code, sheet=sheet, message=message)
    )
    logger.warning(f"[{write_log.write_id}] {code}: {message}")


def complete_write_log(
    write_log: WriteLog,
    success: bool,
    bytes_written: int = 0,
    sha256: str | None = None,
    error_code: str | None = None,
    error_context: dict[str, Any] | None = None,
) -> None:
    """
    WriteLog 완료 처리.

    Args:
        write_log: WriteLog 인스턴스
        success: 성공 여부
        bytes_written: sink에 쓴 바이트 수
        sha256: 출력 바이트 해시
        error_code: 에러 코드 (실패 시)
        error_context: 에러 컨텍스트 (실패 시)
    """
    write_log.finished_at = datetime.now(UTC).isoformat()
    write_log.result = "success" if success else "failed"
    write_log.bytes_written = bytes_written
    write_log.sha256 = sha256

    if not success:
        write_log.error_code = error_code
        write_log.error_context = error_context
