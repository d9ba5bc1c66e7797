"""
test_logging.py - WriteLog 관리 테스트

DoD:
- write log 생성/완료
- 경고 이벤트 기록 (+ 표준 logging)
"""

import logging
from datetime import UTC, datetime

import pytest

from src.core.logging import complete_write_log, create_write_log, emit_warning
from src.domain.errors import WarningCodes

# =============================================================================
# create_write_log 테스트
# =============================================================================


class TestCreateWriteLog:
    """create_write_log 함수 테스트."""

    def test_creates_pending(self):
        write_log = create_write_log("xlsx")

        assert write_log.format == "xlsx"
        assert write_log.write_id.startswith("WRITE-")
        assert write_log.result == "pending"
        assert not write_log.succeeded

    def test_has_started_at(self):
        before = datetime.now(UTC)
        write_log = create_write_log("csv")
        after = datetime.now(UTC)

        started = datetime.fromisoformat(write_log.started_at)
        assert before <= started <= after

    def test_empty_warnings(self):
        assert create_write_log("csv").warnings == []


# =============================================================================
# emit_warning 테스트
# =============================================================================


class TestEmitWarning:
    """emit_warning 함수 테스트."""

    def test_appends_warning(self):
        write_log = create_write_log("csv")

        emit_warning(write_log, WarningCodes.SHEETS_SKIPPED, "skipped: Notes", sheet="Report")

        assert len(write_log.warnings) == 1
        warning = write_log.warnings[0]
        assert warning.code == WarningCodes.SHEETS_SKIPPED
        assert warning.sheet == "Report"
        assert warning.to_dict()["level"] == "warning"

    def test_also_logged(self, caplog: pytest.LogCaptureFixture):
        write_log = create_write_log("csv")

        with caplog.at_level(logging.WARNING, logger="src.core.logging"):
            emit_warning(write_log, WarningCodes.FORMULA_AS_TEXT, "1 formula cell(s)")

        assert "FORMULA_AS_TEXT" in caplog.text
        assert write_log.write_id in caplog.text


# =============================================================================
# complete_write_log 테스트
# =============================================================================


class TestCompleteWriteLog:
    """complete_write_log 함수 테스트."""

    def test_success(self):
        write_log = create_write_log("xlsx")

        complete_write_log(write_log, success=True, bytes_written=10, sha256="ab")

        assert write_log.succeeded
        assert write_log.finished_at is not None
        assert write_log.bytes_written == 10
        assert write_log.error_code is None

    def test_failure_records_error(self):
        write_log = create_write_log("xlsx")

        complete_write_log(
            write_log,
            success=False,
            error_code="TEXT_TOO_LONG",
            error_context={"sheet": "S"},
        )

        assert write_log.result == "failed"
        assert write_log.error_code == "TEXT_TOO_LONG"
        assert write_log.to_dict()["error_context"] == {"sheet": "S"}
