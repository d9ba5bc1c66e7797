"""
Writer 공통 흐름: sink 획득 → 생성 → WriteLog 완료.

출력 표면:
- render(model, sink): 경로 또는 바이너리 스트림
- to_bytes(model)
- to_path(model, path)
- to_file(model, directory, file_name)
- to_temp_file(model)

에러 처리:
- SheetMakerError 계열은 그대로 전파
- 그 외 예외 → EncodingError(RENDER_FAILED)
- 실패해도 WriteLog는 error_code/error_context와 함께 완료 처리
"""

import logging
import os
import tempfile
from abc import ABC, abstractmethod
from io import BytesIO
from pathlib import Path
from typing import Any

from src.core.config import WriterConfig
from src.core.logging import complete_write_log, create_write_log
from src.core.sinks import TrackingSink, open_sink
from src.domain.constants import FILE_NAME_FORBIDDEN_CHARS
from src.domain.errors import (
    EncodingError,
    ErrorCodes,
    ModelConstructionError,
    SheetMakerError,
)
from src.domain.model import Sheet, Workbook
from src.domain.schemas import WriteLog

logger = logging.getLogger(__name__)

# Writer 입력: 워크북 또는 단일 시트
Model = Workbook | Sheet


class BaseRenderer(ABC):
    """
    XLSX/CSV writer 기반 클래스.

    하위 클래스는 _generate()만 구현한다.
    writer 인스턴스는 설정과 마지막 WriteLog(last_write_log) 외 상태가 없어 재사용 가능.
    """

    format_name: str = ""
    suffix: str = ""

    def __init__(self, config: WriterConfig | None = None) -> None:
        self.config = config or WriterConfig()
        self.last_write_log: WriteLog | None = None

    @abstractmethod
    def _generate(self, model: Model, sink: TrackingSink, write_log: WriteLog) -> None:
        """모델을 sink에 기록 (행/셀 카운트는 write_log에 누적)."""

    def render(self, model: Model, sink: Any) -> WriteLog:
        """
        모델을 sink에 기록.

        Args:
            model: Workbook 또는 Sheet
            sink: 파일 경로(str/Path) 또는 바이너리 스트림

        Returns:
            완료된 WriteLog

        Raises:
            SheetMakerError: 모든 실패 (ModelConstructionError, CapacityExceededError,
                EncodingError, SinkIOError)
        """
        write_log = create_write_log(self.format_name)
        self.last_write_log = write_log
        logger.info(f"[{write_log.write_id}] {self.format_name} write started")

        try:
            if not isinstance(model, (Workbook, Sheet)):
                raise ModelConstructionError(
                    ErrorCodes.UNSUPPORTED_VALUE,
                    type=type(model).__name__,
                    error="model must be a Workbook or Sheet",
                )

            with open_sink(sink) as out:
                self._generate(model, out, write_log)

        except SheetMakerError as e:
            self._fail(write_log, e)
            raise
        except Exception as e:
            error = EncodingError(
                ErrorCodes.RENDER_FAILED,
                format=self.format_name,
                error=str(e),
            )
            self._fail(write_log, error)
            raise error from e

        complete_write_log(
            write_log,
            success=True,
            bytes_written=out.bytes_written,
            sha256=out.sha256,
        )
        logger.info(
            f"[{write_log.write_id}] {self.format_name} written: "
            f"sheets={len(write_log.sheets)}, rows={write_log.rows_written}, "
            f"bytes={write_log.bytes_written}"
        )
        return write_log

    def _fail(self, write_log: WriteLog, error: SheetMakerError) -> None:
        complete_write_log(
            write_log,
            success=False,
            error_code=error.code,
            error_context=error.to_dict(),
        )
        logger.error(
            f"[{write_log.write_id}] {self.format_name} write failed: {error.to_dict()}"
        )

    # =========================================================================
    # Output Surfaces
    # =========================================================================

    def to_bytes(self, model: Model) -> bytes:
        buffer = BytesIO()
        self.render(model, buffer)
        return buffer.getvalue()

    def to_path(self, model: Model, path: str | os.PathLike) -> Path:
        """경로에 원자적으로 기록. 실패 시 기존 파일은 보존된다."""
        output_path = Path(path)
        self.render(model, output_path)
        return output_path

    def to_file(
        self,
        model: Model,
        directory: str | os.PathLike,
        file_name: str,
    ) -> Path:
        """
        디렉토리 + 파일 이름으로 기록.

        Raises:
            ModelConstructionError: INVALID_FILE_NAME (빈 이름, 금지 문자 포함)
        """
        validate_file_name(file_name)
        return self.to_path(model, Path(directory) / file_name)

    def to_temp_file(self, model: Model, suffix: str | None = None) -> Path:
        """
        임시 파일에 기록 후 경로 반환.

        파일 삭제는 호출자 책임.
        """
        fd, name = tempfile.mkstemp(suffix=suffix or self.suffix)
        os.close(fd)
        temp_path = Path(name)
        try:
            return self.to_path(model, temp_path)
        except BaseException:
            temp_path.unlink(missing_ok=True)
            raise


def validate_file_name(file_name: Any) -> str:
    """파일 이름 검증: 비어 있지 않고 경로 구분자/금지 문자 없음."""
    if not isinstance(file_name, str) or not file_name.strip():
        raise ModelConstructionError(
            ErrorCodes.INVALID_FILE_NAME,
            file_name=file_name,
            error="file name must be a non-empty string",
        )

    forbidden = sorted(set(file_name) & FILE_NAME_FORBIDDEN_CHARS)
    if forbidden:
        raise ModelConstructionError(
            ErrorCodes.INVALID_FILE_NAME,
            file_name=file_name,
            forbidden=forbidden,
        )

    if file_name in (".", ".."):
        raise ModelConstructionError(
            ErrorCodes.INVALID_FILE_NAME,
            file_name=file_name,
        )
    return file_name
