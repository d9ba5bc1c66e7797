"""
Output sinks: 범위 기반 획득/해제.

규칙:
- 첫 바이트를 쓰기 전에 sink 획득, 모든 종료 경로(에러 포함)에서 flush/close 보장
- 파일 경로: 원자적 쓰기 (temp → rename). 실패 시 temp 삭제, 기존 파일 보존
- 스트림: 호출자 소유 → flush만 하고 닫지 않음
- OSError → SinkIOError (해당 쓰기 호출은 종료)
- 쓴 바이트 수와 SHA-256을 함께 추적 (WriteLog 기록용)
"""

import hashlib
import io
import logging
import os
import tempfile
from collections.abc import Generator
from contextlib import contextmanager
from pathlib import Path
from typing import Any, BinaryIO

from src.domain.errors import ErrorCodes, SinkIOError

logger = logging.getLogger(__name__)

# Sink 대상: 파일 경로 또는 쓰기 가능한 바이너리 스트림
SinkTarget = str | os.PathLike | BinaryIO


class TrackingSink:
    """
    바이너리 스트림 래퍼: 바이트 수 + SHA-256 추적.

    write 실패는 SinkIOError로 변환된다.
    """

    def __init__(self, stream: BinaryIO, label: str) -> None:
        self._stream = stream
        self.label = label
        self.bytes_written = 0
        self._hash = hashlib.sha256()

    def write(self, data: bytes) -> int:
        try:
            self._stream.write(data)
        except (OSError, ValueError) as e:
            # ValueError: 이미 닫힌 스트림
            raise SinkIOError(
                ErrorCodes.SINK_WRITE_FAILED,
                sink=self.label,
                error=str(e),
            ) from e
        self.bytes_written += len(data)
        self._hash.update(data)
        return len(data)

    @property
    def sha256(self) -> str:
        return self._hash.hexdigest()


@contextmanager
def open_sink(target: Any) -> Generator[TrackingSink, None, None]:
    """
    Sink 획득 컨텍스트 매니저.

    Usage:
        with open_sink(Path("out.xlsx")) as sink:
            sink.write(data)

    Args:
        target: 파일 경로(str/Path) 또는 바이너리 스트림

    Raises:
        SinkIOError: SINK_INVALID, SINK_WRITE_FAILED, SINK_CLOSE_FAILED
    """
    if isinstance(target, (str, os.PathLike)):
        with _path_sink(Path(target)) as sink:
            yield sink
        return

    if target is None or not callable(getattr(target, "write", None)):
        raise SinkIOError(
            ErrorCodes.SINK_INVALID,
            sink=repr(target),
            error="sink must be a path or a writable binary stream",
        )
    if isinstance(target, io.TextIOBase):
        raise SinkIOError(
            ErrorCodes.SINK_INVALID,
            sink=repr(target),
            error="text stream given, binary stream required",
        )

    with _stream_sink(target) as sink:
        yield sink


@contextmanager
def _stream_sink(stream: BinaryIO) -> Generator[TrackingSink, None, None]:
    """호출자 소유 스트림: 종료 시 flush만 수행."""
    sink = TrackingSink(stream, label=type(stream).__name__)
    try:
        yield sink
    except BaseException:
        _flush_after_failure(stream, sink.label)
        raise

    try:
        flush = getattr(stream, "flush", None)
        if flush is not None:
            flush()
    except (OSError, ValueError) as e:
        raise SinkIOError(
            ErrorCodes.SINK_CLOSE_FAILED,
            sink=sink.label,
            error=str(e),
        ) from e


def _flush_after_failure(stream: BinaryIO, label: str) -> None:
    """에러 경로 flush: 원래 에러를 가리지 않도록 flush 실패는 경고만."""
    flush = getattr(stream, "flush", None)
    if flush is None:
        return
    try:
        flush()
    except (OSError, ValueError) as e:
        logger.warning(f"Flush after failed write also failed for {label}: {e}")


@contextmanager
def _path_sink(path: Path) -> Generator[TrackingSink, None, None]:
    """
    파일 경로: 원자적 쓰기.

    동작:
    - 같은 디렉토리의 temp 파일에 기록
    - 성공 시 fsync 후 os.replace (원자적)
    - 실패 시 temp 삭제, 기존 파일 보존
    """
    temp_path: Path | None = None
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with tempfile.NamedTemporaryFile(
            mode="wb",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
        ) as f:
            temp_path = Path(f.name)
            sink = TrackingSink(f, label=str(path))
            yield sink
            f.flush()
            try:
                os.fsync(f.fileno())
            except OSError as e:
                logger.warning(
                    f"File fsync failed for {path}: {e}. "
                    f"Data may not be durable on power loss."
                )

        os.replace(temp_path, path)
        temp_path = None

    except OSError as e:
        raise SinkIOError(
            ErrorCodes.SINK_CLOSE_FAILED if temp_path else ErrorCodes.SINK_WRITE_FAILED,
            sink=str(path),
            error=str(e),
        ) from e

    finally:
        if temp_path is not None and temp_path.exists():
            try:
                temp_path.unlink()
            except OSError as e:
                logger.warning(f"Failed to remove temp file {temp_path}: {e}")
