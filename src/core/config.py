"""
Writer configuration.

설정 소스:
- 코드: WriterConfig(...) 직접 생성
- 파일: load_config(path) → default.yaml 형식

default.yaml 구조:
    csv:
      delimiter: ","
      line_terminator: "\\r\\n"
      encoding: utf-8
      bom: false
    xlsx:
      shared_string_threshold: 2
      max_rows: 1048576
      max_columns: 16384
      document_timestamp: "2000-01-01T00:00:00"
      password: null
    formats:
      date: yyyy-mm-dd
      datetime: yyyy-mm-dd hh:mm:ss
      decimal: "0.00"
      integer: General
"""

import codecs
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any

import yaml

from src.domain.constants import (
    DEFAULT_DELIMITER,
    DEFAULT_DOCUMENT_TIMESTAMP,
    DEFAULT_ENCODING,
    DEFAULT_LINE_TERMINATOR,
    DEFAULT_SHARED_STRING_THRESHOLD,
    XLSX_MAX_COLUMNS,
    XLSX_MAX_ROWS,
)
from src.domain.errors import ConfigError, ErrorCodes
from src.domain.styles import NumberFormats

# 프로젝트 루트의 default.yaml
DEFAULT_CONFIG_PATH = Path(__file__).parent.parent.parent / "default.yaml"


@dataclass(frozen=True)
class WriterConfig:
    """
    두 writer 공통 설정.

    - delimiter / line_terminator / encoding / bom: CSV 전용
    - shared_string_threshold / max_rows / max_columns / document_timestamp / password: XLSX 전용
    - number_formats: Style Descriptor fallback 기본 형식 (XLSX)

    shared_string_threshold는 codec에 넘기는 SharedStringPool 구성에만 쓰인다.
    openpyxl은 텍스트를 항상 inline string으로 기록하므로 출력 바이트에는 영향 없음.

    password가 있으면 XLSX 패키지를 ECMA-376 agile 방식으로 암호화한다.
    암호화 출력은 매번 새 salt를 쓰므로 동일 바이트 보장 대상이 아니다.
    """
    delimiter: str = DEFAULT_DELIMITER
    line_terminator: str = DEFAULT_LINE_TERMINATOR
    encoding: str = DEFAULT_ENCODING
    bom: bool = False
    shared_string_threshold: int = DEFAULT_SHARED_STRING_THRESHOLD
    max_rows: int = XLSX_MAX_ROWS
    max_columns: int = XLSX_MAX_COLUMNS
    number_formats: NumberFormats = field(default_factory=NumberFormats)
    document_timestamp: datetime = DEFAULT_DOCUMENT_TIMESTAMP
    password: str | None = field(default=None, repr=False)

    def __post_init__(self) -> None:
        if not isinstance(self.delimiter, str) or len(self.delimiter) != 1:
            raise ConfigError(
                ErrorCodes.INVALID_CONFIG,
                option="delimiter",
                value=self.delimiter,
                error="delimiter must be a single character",
            )
        if self.delimiter in ('"', "\r", "\n"):
            raise ConfigError(
                ErrorCodes.INVALID_CONFIG,
                option="delimiter",
                value=self.delimiter,
                error="delimiter must not be a quote or line break",
            )
        if self.line_terminator not in ("\r\n", "\n", "\r"):
            raise ConfigError(
                ErrorCodes.INVALID_CONFIG,
                option="line_terminator",
                value=self.line_terminator,
            )
        try:
            codecs.lookup(self.encoding)
        except (LookupError, TypeError) as e:
            raise ConfigError(
                ErrorCodes.INVALID_CONFIG,
                option="encoding",
                value=self.encoding,
            ) from e

        _require_positive_int("shared_string_threshold", self.shared_string_threshold)
        _require_positive_int("max_rows", self.max_rows)
        _require_positive_int("max_columns", self.max_columns)

        # 포맷 하드 한계보다 크게 설정할 수 없음 (낮추는 것만 허용)
        if self.max_rows > XLSX_MAX_ROWS:
            raise ConfigError(
                ErrorCodes.INVALID_CONFIG,
                option="max_rows",
                value=self.max_rows,
                error=f"must not exceed {XLSX_MAX_ROWS}",
            )
        if self.max_columns > XLSX_MAX_COLUMNS:
            raise ConfigError(
                ErrorCodes.INVALID_CONFIG,
                option="max_columns",
                value=self.max_columns,
                error=f"must not exceed {XLSX_MAX_COLUMNS}",
            )

        if not isinstance(self.document_timestamp, datetime):
            raise ConfigError(
                ErrorCodes.INVALID_CONFIG,
                option="document_timestamp",
                value=self.document_timestamp,
            )

        # 값은 에러 컨텍스트에 남기지 않음
        if self.password is not None and (
            not isinstance(self.password, str) or not self.password
        ):
            raise ConfigError(
                ErrorCodes.INVALID_CONFIG,
                option="password",
                error="password must be a non-empty string",
            )


def _require_positive_int(option: str, value: Any) -> None:
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise ConfigError(
            ErrorCodes.INVALID_CONFIG,
            option=option,
            value=value,
            error="must be a positive integer",
        )


def config_from_dict(data: dict[str, Any]) -> WriterConfig:
    """
    dict (YAML 로드 결과) → WriterConfig.

    알 수 없는 섹션/키는 에러 (오타로 설정이 조용히 무시되는 것 방지).
    """
    known = {"csv", "xlsx", "formats"}
    unknown = set(data) - known
    if unknown:
        raise ConfigError(
            ErrorCodes.INVALID_CONFIG,
            error="unknown config sections",
            sections=sorted(unknown),
        )

    csv_section = _section(data, "csv", {"delimiter", "line_terminator", "encoding", "bom"})
    xlsx_section = _section(
        data,
        "xlsx",
        {"shared_string_threshold", "max_rows", "max_columns", "document_timestamp", "password"},
    )
    formats_section = _section(data, "formats", {"date", "datetime", "decimal", "integer"})

    kwargs: dict[str, Any] = {**csv_section, **xlsx_section}

    timestamp = kwargs.get("document_timestamp")
    if isinstance(timestamp, str):
        try:
            kwargs["document_timestamp"] = datetime.fromisoformat(timestamp)
        except ValueError as e:
            raise ConfigError(
                ErrorCodes.INVALID_CONFIG,
                option="document_timestamp",
                value=timestamp,
            ) from e

    if formats_section:
        for key, pattern in formats_section.items():
            if not isinstance(pattern, str) or not pattern:
                raise ConfigError(
                    ErrorCodes.INVALID_CONFIG,
                    option=f"formats.{key}",
                    value=pattern,
                )
        kwargs["number_formats"] = NumberFormats(**formats_section)

    return WriterConfig(**kwargs)


def _section(data: dict[str, Any], name: str, keys: set[str]) -> dict[str, Any]:
    section = data.get(name) or {}
    if not isinstance(section, dict):
        raise ConfigError(
            ErrorCodes.INVALID_CONFIG,
            section=name,
            error="section must be a mapping",
        )
    unknown = set(section) - keys
    if unknown:
        raise ConfigError(
            ErrorCodes.INVALID_CONFIG,
            section=name,
            error="unknown config keys",
            keys=sorted(unknown),
        )
    return dict(section)


def load_config(config_path: Path | None = None) -> WriterConfig:
    """
    설정 파일 로드.

    Args:
        config_path: YAML 경로 (None이면 프로젝트 루트의 default.yaml)

    Returns:
        WriterConfig (파일이 없으면 기본값)

    Raises:
        ConfigError: INVALID_CONFIG
    """
    if config_path is None:
        config_path = DEFAULT_CONFIG_PATH

    if not config_path.exists():
        return WriterConfig()

    try:
        with open(config_path, encoding="utf-8") as f:
            data: dict[str, Any] | None = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(
            ErrorCodes.INVALID_CONFIG,
            path=str(config_path),
            error=str(e),
        ) from e

    if data is None:
        return WriterConfig()
    if not isinstance(data, dict):
        raise ConfigError(
            ErrorCodes.INVALID_CONFIG,
            path=str(config_path),
            error="config root must be a mapping",
        )

    return config_from_dict(data)
