"""
Pytest fixtures for the sheet writer tests.

테스트 구성:
- 정상 케이스, 경계 케이스, 실패 케이스 분리
"""

from datetime import date
from pathlib import Path

import pytest
import yaml

from src.core.config import WriterConfig
from src.domain.model import Sheet, Workbook

# =============================================================================
# Path Fixtures
# =============================================================================

@pytest.fixture
def project_root() -> Path:
    """프로젝트 루트 경로."""
    return Path(__file__).parent.parent


@pytest.fixture
def default_config_path(project_root: Path) -> Path:
    """default.yaml 경로."""
    return project_root / "default.yaml"


@pytest.fixture
def default_config(default_config_path: Path) -> dict:
    """기본 설정 로드 (raw dict)."""
    with open(default_config_path, encoding="utf-8") as f:
        return yaml.safe_load(f)


# =============================================================================
# Model Fixtures
# =============================================================================

@pytest.fixture
def report_sheet() -> Sheet:
    """
    헤더 + 데이터 2행 시트.

    Name | Amount | Date
    Alice | 12.5 | 2025-01-15
    Bob | 7 | (빈칸)
    """
    sheet = Sheet("Report")
    sheet.append_header(["Name", "Amount", "Date"])
    sheet.append_row(["Alice", 12.5, date(2025, 1, 15)])
    sheet.append_row(["Bob", 7])
    return sheet


@pytest.fixture
def report_workbook(report_sheet: Sheet) -> Workbook:
    """Report 시트 하나짜리 워크북."""
    workbook = Workbook()
    workbook.add_sheet(report_sheet)
    return workbook


@pytest.fixture
def two_sheet_workbook(report_sheet: Sheet) -> Workbook:
    """Report + Notes 두 시트 워크북."""
    workbook = Workbook()
    workbook.add_sheet(report_sheet)
    notes = workbook.add_sheet("Notes")
    notes.append_lines(["first note", "second note"])
    return workbook


# =============================================================================
# Config Fixtures
# =============================================================================

@pytest.fixture
def writer_config() -> WriterConfig:
    """기본 writer 설정."""
    return WriterConfig()


@pytest.fixture
def small_config() -> WriterConfig:
    """경계 테스트용: 최대 3행, 4열."""
    return WriterConfig(max_rows=3, max_columns=4)
