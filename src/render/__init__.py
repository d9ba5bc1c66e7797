"""
Render layer: XLSX/CSV 출력 생성.

역할:
- 모델 → 파일/바이트/스트림
- openpyxl (XLSX), 구분자 텍스트 (CSV)
"""

from .base import BaseRenderer, validate_file_name
from .csv import CsvRenderer, encode_field, render_csv
from .excel import XlsxRenderer, render_xlsx

__all__ = [
    "render_csv",
    "render_xlsx",
    "encode_field",
    "validate_file_name",
    "BaseRenderer",
    "CsvRenderer",
    "XlsxRenderer",
]
