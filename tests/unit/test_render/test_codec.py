"""
test_codec.py - codec 경계 구조 테스트

DoD:
- StyleTable: 내용 주소, 처음 본 순서
- SharedStringPool: threshold
- OpenpyxlCodec: 고정 타임스탬프 패키지
- password: OLE 암호화 컨테이너 → 복호화하면 같은 워크북
"""

from datetime import datetime
from io import BytesIO
from zipfile import ZipFile

import msoffcrypto
import pytest
from msoffcrypto.exceptions import EncryptionError, InvalidKeyError
from msoffcrypto.format.ooxml import OOXMLFile
from openpyxl import load_workbook

from src.core.config import WriterConfig
from src.core.sinks import TrackingSink
from src.domain.errors import EncodingError, ErrorCodes
from src.domain.styles import StyleDescriptor
from src.render.codec import (
    CellKind,
    EncodedCell,
    EncodedRow,
    EncodedSheet,
    OpenpyxlCodec,
    SharedStringPool,
    StyleTable,
    encrypt_package,
)


class TestStyleTable:

    def test_intern_returns_stable_index(self):
        table = StyleTable()

        assert table.intern(StyleDescriptor(bold=True)) == 0
        assert table.intern(StyleDescriptor(italic=True)) == 1
        assert table.intern(StyleDescriptor(bold=True)) == 0
        assert len(table) == 2

    def test_lookup(self):
        table = StyleTable()
        style = StyleDescriptor(number_format="0.0")
        table.intern(style)

        assert table[0] == style
        assert table.index_of(StyleDescriptor(number_format="0.0")) == 0
        assert table.to_list() == [{"number_format": "0.0"}]


class TestSharedStringPool:

    def test_from_counts(self):
        pool = SharedStringPool.from_counts({"a": 1, "b": 3, "c": 2}, threshold=2)

        assert list(pool) == ["b", "c"]
        assert pool.get("c") == 1
        assert pool.get("a") is None
        assert "b" in pool

    def test_add_idempotent(self):
        pool = SharedStringPool()

        assert pool.add("x") == 0
        assert pool.add("x") == 0
        assert len(pool) == 1


def _package(config: WriterConfig) -> bytes:
    codec = OpenpyxlCodec(config)
    styles = StyleTable()
    bold = styles.intern(StyleDescriptor(bold=True))
    pool = SharedStringPool(["shared"])
    codec.write_sheet(
        EncodedSheet(
            name="Data",
            column_widths={0: 12.0},
            rows=[
                EncodedRow(
                    0,
                    (
                        EncodedCell(0, CellKind.SHARED_STRING, 0, bold),
                        EncodedCell(1, CellKind.STRING, "inline"),
                        EncodedCell(2, CellKind.NUMBER, 1.5),
                        EncodedCell(3, CellKind.BOOL, False),
                        EncodedCell(4, CellKind.FORMULA, "=C1*2"),
                    ),
                ),
            ],
        ),
        styles,
        pool,
    )
    buffer = BytesIO()
    codec.save(TrackingSink(buffer, label="buffer"))
    return buffer.getvalue()


class TestOpenpyxlCodec:

    def test_cells_written(self):
        ws = load_workbook(BytesIO(_package(WriterConfig())))["Data"]

        assert [c.value for c in ws[1]] == ["shared", "inline", 1.5, False, "=C1*2"]
        assert ws["A1"].font.bold is True
        assert ws.column_dimensions["A"].width == 12

    def test_only_model_sheets(self):
        wb = load_workbook(BytesIO(_package(WriterConfig())))

        assert wb.sheetnames == ["Data"]

    def test_zip_entries_use_fixed_timestamp(self):
        config = WriterConfig(document_timestamp=datetime(2010, 5, 4, 3, 2, 0))

        with ZipFile(BytesIO(_package(config))) as archive:
            stamps = {info.date_time for info in archive.infolist()}

        assert stamps == {(2010, 5, 4, 3, 2, 0)}

    def test_deterministic(self):
        assert _package(WriterConfig()) == _package(WriterConfig())

    def test_text_written_inline(self):
        """pool 등록 여부와 무관하게 sharedStrings 파트 없음."""
        with ZipFile(BytesIO(_package(WriterConfig()))) as archive:
            names = archive.namelist()

        assert "xl/sharedStrings.xml" not in names


# =============================================================================
# 암호화 테스트
# =============================================================================

OLE_SIGNATURE = b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1"


def _decrypt(data: bytes, password: str) -> bytes:
    office = msoffcrypto.OfficeFile(BytesIO(data))
    office.load_key(password=password, verify_password=True)
    out = BytesIO()
    office.decrypt(out)
    return out.getvalue()


class TestEncryption:
    """password 설정 시 OLE compound file로 암호화."""

    def test_output_is_ole_container(self):
        data = _package(WriterConfig(password="secret"))

        assert data.startswith(OLE_SIGNATURE)
        assert msoffcrypto.OfficeFile(BytesIO(data)).is_encrypted()

    def test_decrypts_to_workbook(self):
        data = _package(WriterConfig(password="secret"))

        ws = load_workbook(BytesIO(_decrypt(data, "secret")))["Data"]

        assert [c.value for c in ws[1]] == ["shared", "inline", 1.5, False, "=C1*2"]
        assert ws["A1"].font.bold is True

    def test_wrong_password_rejected(self):
        data = _package(WriterConfig(password="secret"))

        with pytest.raises(InvalidKeyError):
            _decrypt(data, "wrong")

    def test_encrypt_package(self):
        plain = _package(WriterConfig())

        assert encrypt_package(plain, "pw").startswith(OLE_SIGNATURE)

    def test_encrypt_failure_is_encoding_error(self, monkeypatch: pytest.MonkeyPatch):
        def fail(self, password, outfile):
            raise EncryptionError("boom")

        monkeypatch.setattr(OOXMLFile, "encrypt", fail)

        with pytest.raises(EncodingError) as exc_info:
            encrypt_package(_package(WriterConfig()), "pw")

        assert exc_info.value.code == ErrorCodes.ENCRYPTION_FAILED
        assert "pw" not in str(exc_info.value.to_dict())
