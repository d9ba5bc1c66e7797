"""Domain layer: cell values, styles, sheet model, errors and schemas."""

from .cells import CellType, CellValue
from .errors import (
    CapacityExceededError,
    ConfigError,
    EncodingError,
    ErrorCodes,
    ModelConstructionError,
    SheetMakerError,
    SinkIOError,
    WarningCodes,
)
from .model import Cell, ColumnSpec, Row, Sheet, Workbook
from .schemas import WarningLog, WriteLog
from .styles import (
    HEADER_STYLE,
    Border,
    BorderSet,
    Color,
    NumberFormats,
    StyleDescriptor,
    TextAlign,
)

__all__ = [
    # cells
    "CellType",
    "CellValue",
    # styles
    "Border",
    "BorderSet",
    "Color",
    "HEADER_STYLE",
    "NumberFormats",
    "StyleDescriptor",
    "TextAlign",
    # model
    "Cell",
    "ColumnSpec",
    "Row",
    "Sheet",
    "Workbook",
    # errors
    "SheetMakerError",
    "ModelConstructionError",
    "CapacityExceededError",
    "EncodingError",
    "SinkIOError",
    "ConfigError",
    "ErrorCodes",
    "WarningCodes",
    # schemas
    "WarningLog",
    "WriteLog",
]
