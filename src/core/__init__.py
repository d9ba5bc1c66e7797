"""
Core layer: 설정, 출력 sink, 실행 로그.

역할:
- WriterConfig / default.yaml 로드
- sink 획득/해제 (원자적 파일 쓰기)
- WriteLog 생성/경고/완료
"""

from .config import WriterConfig, config_from_dict, load_config
from .ids import generate_write_id
from .logging import complete_write_log, create_write_log, emit_warning
from .sinks import TrackingSink, open_sink

__all__ = [
    # config
    "WriterConfig",
    "config_from_dict",
    "load_config",
    # sinks
    "TrackingSink",
    "open_sink",
    # ids
    "generate_write_id",
    # logging
    "create_write_log",
    "emit_warning",
    "complete_write_log",
]
