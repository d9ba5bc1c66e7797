"""
ID 생성: write_id

- 쓰기 호출마다 새로 발급 (출력 바이트에는 포함되지 않음)
"""

import uuid
from datetime import UTC, datetime

WRITE_ID_PREFIX = "WRITE-"


def generate_write_id() -> str:
    """
    Write ID 생성.

    고유성 보장: UUID v4
    포맷: WRITE-{timestamp}-{uuid[:8]}

    Returns:
        write_id 문자열
    """
    now = datetime.now(UTC)
    timestamp = now.strftime("%Y%m%d%H%M%S")
    unique = uuid.uuid4().hex[:8]

    return f"{WRITE_ID_PREFIX}{timestamp}-{unique}"
