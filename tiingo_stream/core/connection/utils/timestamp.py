"""verbose 추적 로그용 UTC 타임스탬프 유틸리티."""

from __future__ import annotations

from datetime import datetime, timezone


def utc_trace_stamp(now: datetime | None = None) -> str:
    """추적 로그 접두 타임스탬프.

    Returns:
        "2018.12.03, 07:32:13.0162 UTC" 형식 (밀리초는 4자리 zero-pad)
    """
    now = (now or datetime.now(timezone.utc)).astimezone(timezone.utc)
    millis = now.microsecond // 1000
    return (
        f"{now.year:04d}.{now.month:02d}.{now.day:02d}, "
        f"{now.hour:02d}:{now.minute:02d}:{now.second:02d}.{millis:04d} UTC"
    )


def format_trace_line(stream_id: str | None, tag: str, text: str) -> str:
    """'<stamp> -> [<stream id>] [<TAG>] <text>' 형식. stream id 가 없으면 생략"""
    id_part = f"[{stream_id}] " if stream_id else ""
    return f"{utc_trace_stamp()} -> {id_part}[{tag}] {text}"
