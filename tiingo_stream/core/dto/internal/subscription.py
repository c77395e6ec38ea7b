from __future__ import annotations

from dataclasses import dataclass

from tiingo_stream.core.types import TickCallback


@dataclass(slots=True, frozen=True, eq=False, repr=False, match_args=False, kw_only=True)
class TickSubscriptionDomain:
    """틱 컨슈머 등록 정보 (내부용)"""

    callback: TickCallback
    as_json: bool = False
    attach_session_id: bool = False
