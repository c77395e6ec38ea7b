"""스트림 내부 알림 버스

재연결 수명주기를 내부 컴포넌트(틱 디스패처 등)에 알린다.
알림 종류는 고정된 Enum 으로 제한하며 외부에 임의 이벤트 이름을 노출하지 않는다.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any, Callable

from tiingo_stream.common.logger import PipelineLogger

logger = PipelineLogger.get_logger("notification_bus", "common")

NotificationHandler = Callable[[Any], None]


class StreamNotification(StrEnum):
    RECONNECTION_STARTED = "reconnection_started"
    RECONNECTION_SUCCEEDED = "reconnection_succeeded"


class NotificationBus:
    """스트림 인스턴스 전용 알림 버스

    특징:
    - 동기 발행: 핸들러는 발행 호출 안에서 등록 순서대로 실행된다
    - 핸들러 예외는 로깅 후 다음 핸들러로 진행
    """

    def __init__(self) -> None:
        self._handlers: dict[StreamNotification, list[NotificationHandler]] = {
            kind: [] for kind in StreamNotification
        }

    def on(self, kind: StreamNotification, handler: NotificationHandler) -> None:
        """핸들러 등록

        Args:
            kind: 알림 종류
            handler: payload 하나를 받는 동기 함수
        """
        self._handlers[kind].append(handler)

    def off(self, kind: StreamNotification, handler: NotificationHandler) -> None:
        if handler in self._handlers[kind]:
            self._handlers[kind].remove(handler)

    def publish(self, kind: StreamNotification, payload: Any = None) -> None:
        for handler in list(self._handlers[kind]):
            try:
                handler(payload)
            except Exception as e:
                logger.error(
                    f"Notification handler failed: {e}",
                    exc_info=True,
                    extra={
                        "notification": kind.value,
                        "handler": getattr(handler, "__qualname__", repr(handler)),
                    },
                )


__all__ = ["NotificationBus", "StreamNotification"]
