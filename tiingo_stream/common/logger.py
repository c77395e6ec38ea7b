from __future__ import annotations

import atexit
import logging
import queue
import sys
from datetime import datetime
from logging.handlers import QueueHandler, QueueListener, TimedRotatingFileHandler
from pathlib import Path
from typing import Any

from tiingo_stream.config.settings import logging_settings

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s [%(component)s:%(phase)s] %(message)s"

# 스트림 컴포넌트가 남기는 구조화 필드 (없으면 "-" 로 채움)
STREAM_RECORD_FIELDS: tuple[str, ...] = ("phase", "endpoint", "stream_id")


class StreamRecordFilter(logging.Filter):
    """레코드에 컴포넌트/스트림 필드 기본값을 채워 포맷 오류를 막는다"""

    def __init__(self, component: str) -> None:
        super().__init__()
        self.component = component

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "component"):
            record.component = self.component
        for field in STREAM_RECORD_FIELDS:
            if not hasattr(record, field):
                setattr(record, field, "-")
        return True


class PipelineLogger:
    """
    스트림 클라이언트용 로깅 시스템

    - 큐 기반 핸들러: 이벤트 루프 안에서는 enqueue 만 하고 실제 I/O 는 리스너 스레드가 처리
    - 로거 이름: tiingo_stream.<component>.<name>
    - extra 로 넘긴 구조화 필드(endpoint, phase, stream_id 등)는 레코드 속성으로 병합
    """

    @classmethod
    def get_logger(cls, name: str, component: str | None = None, **kwargs) -> PipelineLogger:
        return cls(name, component, **kwargs)

    def __init__(
        self,
        name: str,
        component: str | None = None,
        level: int | str | None = None,
        log_to_file: bool | None = None,
        log_to_console: bool = True,
        log_dir: str | None = None,
        rotation: str = "midnight",
    ):
        """
        Args:
            name: 로거 이름
            component: 컴포넌트 이름 (connection, common ...)
            level: 로깅 레벨 (기본: LOG_LEVEL)
            log_to_file: 파일 로깅 여부 (기본: LOG_TO_FILE)
            log_to_console: stdout 로깅 여부
            log_dir: 로그 디렉토리 (기본: LOG_DIR)
            rotation: 파일 로테이션 주기
        """
        self.name = name
        self.component = component or "main"
        self.level = level or logging_settings.level.upper()
        self.log_to_file = logging_settings.to_file if log_to_file is None else log_to_file
        self.log_to_console = log_to_console
        self.log_dir = log_dir or logging_settings.dir
        self.rotation = rotation

        self.logger_name = (
            f"tiingo_stream.{component}.{name}" if component else f"tiingo_stream.{name}"
        )
        self.logger = logging.getLogger(self.logger_name)
        self.logger.setLevel(self.level)
        # 같은 이름으로 다시 만들면 이전 핸들러를 교체
        self.logger.handlers.clear()
        self.logger.propagate = False

        self.log_queue: queue.Queue = queue.Queue()
        self.logger.addHandler(QueueHandler(self.log_queue))
        self.listener = QueueListener(
            self.log_queue, *self._build_handlers(), respect_handler_level=True
        )
        self.listener.start()
        self._listening = True
        atexit.register(self.close)

    def _build_handlers(self) -> list[logging.Handler]:
        formatter = logging.Formatter(LOG_FORMAT)
        record_filter = StreamRecordFilter(self.component)
        handlers: list[logging.Handler] = []

        if self.log_to_console:
            handlers.append(logging.StreamHandler(sys.stdout))

        if self.log_to_file:
            path = Path(self.log_file_path())
            path.parent.mkdir(parents=True, exist_ok=True)
            handlers.append(
                TimedRotatingFileHandler(
                    filename=path, when=self.rotation, backupCount=7, encoding="utf-8"
                )
            )

        for handler in handlers:
            handler.setFormatter(formatter)
            handler.addFilter(record_filter)
        return handlers

    def log_file_path(self) -> str:
        today = datetime.now().strftime("%Y-%m-%d")
        return f"{self.log_dir}/{self.component}/{self.name}_{today}.log"

    def is_enabled_for(self, level: int) -> bool:
        return self.logger.isEnabledFor(level)

    def log(
        self,
        level: int,
        msg: str,
        *,
        exc_info: Any = None,
        stack_info: bool = False,
        extra: dict[str, Any] | None = None,
        **fields: Any,
    ) -> None:
        """구조화 로그 한 줄

        extra 와 키워드 필드를 모두 레코드 속성으로 병합한다 (키워드가 우선).
        """
        record_extra: dict[str, Any] = {"component": self.component}
        if extra:
            record_extra.update(extra)
        record_extra.update(fields)
        self.logger.log(
            level, msg, exc_info=exc_info, stack_info=stack_info, extra=record_extra
        )

    def debug(self, msg: str, **kwargs: Any) -> None:
        self.log(logging.DEBUG, msg, **kwargs)

    def info(self, msg: str, **kwargs: Any) -> None:
        self.log(logging.INFO, msg, **kwargs)

    def warning(self, msg: str, **kwargs: Any) -> None:
        self.log(logging.WARNING, msg, **kwargs)

    def error(self, msg: str, **kwargs: Any) -> None:
        self.log(logging.ERROR, msg, **kwargs)

    def critical(self, msg: str, **kwargs: Any) -> None:
        self.log(logging.CRITICAL, msg, **kwargs)

    def close(self) -> None:
        """리스너 스레드 정지 (남은 레코드는 모두 flush)"""
        if self._listening:
            self._listening = False
            self.listener.stop()
