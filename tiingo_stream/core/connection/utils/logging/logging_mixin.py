from __future__ import annotations

import logging
from typing import Any

from pydantic import BaseModel, ConfigDict

from tiingo_stream.common.logger import PipelineLogger
from tiingo_stream.core.connection.utils.timestamp import format_trace_line
from tiingo_stream.core.dto.internal.common import StreamScopeDomain


class _LogExtra(BaseModel):
    """None 값을 걸러내는 동적 로그 페이로드."""

    model_config = ConfigDict(extra="allow")

    endpoint: str
    phase: str
    stream_id: str | None = None


class ScopedStreamLoggingMixin:
    """Stream scope-aware structured logging helpers.

    verbose 가 켜져 있으면 추적 라인을 INFO, 아니면 DEBUG 로 남긴다.
    """

    _logger: PipelineLogger
    scope: StreamScopeDomain
    verbose: bool = False

    def _current_stream_id(self) -> str | None:
        return None

    def _scope_log_extra(self, phase: str, **extra: Any) -> dict[str, Any]:
        payload = _LogExtra(
            endpoint=self.scope.endpoint,
            phase=phase,
            stream_id=self._current_stream_id(),
            **extra,
        )
        return payload.model_dump(exclude_none=True)

    def _trace(self, message: str, phase: str, *, tag: str = "MESSAGE", **extra: Any) -> None:
        level = logging.INFO if self.verbose else logging.DEBUG
        if not self._logger.is_enabled_for(level):
            return
        line = format_trace_line(self._current_stream_id(), tag, message)
        self._logger.log(level, line, extra=self._scope_log_extra(phase, **extra))

    def _log_info(self, message: str, phase: str, **extra: Any) -> None:
        self._logger.info(message, extra=self._scope_log_extra(phase, **extra))

    def _log_debug(self, message: str, phase: str, **extra: Any) -> None:
        self._logger.debug(message, extra=self._scope_log_extra(phase, **extra))

    def _log_warning(
        self, message: str, phase: str, *, exc_info: bool = False, **extra: Any
    ) -> None:
        self._logger.warning(
            message, exc_info=exc_info, extra=self._scope_log_extra(phase, **extra)
        )

    def _log_error(
        self, message: str, phase: str, *, exc_info: bool = False, **extra: Any
    ) -> None:
        self._logger.error(
            message, exc_info=exc_info, extra=self._scope_log_extra(phase, **extra)
        )
