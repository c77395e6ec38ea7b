"""스트림 생성 설정 DTO.

생성 시점에 한 번 검증하고 이후 절대 변경하지 않는다.
필드가 하나라도 잘못되면 네트워크 작업 전에 ConfigurationError 를 던진다.
"""

from __future__ import annotations

from typing import Any

from pydantic import Field, ValidationError, ValidationInfo, field_validator
from pydantic.alias_generators import to_snake

from tiingo_stream.common.exceptions.errors import ConfigurationError
from tiingo_stream.core.dto.internal.common import StreamScopeDomain
from tiingo_stream.core.dto.io._base import BaseIOModelDTO
from tiingo_stream.core.types import FEED_ENDPOINTS, DataFormat

_DATA_FORMATS: tuple[str, ...] = ("json", "csv")


def _is_number(value: Any) -> bool:
    # bool 은 int 의 하위 타입이므로 명시적으로 제외
    return isinstance(value, (int, float)) and not isinstance(value, bool)


class StreamConfigDTO(BaseIOModelDTO):
    """스트림 생성 설정 (불변)

    camelCase 별칭(thresholdLevel, dataFormat ...)과 파이썬 필드명 모두 허용한다.
    """

    endpoint: str = Field(..., description="허용 목록에 있는 피드 엔드포인트")
    token: str = Field(..., description="인증 토큰")
    threshold_level: int | float = Field(..., description="피드별 샘플링 임계 레벨")
    tickers: tuple[str, ...] = Field(..., description="구독 심볼 ('*' 는 전체)")
    verbose: bool = False
    data_format: DataFormat = "json"
    reconnect: bool = True
    minimum_reconnection_delay: int | float = Field(1000, description="최소 재연결 지연 (ms)")
    reconnection_attempts: int = Field(100, description="재연결 시도 예산")

    @field_validator("endpoint", mode="before")
    @classmethod
    def _check_endpoint(cls, value: Any) -> Any:
        if not isinstance(value, str):
            raise ValueError("endpoint is not a valid string")
        if value not in FEED_ENDPOINTS:
            raise ValueError("endpoint does not match any valid websocket endpoint")
        return value

    @field_validator("token", mode="before")
    @classmethod
    def _check_token(cls, value: Any) -> Any:
        if not isinstance(value, str):
            raise ValueError("token is not a valid string")
        if not value.strip():
            raise ValueError("token must be a non-empty string")
        return value

    @field_validator("threshold_level", mode="before")
    @classmethod
    def _check_threshold_level(cls, value: Any) -> Any:
        if not _is_number(value):
            raise ValueError("thresholdLevel is not a valid number")
        return value

    @field_validator("tickers", mode="before")
    @classmethod
    def _check_tickers(cls, value: Any) -> Any:
        if not isinstance(value, (list, tuple)):
            raise ValueError("tickers is not a valid array")
        if not value:
            raise ValueError("tickers must contain at least one symbol")
        if not all(isinstance(t, str) and t for t in value):
            raise ValueError("tickers must contain only non-empty strings")
        return tuple(value)

    @field_validator("verbose", "reconnect", mode="before")
    @classmethod
    def _check_flag(cls, value: Any, info: ValidationInfo) -> Any:
        if not isinstance(value, bool):
            raise ValueError(f"{info.field_name} is not a valid boolean value")
        return value

    @field_validator("data_format", mode="before")
    @classmethod
    def _check_data_format(cls, value: Any) -> Any:
        if not isinstance(value, str):
            raise ValueError("dataFormat is not a valid string")
        if value not in _DATA_FORMATS:
            raise ValueError("dataFormat does not match any valid option")
        return value

    @field_validator("minimum_reconnection_delay", mode="before")
    @classmethod
    def _check_delay(cls, value: Any) -> Any:
        if not _is_number(value):
            raise ValueError("minimumReconnectionDelay is not a valid number")
        if value < 0:
            raise ValueError("minimumReconnectionDelay must be >= 0")
        return value

    @field_validator("reconnection_attempts", mode="before")
    @classmethod
    def _check_attempts(cls, value: Any) -> Any:
        if not isinstance(value, int) or isinstance(value, bool):
            raise ValueError("reconnectionAttempts is not a valid integer")
        if value < 0:
            raise ValueError("reconnectionAttempts must be >= 0")
        return value

    @classmethod
    def from_options(cls, **options: Any) -> StreamConfigDTO:
        """검증 후 생성. pydantic ValidationError 는 ConfigurationError 로 변환한다."""
        try:
            return cls.model_validate(options)
        except ValidationError as e:
            raise _to_configuration_error(e) from e

    def to_scope(self) -> StreamScopeDomain:
        return StreamScopeDomain(endpoint=self.endpoint, tickers=self.tickers)


def _to_configuration_error(err: ValidationError) -> ConfigurationError:
    """첫 번째 오류 필드를 기준으로 설명 메시지를 만든다 (field 는 파이썬 필드명)."""
    first = err.errors()[0]
    loc = first.get("loc") or ()
    field = to_snake(str(loc[0])) if loc else None
    ctx_error = (first.get("ctx") or {}).get("error")
    if ctx_error is not None:
        message = str(ctx_error)
    else:
        message = f"{field}: {first.get('msg')}" if field else str(first.get("msg"))
    return ConfigurationError(message, field=field)
