"""통합 Settings 모듈 - 환경변수 기반

이 모듈의 역할:
    1. 코드에 합리적인 기본값 제공
    2. 환경변수로 오버라이드 (우선순위 높음)
    3. 타입 안전성 보장 (Pydantic 자동 검증)

설정 우선순위:
    1. 환경변수 (최우선) - export TIINGO_TOKEN=...
    2. .env 파일 - tiingo_stream/config/.env
    3. 코드 기본값 (settings.py 내부)

사용 예시:
    export TIINGO_TOKEN=xxxx
    export TIINGO_TICKERS=eurusd,gbpusd
    export WS_HEARTBEAT_CHECK_INTERVAL=60
    python main.py
"""

from __future__ import annotations

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

from tiingo_stream.core.dto.internal.common import (
    ConnectionPolicyDomain,
    HeartbeatPolicyDomain,
)
from tiingo_stream.core.dto.io.config import StreamConfigDTO
from tiingo_stream.core.types import FeedEndpoint

# 설정 파일 경로
config_dir = Path(__file__).parent


def env_settings(prefix: str) -> SettingsConfigDict:
    """환경변수 + .env 통합 설정

    Args:
        prefix: 환경변수 접두사 (예: TIINGO_, WS_)

    Returns:
        Pydantic 설정 딕셔너리
    """
    return SettingsConfigDict(
        env_prefix=prefix,
        env_file=config_dir / ".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


class StreamSettings(BaseSettings):
    """스트림 구독 설정 (CLI 실행용)

    환경변수 오버라이드:
        TIINGO_ENDPOINT: 피드 엔드포인트 (기본: wss://api.tiingo.com/fx)
        TIINGO_TOKEN: 인증 토큰 (필수, 보안상 환경변수 권장)
        TIINGO_THRESHOLD_LEVEL: 샘플링 임계 레벨 (기본: 5)
        TIINGO_TICKERS: 콤마 구분 심볼 목록 (기본: *)
        TIINGO_DATA_FORMAT: json | csv (기본: json)
        TIINGO_VERBOSE: 상세 추적 로그 (기본: false)
        TIINGO_RECONNECT: 자동 재연결 (기본: true)
        TIINGO_MINIMUM_RECONNECTION_DELAY: 최소 재연결 지연 ms (기본: 1000)
        TIINGO_RECONNECTION_ATTEMPTS: 재연결 시도 예산 (기본: 100)
    """

    endpoint: str = FeedEndpoint.FX.value
    token: str = ""
    threshold_level: int | float = 5
    tickers: str = "*"
    data_format: str = "json"
    verbose: bool = False
    reconnect: bool = True
    minimum_reconnection_delay: float = 1000
    reconnection_attempts: int = 100

    model_config = env_settings("TIINGO_")

    @property
    def ticker_list(self) -> list[str]:
        """콤마 구분 문자열을 심볼 리스트로 변환"""
        return [t.strip() for t in self.tickers.split(",") if t.strip()]

    def to_config(self, **overrides: object) -> StreamConfigDTO:
        """검증된 StreamConfigDTO 생성 (overrides 가 환경값보다 우선)"""
        payload: dict[str, object] = {
            "endpoint": self.endpoint,
            "token": self.token,
            "threshold_level": self.threshold_level,
            "tickers": self.ticker_list,
            "verbose": self.verbose,
            "data_format": self.data_format,
            "reconnect": self.reconnect,
            "minimum_reconnection_delay": self.minimum_reconnection_delay,
            "reconnection_attempts": self.reconnection_attempts,
        }
        payload.update({k: v for k, v in overrides.items() if v is not None})
        return StreamConfigDTO.from_options(**payload)


class WebsocketSettings(BaseSettings):
    """WebSocket 타이밍 설정 (환경변수 기반)

    환경변수 오버라이드 (모든 타이밍 설정은 초 단위):
        WS_HEARTBEAT_CHECK_INTERVAL: 하트비트 헬스체크 기본 간격 (기본: 120초)
        WS_HEARTBEAT_JITTER_MIN / WS_HEARTBEAT_JITTER_MAX: 간격 증가 비율 (기본: 0.10 ~ 0.25)
        WS_RECONNECT_JITTER_MIN / WS_RECONNECT_JITTER_MAX: 재연결 지연 증가 비율 (기본: 0.10 ~ 0.20)
        WS_HANDSHAKE_TIMEOUT: 구독 응답 대기 타임아웃 (기본: 30초)
        WS_OPEN_TIMEOUT: 소켓 오픈 타임아웃 (기본: 10초)
    """

    heartbeat_check_interval: float = 120.0
    heartbeat_jitter_min: float = 0.10
    heartbeat_jitter_max: float = 0.25
    reconnect_jitter_min: float = 0.10
    reconnect_jitter_max: float = 0.20
    handshake_timeout: float = 30.0
    open_timeout: float = 10.0

    model_config = env_settings("WS_")

    def heartbeat_policy(self) -> HeartbeatPolicyDomain:
        return HeartbeatPolicyDomain(
            check_interval=self.heartbeat_check_interval,
            jitter_min=self.heartbeat_jitter_min,
            jitter_max=self.heartbeat_jitter_max,
        )

    def connection_policy(self, minimum_reconnection_delay_ms: float) -> ConnectionPolicyDomain:
        return ConnectionPolicyDomain(
            minimum_reconnection_delay=minimum_reconnection_delay_ms / 1000.0,
            jitter_min=self.reconnect_jitter_min,
            jitter_max=self.reconnect_jitter_max,
            handshake_timeout=self.handshake_timeout,
            open_timeout=self.open_timeout,
        )


class LoggingSettings(BaseSettings):
    """로깅 설정

    환경변수 오버라이드:
        LOG_LEVEL: 로그 레벨 (기본: INFO)
        LOG_TO_FILE: 파일 로깅 여부 (기본: false)
        LOG_DIR: 로그 디렉토리 (기본: logs)
    """

    level: str = "INFO"
    to_file: bool = False
    dir: str = "logs"

    model_config = env_settings("LOG_")


# ========================================
# 설정 인스턴스 (싱글톤)
# ========================================

stream_settings = StreamSettings()
websocket_settings = WebsocketSettings()
logging_settings = LoggingSettings()
