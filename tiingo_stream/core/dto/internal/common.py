from __future__ import annotations

from dataclasses import dataclass

from tiingo_stream.core.types import ErrorCategory, ExceptionGroup


@dataclass(slots=True, frozen=True, eq=True, repr=False, match_args=False, kw_only=True)
class StreamScopeDomain:
    """스트림 스코프(내부 도메인 값 객체).

    - (endpoint, tickers) 조합을 로그 컨텍스트/식별자에 재사용
    """

    endpoint: str
    tickers: tuple[str, ...]

    def to_key(self) -> str:
        """스코프를 로그 키로 변환 (endpoint|ticker,ticker 형식)"""
        return f"{self.endpoint}|{','.join(self.tickers)}"


@dataclass(slots=True, repr=False, eq=False, match_args=False, kw_only=True)
class HeartbeatPolicyDomain:
    """하트비트 헬스체크 정책(도메인). 단위는 초."""

    check_interval: float = 120.0
    jitter_min: float = 0.10
    jitter_max: float = 0.25


@dataclass(slots=True, repr=False, eq=False, match_args=False, kw_only=True)
class ConnectionPolicyDomain:
    """재연결/핸드셰이크 정책(도메인). 단위는 초."""

    minimum_reconnection_delay: float = 1.0
    jitter_min: float = 0.10
    jitter_max: float = 0.20
    handshake_timeout: float = 30.0
    open_timeout: float = 10.0


@dataclass(slots=True, repr=False, eq=False, match_args=False, kw_only=True)
class RetryBudgetDomain:
    """재연결 시도 예산.

    - remaining: 남은 시도 횟수 (시도마다 1 감소)
    - maximum: 설정된 최대값 (재연결 성공 시 remaining 복원 기준)
    """

    maximum: int
    remaining: int

    @classmethod
    def full(cls, maximum: int) -> RetryBudgetDomain:
        return cls(maximum=maximum, remaining=maximum)

    @property
    def exhausted(self) -> bool:
        return self.remaining <= 0

    def consume(self) -> int:
        """시도 1회 차감 후 남은 횟수 반환"""
        if self.remaining > 0:
            self.remaining -= 1
        return self.remaining

    def restore(self) -> None:
        self.remaining = self.maximum


@dataclass(
    slots=True, frozen=True, eq=False, repr=False, match_args=False, kw_only=True
)
class RuleDomain:
    """예외 분류 규칙(도메인)

    exc:   매칭할 예외 타입(단일 타입 또는 타입 튜플)
    result: ErrorCategory
    """

    exc: ExceptionGroup
    result: ErrorCategory
