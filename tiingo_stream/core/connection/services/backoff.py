from __future__ import annotations

import random

from tiingo_stream.core.dto.internal.common import (
    ConnectionPolicyDomain,
    HeartbeatPolicyDomain,
)


def compute_reconnect_delay(policy: ConnectionPolicyDomain) -> float:
    """재연결 대기 시간 (최소 지연 + 지터).

    Returns:
        minimum * (1 + U(jitter_min, jitter_max)) 초
    """
    base = max(0.0, policy.minimum_reconnection_delay)
    return base * (1.0 + random.uniform(policy.jitter_min, policy.jitter_max))


def compute_health_check_interval(policy: HeartbeatPolicyDomain) -> float:
    """하트비트 헬스체크 간격.

    Returns:
        check_interval * (1 + U(jitter_min, jitter_max)) 초
    """
    base = max(0.0, policy.check_interval)
    return base * (1.0 + random.uniform(policy.jitter_min, policy.jitter_max))
