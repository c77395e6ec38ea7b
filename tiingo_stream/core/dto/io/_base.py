"""I/O 경계 DTO 기반 클래스 모듈

Pydantic v2 ConfigDict 를 경계별로 고정해 두고 각 DTO 가 상속만 하도록 합니다.
- 외부로 나가거나 사용자에게 받는 모델: 알 수 없는 필드 금지
- 피드에서 들어오는 프레임: 알 수 없는 필드 무시 (벤더 필드 추가에 관대)
"""

from __future__ import annotations

import orjson
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

# 사용자 입력/송신 모델용 ConfigDict
OPTIMIZED_CONFIG = ConfigDict(
    extra="forbid",  # 알 수 없는 필드 금지
    validate_default=True,  # 기본값도 검증
    frozen=True,  # 불변 객체
    alias_generator=to_camel,  # 와이어 표기(camelCase) 별칭
    populate_by_name=True,  # 파이썬 필드명으로도 생성 가능
    arbitrary_types_allowed=False,
)

# 수신 프레임용 ConfigDict
FRAME_CONFIG = ConfigDict(
    extra="ignore",
    frozen=True,
    alias_generator=to_camel,
    populate_by_name=True,
)


class BaseIOModelDTO(BaseModel):
    """I/O 경계용 공통 Pydantic v2 베이스 모델 (불변, 알 수 없는 필드 금지)."""

    model_config = OPTIMIZED_CONFIG

    def to_wire(self) -> str:
        """camelCase 별칭 기준 JSON 텍스트로 직렬화 (orjson)"""
        return orjson.dumps(self.model_dump(by_alias=True, mode="json")).decode("utf-8")


class BaseFrameDTO(BaseModel):
    """수신 프레임 베이스 모델."""

    model_config = FRAME_CONFIG
