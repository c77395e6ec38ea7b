"""피드 수신 프레임 DTO.

프레임 형태: {"messageType": "I"|"E"|"H"|"A", "response": {"code", "message"}, "data": ...}
messageType 판별자로 네 종류 중 하나로 검증한다.
"""

from __future__ import annotations

from typing import Annotated, Any, Literal, TypeAlias, get_args

import orjson
from pydantic import Field, TypeAdapter

from tiingo_stream.core.dto.io._base import BaseFrameDTO
from tiingo_stream.core.types import HANDSHAKE_SUCCESS_CODE, MessageType

_KNOWN_MESSAGE_TYPES = frozenset(get_args(MessageType))


class FrameResponseDTO(BaseFrameDTO):
    # 피드가 문자열 코드를 보내는 경우도 있어 그대로 보존
    code: int | str | None = None
    message: str = ""


class InfoFrameDTO(BaseFrameDTO):
    """핸드셰이크 응답 (ack/nack)"""

    message_type: Literal["I"]
    response: FrameResponseDTO = Field(default_factory=FrameResponseDTO)
    data: Any = None

    @property
    def succeeded(self) -> bool:
        return self.response.code == HANDSHAKE_SUCCESS_CODE


class ErrorFrameDTO(BaseFrameDTO):
    """치명적 프로토콜 오류"""

    message_type: Literal["E"]
    response: FrameResponseDTO = Field(default_factory=FrameResponseDTO)


class HeartbeatFrameDTO(BaseFrameDTO):
    message_type: Literal["H"]
    response: FrameResponseDTO = Field(default_factory=FrameResponseDTO)


class DataFrameDTO(BaseFrameDTO):
    """틱 데이터. json 포맷은 배열, csv 포맷은 문자열 페이로드"""

    message_type: Literal["A"]
    service: str | None = None
    data: list[Any] | str = Field(default_factory=list)


InboundFrame: TypeAlias = Annotated[
    InfoFrameDTO | ErrorFrameDTO | HeartbeatFrameDTO | DataFrameDTO,
    Field(discriminator="message_type"),
]

_FRAME_ADAPTER: TypeAdapter[InboundFrame] = TypeAdapter(InboundFrame)


def decode_frame(raw: str | bytes | dict[str, Any]) -> InboundFrame | None:
    """원시 메시지를 프레임 DTO 로 변환.

    - messageType 이 알려진 값이 아니면 None (무시 대상)
    - JSON 파싱/검증 실패는 예외 그대로 전파 (호출자가 해당 프레임만 버림)
    """
    payload = raw if isinstance(raw, dict) else orjson.loads(raw)
    if not isinstance(payload, dict):
        return None
    if payload.get("messageType") not in _KNOWN_MESSAGE_TYPES:
        return None
    return _FRAME_ADAPTER.validate_python(payload)
