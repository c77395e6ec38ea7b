from __future__ import annotations

from typing import Literal

from pydantic import Field

from tiingo_stream.core.dto.io._base import BaseIOModelDTO
from tiingo_stream.core.dto.io.config import StreamConfigDTO
from tiingo_stream.core.types import DataFormat


class SubscribeEventDataDTO(BaseIOModelDTO):
    threshold_level: int | float
    tickers: list[str]


class SubscribeRequestDTO(BaseIOModelDTO):
    """구독 요청 프레임

    와이어 형태:
        {"eventName": "subscribe", "authorization": ..., "dataFormat": ...,
         "eventData": {"thresholdLevel": ..., "tickers": [...]}}
    """

    event_name: Literal["subscribe"] = "subscribe"
    authorization: str = Field(..., repr=False)
    data_format: DataFormat
    event_data: SubscribeEventDataDTO

    @classmethod
    def from_config(cls, config: StreamConfigDTO) -> SubscribeRequestDTO:
        return cls(
            authorization=config.token,
            data_format=config.data_format,
            event_data=SubscribeEventDataDTO(
                threshold_level=config.threshold_level,
                tickers=list(config.tickers),
            ),
        )
