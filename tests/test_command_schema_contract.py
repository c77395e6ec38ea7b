from __future__ import annotations

import orjson

from tiingo_stream.core.dto.io.commands import SubscribeRequestDTO
from tests.factory_builders import build_config


def test_subscribe_request_wire_shape() -> None:
    config = build_config(token="secret", threshold_level=5, tickers=["eurusd"])

    wire = orjson.loads(SubscribeRequestDTO.from_config(config).to_wire())

    assert wire == {
        "eventName": "subscribe",
        "authorization": "secret",
        "dataFormat": "json",
        "eventData": {"thresholdLevel": 5, "tickers": ["eurusd"]},
    }


def test_subscribe_request_csv_format() -> None:
    config = build_config(data_format="csv", tickers=["*"])

    wire = orjson.loads(SubscribeRequestDTO.from_config(config).to_wire())

    assert wire["dataFormat"] == "csv"
    assert wire["eventData"]["tickers"] == ["*"]


def test_subscribe_request_repr_hides_token() -> None:
    request = SubscribeRequestDTO.from_config(build_config(token="very-secret"))

    assert "very-secret" not in repr(request)
