from __future__ import annotations

import pytest
from pydantic import ValidationError

from tiingo_stream.common.exceptions import ConfigurationError
from tiingo_stream.core.dto.io.config import StreamConfigDTO
from tiingo_stream.core.types import ErrorCode, FeedEndpoint
from tests.factory_builders import build_config, build_config_options


def test_config_defaults_applied() -> None:
    config = build_config()

    assert config.endpoint == FeedEndpoint.FX
    assert config.tickers == ("eurusd", "gbpusd")
    assert config.verbose is False
    assert config.data_format == "json"
    assert config.reconnect is True
    assert config.minimum_reconnection_delay == 1000
    assert config.reconnection_attempts == 100


def test_config_accepts_camel_case_aliases() -> None:
    config = StreamConfigDTO.from_options(
        endpoint="wss://api.tiingo.com/crypto",
        token="abc",
        thresholdLevel=2,
        tickers=["btcusd"],
        dataFormat="csv",
        minimumReconnectionDelay=0,
        reconnectionAttempts=0,
    )

    assert config.threshold_level == 2
    assert config.data_format == "csv"
    assert config.minimum_reconnection_delay == 0
    assert config.reconnection_attempts == 0


def test_config_is_immutable() -> None:
    config = build_config()

    with pytest.raises(ValidationError):
        config.token = "other"  # type: ignore[misc]


@pytest.mark.parametrize(
    ("overrides", "field", "message"),
    [
        ({"endpoint": "wss://example.com/fx"}, "endpoint", "endpoint does not match any valid websocket endpoint"),
        ({"endpoint": 42}, "endpoint", "endpoint is not a valid string"),
        ({"token": ""}, "token", "token must be a non-empty string"),
        ({"token": None}, "token", "token is not a valid string"),
        ({"threshold_level": "5"}, "threshold_level", "thresholdLevel is not a valid number"),
        ({"threshold_level": True}, "threshold_level", "thresholdLevel is not a valid number"),
        ({"tickers": "eurusd"}, "tickers", "tickers is not a valid array"),
        ({"tickers": []}, "tickers", "tickers must contain at least one symbol"),
        ({"tickers": ["eurusd", ""]}, "tickers", "tickers must contain only non-empty strings"),
        ({"verbose": "yes"}, "verbose", "verbose is not a valid boolean value"),
        ({"reconnect": 1}, "reconnect", "reconnect is not a valid boolean value"),
        ({"data_format": "xml"}, "data_format", "dataFormat does not match any valid option"),
        ({"minimum_reconnection_delay": -1}, "minimum_reconnection_delay", "minimumReconnectionDelay must be >= 0"),
        ({"reconnection_attempts": 1.5}, "reconnection_attempts", "reconnectionAttempts is not a valid integer"),
        ({"reconnection_attempts": -3}, "reconnection_attempts", "reconnectionAttempts must be >= 0"),
    ],
)
def test_invalid_field_raises_configuration_error(
    overrides: dict[str, object], field: str, message: str
) -> None:
    with pytest.raises(ConfigurationError) as exc_info:
        build_config(**overrides)

    assert str(exc_info.value) == message
    assert exc_info.value.field == field
    assert exc_info.value.code == ErrorCode.INVALID_FIELD
    assert exc_info.value.retryable is False


def test_configuration_error_is_value_error() -> None:
    with pytest.raises(ValueError):
        build_config(token="")


def test_unknown_option_rejected() -> None:
    with pytest.raises(ConfigurationError) as exc_info:
        StreamConfigDTO.from_options(**build_config_options(), unknown=True)

    assert exc_info.value.field == "unknown"


def test_to_scope_carries_endpoint_and_tickers() -> None:
    scope = build_config(tickers=["*"]).to_scope()

    assert scope.endpoint == "wss://api.tiingo.com/fx"
    assert scope.tickers == ("*",)
    assert scope.to_key() == "wss://api.tiingo.com/fx|*"
