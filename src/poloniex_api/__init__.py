"""Poloniex REST API client."""

from .clients.Poloniex import PoloniexClient, RETRY_DELAYS
from .commands import (
    CommandType,
    MOVE_ORDER_TYPES,
    ORDER_TYPES,
    PRIVATE_COMMANDS,
    PUBLIC_COMMANDS,
    classify,
)
from .config import Settings
from .exceptions import (
    ConfigurationError,
    PoloniexError,
    ProtocolError,
    RequestError,
    RetryExhausted,
)
from .models import MINUTE, HOUR, DAY, WEEK, MONTH, YEAR, Candle
from .nonce import Nonce

__all__ = [
    'PoloniexClient', 'RETRY_DELAYS',
    'CommandType', 'MOVE_ORDER_TYPES', 'ORDER_TYPES', 'PRIVATE_COMMANDS', 'PUBLIC_COMMANDS', 'classify',
    'Settings',
    'ConfigurationError', 'PoloniexError', 'ProtocolError', 'RequestError', 'RetryExhausted',
    'MINUTE', 'HOUR', 'DAY', 'WEEK', 'MONTH', 'YEAR', 'Candle',
    'Nonce',
]
