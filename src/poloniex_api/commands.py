"""Command catalog for the Poloniex REST API."""

from enum import Enum
from typing import FrozenSet

from .exceptions import ConfigurationError


class CommandType(Enum):
    """Which endpoint a command is sent to."""
    PUBLIC = "Public"
    PRIVATE = "Private"


PUBLIC_COMMANDS: FrozenSet[str] = frozenset({
    "returnTicker",
    "return24hVolume",
    "returnOrderBook",
    "marketTradeHist",
    "returnChartData",
    "returnCurrencies",
    "returnLoanOrders",
})

PRIVATE_COMMANDS: FrozenSet[str] = frozenset({
    "returnBalances",
    "returnCompleteBalances",
    "returnDepositAddresses",
    "generateNewAddress",
    "returnDepositsWithdrawals",
    "returnOpenOrders",
    "returnTradeHistory",
    "returnAvailableAccountBalances",
    "returnTradableBalances",
    "returnOpenLoanOffers",
    "returnOrderTrades",
    "returnActiveLoans",
    "returnLendingHistory",
    "createLoanOffer",
    "cancelLoanOffer",
    "toggleAutoRenew",
    "buy",
    "sell",
    "cancelOrder",
    "moveOrder",
    "withdraw",
    "returnFeeInfo",
    "transferBalance",
    "returnMarginAccountSummary",
    "marginBuy",
    "marginSell",
    "getMarginPosition",
    "closeMarginPosition",
})

# Order execution modifiers, sent as `<modifier>=1`
ORDER_TYPES = ("fillOrKill", "immediateOrCancel", "postOnly")
MOVE_ORDER_TYPES = ("immediateOrCancel", "postOnly")

# Catalog names whose `command` value on the wire differs
_WIRE_NAMES = {
    "marketTradeHist": "returnTradeHistory",
}


def classify(command: str) -> CommandType:
    """Return the command type, or raise ConfigurationError for unknown names."""
    if command in PRIVATE_COMMANDS:
        return CommandType.PRIVATE
    if command in PUBLIC_COMMANDS:
        return CommandType.PUBLIC
    raise ConfigurationError(f"Invalid command: {command}")


def wire_name(command: str) -> str:
    """Name sent as the `command` parameter."""
    return _WIRE_NAMES.get(command, command)
