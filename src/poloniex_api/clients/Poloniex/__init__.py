"""Poloniex REST client."""

from .poloniexClient import PoloniexClient, PRIVATE_API_BASE, PUBLIC_API_BASE, RETRY_DELAYS

__all__ = ['PoloniexClient', 'PRIVATE_API_BASE', 'PUBLIC_API_BASE', 'RETRY_DELAYS']
