"""
Binance REST proxy.

An asynchronous HTTP service that exposes a simplified REST surface over the
Binance spot API, taking care of request signing, authentication, retries,
rate limiting and error normalization on behalf of its callers.
"""

__version__ = "1.0.0"
__author__ = "Tim"
