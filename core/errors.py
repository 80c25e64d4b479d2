from __future__ import annotations


class WatcherError(Exception):
    pass


class NoLiveEndpoint(WatcherError):
    """Every RPC candidate for a network failed its liveness probe."""

    def __init__(self, network_name: str, tried: int = 0):
        super().__init__(f"No RPC available for {network_name} ({tried} tried)")
        self.network_name = network_name
        self.tried = tried


class RpcError(WatcherError):
    """The endpoint answered, but with a JSON-RPC error or a malformed result."""


class NotificationError(WatcherError):
    pass


class NoWalletsConfigured(WatcherError):
    pass
