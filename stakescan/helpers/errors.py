"""Exception types raised across the discovery engine."""


class RpcError(ValueError):
    """JSON-RPC endpoint answered with an error member or a malformed body."""

    def __init__(self, message: str, *, code: int | None = None) -> None:
        super().__init__(message)
        self.code = code


class InvalidAddressError(ValueError):
    """An address received at the service boundary is not 20-byte hex."""

    def __init__(self, address: object) -> None:
        super().__init__(f"Invalid address: {address!r}")
        self.address = address


class NotReadyError(RuntimeError):
    """No snapshot has been published yet (cold start)."""


class SanityCheckError(RuntimeError):
    """A freshly built snapshot holds implausibly few validators."""

    def __init__(self, found: int, minimum: int) -> None:
        super().__init__(
            f"Invalid result: {found} validators (expected >={minimum})"
        )
        self.found = found
        self.minimum = minimum


__all__ = [
    "InvalidAddressError",
    "NotReadyError",
    "RpcError",
    "SanityCheckError",
]
