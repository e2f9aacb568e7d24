"""Exceptions raised by the client sync transports."""


class TransportError(Exception):
    """
    Raised when a transport cannot deliver a snapshot.

    Covers network failures, timeouts, non-2xx responses, unsuccessful
    response bodies and malformed payloads.
    """

    pass
