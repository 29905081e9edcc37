"""Discovery of whether a game server speaks TLS."""

from collections.abc import Awaitable, Callable

import structlog

from codegame.errors import NetworkError

logger = structlog.get_logger()


class TransportNegotiator:
    """
    Tracks whether one host is reached over ``https``/``wss`` or ``http``/``ws``.

    The TLS state is unknown until an attempt succeeds. While unknown, the
    secure scheme is tried first and the plain one second. The state is
    shared by HTTP requests and sockets, so the first successful request
    settles the scheme for everything that follows.
    """

    def __init__(self, host: str) -> None:
        self._host = host
        self._tls: bool | None = None

    @property
    def tls(self) -> bool | None:
        """True/False once known, None while unknown."""
        return self._tls

    def candidates(self, base_scheme: str) -> list[str]:
        """Schemes to try for ``base_scheme`` (e.g. ``ws``), in preference order."""
        secure = f"{base_scheme}s"
        if self._tls is None:
            return [secure, base_scheme]
        if self._tls:
            return [secure]
        return [base_scheme]

    def record_success(self, scheme: str, base_scheme: str) -> None:
        tls = scheme != base_scheme
        if self._tls is None and not tls:
            logger.warning("server does not support TLS", host=self._host)
        self._tls = tls

    def reset(self) -> None:
        self._tls = None

    async def negotiate[T](self, base_scheme: str, attempt: Callable[[str], Awaitable[T]]) -> T:
        """Run ``attempt`` with each candidate scheme until one succeeds.

        ``attempt`` receives the scheme and raises NetworkError when the
        server cannot be reached with it. When every candidate fails the TLS
        state goes back to unknown and NetworkError is raised, chained to the
        last failure.
        """
        schemes = self.candidates(base_scheme)
        last_error: NetworkError | None = None
        for scheme in schemes:
            try:
                result = await attempt(scheme)
            except NetworkError as e:
                logger.debug("transport attempt failed", host=self._host, scheme=scheme, error=str(e))
                last_error = e
                continue
            self.record_success(scheme, base_scheme)
            return result

        self.reset()
        logger.error("unable to reach the server", host=self._host, schemes=schemes)
        raise NetworkError(f"unable to connect to {self._host} using {' or '.join(schemes)}") from last_error
