from __future__ import annotations

import httpx
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential_jitter

from ..settings import settings


def default_timeout() -> httpx.Timeout:
    t = settings.http_timeout_s
    return httpx.Timeout(connect=min(10.0, t), read=t, write=min(20.0, t), pool=10.0)


def default_limits() -> httpx.Limits:
    return httpx.Limits(max_connections=20, max_keepalive_connections=5)


class HttpClientFactory:
    """Creates httpx clients with sane defaults.

    Adapters own one client each; pass `transport` to stub the network.
    """

    @staticmethod
    def client(
        base_url: str | None = None,
        headers: dict | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=base_url or "",
            headers=headers,
            timeout=default_timeout(),
            limits=default_limits(),
            follow_redirects=True,
            transport=transport,
        )


TransientHttpError = (httpx.TimeoutException, httpx.NetworkError, httpx.RemoteProtocolError)


def transient_retry(attempts: int = 5, *, initial: float = 0.5, max_wait: float = 10.0):
    return retry(
        reraise=True,
        stop=stop_after_attempt(max(1, attempts)),
        wait=wait_exponential_jitter(initial=initial, max=max_wait),
        retry=retry_if_exception_type(TransientHttpError),
    )
