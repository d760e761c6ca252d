# http_client.py
from __future__ import annotations
import sys, asyncio, random, uuid
from typing import Optional
import httpx

class RetryPolicy:
    def __init__(
        self,
        retries: int = 1,
        backoff_base: float = 0.25,
        backoff_cap: float = 4.0,
        retry_statuses: set[int] | None = None,
    ):
        # retries counts attempts, so 1 means a single try with no retry
        self.retries = max(1, retries)
        self.backoff_base = backoff_base
        self.backoff_cap = backoff_cap
        self.retry_statuses = retry_statuses or {500, 502, 503, 504}

    def sleep_seconds(self, attempt: int) -> float:
        return min(self.backoff_cap, self.backoff_base * (2 ** (attempt - 1))) + random.uniform(0, 0.5)

class HttpClient:
    """
    - Shared async JSON client used both upstream (TheCatAPI) and downstream (the proxy):
      - base_url + default headers (api key, Accept)
      - httpx timeouts
      - opt-in retry policy (5xx + network); one attempt by default
      - 4xx fail fast, error envelope logged
    """

    def __init__(
        self,
        base_url: str,
        connect_timeout: float = 5.0,
        read_timeout: float = 30.0,
        retries: int = 1,
        *,
        retry_statuses: Optional[set[int]] = None,
        default_headers: Optional[dict[str, str]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = httpx.Timeout(
            connect=connect_timeout,
            read=read_timeout,
            write=read_timeout,
            pool=read_timeout,
        )
        self.policy = RetryPolicy(retries=retries, retry_statuses=retry_statuses)
        self.default_headers = {"Accept": "application/json", **(default_headers or {})}
        self.transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self):
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            headers=self.default_headers,
            transport=self.transport,
        )
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.aclose()

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def request(self, method: str, path: str, **kwargs) -> httpx.Response:
        """
        Send one request, retrying transient 5xx + network errors while the policy allows.
        Any 4xx fails fast after logging the {error, code} envelope when the body carries one.
        Each request tagged with X-Request-Id for traceability.
        """
        if self._client is None:
            raise RuntimeError("HttpClient used outside of 'async with'")
        last_exc: Exception | None = None

        req_id = kwargs.pop("req_id", uuid.uuid4().hex[:12])
        headers = kwargs.pop("headers", {})
        headers.setdefault("X-Request-Id", req_id)
        kwargs["headers"] = headers

        url = self.base_url + path # for logs

        for attempt in range(1, self.policy.retries + 1):
            try:
                resp = await self._client.request(method, path, **kwargs)
                status = resp.status_code

                if status in self.policy.retry_statuses:
                    raise httpx.HTTPStatusError(f"server error {status}", request=resp.request, response=resp)

                if 400 <= status < 500:
                    print(f"[req#{req_id}] {method} {url} returned {status}: {_describe(resp)}", file=sys.stderr)
                    resp.raise_for_status()

                if not (200 <= status < 300):
                    resp.raise_for_status()

                if attempt > 1:
                    print(f"[req#{req_id}] succeeded after {attempt} attempt(s)", file=sys.stderr)
                return resp

            except httpx.HTTPStatusError as e:
                status = getattr(e.response, "status_code", None)
                if status is not None and status not in self.policy.retry_statuses:
                    raise
                last_exc = e

            except httpx.HTTPError as e:
                last_exc = e

            if attempt < self.policy.retries:
                sleep = self.policy.sleep_seconds(attempt)
                err_kind = f"HTTP {last_exc.response.status_code}" if isinstance(last_exc, httpx.HTTPStatusError) else "network"
                print(f"[req#{req_id}] [retry {attempt}/{self.policy.retries}] {method} {url} "
                      f"params={kwargs.get('params')} failed: {err_kind}: {last_exc}. "
                      f"Sleeping {sleep:.2f}s", file=sys.stderr)
                await asyncio.sleep(sleep)

        print(f"[req#{req_id}] [giving up] {method} {url}: {last_exc}", file=sys.stderr)
        raise last_exc or RuntimeError("request failed")

def _describe(resp: httpx.Response) -> str:
    """Short human-readable body summary for log lines."""
    try:
        payload = resp.json()
    except ValueError:
        return (resp.text or resp.reason_phrase)[:200]
    if isinstance(payload, dict) and "error" in payload:
        return f"{payload.get('code', '?')}: {payload['error']}"
    return str(payload)[:200]
