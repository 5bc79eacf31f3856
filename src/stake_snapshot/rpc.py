"""
Minimal Ethereum JSON-RPC client.

One shared HTTP session (Keep-Alive, pooled) is used by every worker
thread. Rate limiting (HTTP 429, "rate limit"/"capacity" errors) is
absorbed here with Retry-After or exponential backoff; once the tries are
used up the call fails with TransientRemoteError so the caller decides
whether to retry at a higher level.
"""
import itertools
import logging
import time
from typing import Any, Callable, Dict, List, Optional

import requests
from requests.adapters import HTTPAdapter

from .errors import RpcError, TransientRemoteError
from .utils import hex_to_int, to_block_hex

logger = logging.getLogger(__name__)

_RATE_LIMIT_MARKERS = ("rate limit", "too many", "capacity", "timeout")
_RETRYABLE_STATUS = (429, 502, 503, 504)
MAX_BACKOFF = 8.0


class RpcClient:
    def __init__(
        self,
        url: str,
        *,
        timeout: float = 120,
        max_tries: int = 6,
        pool_size: int = 32,
        session: Optional[requests.Session] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if max_tries < 1:
            raise ValueError("max_tries must be at least 1")
        self.url = url
        self.timeout = timeout
        self.max_tries = max_tries
        self._sleep = sleep
        self._ids = itertools.count(1)
        if session is None:
            session = requests.Session()
            adapter = HTTPAdapter(pool_connections=pool_size, pool_maxsize=pool_size)
            session.mount("http://", adapter)
            session.mount("https://", adapter)
        self._session = session

    def close(self) -> None:
        self._session.close()

    def __enter__(self) -> "RpcClient":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    # ---------- raw call ----------
    def call(self, method: str, params: list) -> Any:
        payload = {"jsonrpc": "2.0", "id": next(self._ids), "method": method, "params": params}
        backoff = 0.5
        last_error: Optional[Exception] = None
        for attempt in range(1, self.max_tries + 1):
            try:
                r = self._session.post(self.url, json=payload, timeout=self.timeout)
            except requests.exceptions.RequestException as e:
                # network-level failures are the caller's to retry
                raise TransientRemoteError(f"{method}: {e}") from e

            if r.status_code in _RETRYABLE_STATUS:
                last_error = TransientRemoteError(f"{method}: HTTP {r.status_code}", status_code=r.status_code)
                ra = r.headers.get("Retry-After")
                delay = float(ra) if ra and ra.isdigit() else backoff
                logger.debug("%s throttled (HTTP %s), sleeping %.1fs", method, r.status_code, delay)
                if attempt < self.max_tries:
                    self._sleep(delay)
                backoff = min(backoff * 2, MAX_BACKOFF)
                continue
            try:
                r.raise_for_status()
                resp = r.json()
            except (requests.exceptions.RequestException, ValueError) as e:
                raise RpcError(f"{method}: unusable response: {e}", status_code=r.status_code) from e

            error = resp.get("error") if isinstance(resp, dict) else None
            if error:
                msg = str(error.get("message", error) if isinstance(error, dict) else error)
                code = error.get("code") if isinstance(error, dict) else None
                if any(x in msg.lower() for x in _RATE_LIMIT_MARKERS):
                    last_error = TransientRemoteError(f"{method}: {msg}", code=code)
                    if attempt < self.max_tries:
                        self._sleep(backoff)
                    backoff = min(backoff * 2, MAX_BACKOFF)
                    continue
                raise RpcError(f"{method}: {msg}", code=code)
            if not isinstance(resp, dict) or "result" not in resp:
                raise RpcError(f"{method}: response without result")
            return resp["result"]

        raise last_error or TransientRemoteError(f"{method}: no attempt succeeded")

    # ---------- typed helpers ----------
    def get_logs(self, address: str, topics: List[Optional[str]], from_block: int, to_block: int) -> List[Dict[str, Any]]:
        flt = {
            "address": address,
            "topics": topics,
            "fromBlock": to_block_hex(from_block),
            "toBlock": to_block_hex(to_block),
        }
        return self.call("eth_getLogs", [flt]) or []

    def get_storage_at(self, address: str, key: str, block: int) -> str:
        return self.call("eth_getStorageAt", [address, key, to_block_hex(block)])

    def block_number(self) -> int:
        return hex_to_int(self.call("eth_blockNumber", []))
