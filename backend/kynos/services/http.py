import random
import time
from typing import Any, Dict, Optional

import httpx
from loguru import logger

from kynos.core.errors import UpstreamError


def get_json(client: httpx.Client, url: str, params: Optional[Dict[str, Any]] = None, *,
             max_retries: int = 1, backoff_s: float = 0.5, label: str = "") -> Any:
    """
    GET + decode JSON with one bounded retry policy:
      - transport errors, 429 and 5xx are retried up to max_retries times
      - other 4xx fail at once
    Any failure that survives the retries becomes UpstreamError.
    """
    label = label or url
    delay = backoff_s
    last: Optional[str] = None
    for attempt in range(max_retries + 1):
        try:
            resp = client.get(url, params=params)
            status = resp.status_code
            if status == 429 or 500 <= status < 600:
                last = f"{label} returned HTTP {status}"
                raise httpx.HTTPStatusError(last, request=resp.request, response=resp)
            if 400 <= status < 500:
                logger.error(f"{label} returned HTTP {status}")
                raise UpstreamError(f"{label} returned HTTP {status}: {resp.reason_phrase}")
            return resp.json()
        except httpx.HTTPError as e:
            last = last or str(e) or e.__class__.__name__
            if attempt == max_retries:
                logger.error(f"HTTP error after retries: {e}")
                break
            sleep_s = delay + random.random() * 0.3
            logger.warning(f"HTTP error ({e}); retrying in {sleep_s:.2f}s...")
            time.sleep(sleep_s)
            delay = min(delay * 2, 8.0)
            last = None
        except ValueError as e:
            # body was not JSON
            raise UpstreamError(f"{label} returned a non-JSON body") from e
    raise UpstreamError(last or f"{label} request failed")
