import logging
from typing import Optional

import requests

from app.core.exceptions import StoreError, RecordNotFound

logger = logging.getLogger(__name__)


class HttpClient:
    """
    Thin requests.Session wrapper shared by the REST-backed stores.
    Every failure (connection, timeout, non-2xx) becomes a StoreError;
    nothing is retried.
    """

    def __init__(self, base_url: str, headers: dict = None, timeout: float = 15, session=None):
        self.base_url = (base_url or "").rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({"accept": "application/json"})
        if headers:
            self.session.headers.update(headers)

    def set_header(self, key: str, value: Optional[str]):
        if value is None:
            self.session.headers.pop(key, None)
        else:
            self.session.headers[key] = value

    def request(self, method: str, path: str, **kwargs):
        url = f"{self.base_url}{path}"
        try:
            response = self.session.request(method, url, timeout=self.timeout, **kwargs)

        except requests.exceptions.ConnectionError as e:
            logger.error(f"🔌 Connection error on {method} {url}: {e}")
            raise StoreError(f"Store unreachable: {self.base_url}") from e

        except requests.exceptions.Timeout as e:
            logger.error(f"⏱️ Timeout on {method} {url}: {e}")
            raise StoreError(f"Store timed out: {self.base_url}") from e

        except requests.exceptions.RequestException as e:
            logger.error(f"❌ Request failed on {method} {url}: {e}")
            raise StoreError(str(e)) from e

        if response.status_code == 404:
            raise RecordNotFound(f"{method} {path} -> 404")

        if not response.ok:
            logger.error(f"❌ {method} {url} -> {response.status_code}: {response.text[:500]}")
            raise StoreError(f"{method} {path} failed with HTTP {response.status_code}")

        if response.status_code == 204 or not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise StoreError(f"{method} {path} returned invalid JSON") from e

    def close(self):
        self.session.close()
