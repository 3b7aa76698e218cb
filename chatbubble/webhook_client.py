import logging
from typing import Any, Dict, Optional

import requests

logger = logging.getLogger(__name__)


class WebhookClient:
    """
    Posts user text to the upstream webhook.

    Never raises: unreachable hosts, timeouts and non-2xx answers all come
    back as ``None`` so the caller can fall through to the next tier.
    """

    def __init__(self, url: Optional[str], auth: Optional[str] = None, timeout: float = 20.0):
        self.url = url
        self.auth = auth
        self.timeout = timeout

    @property
    def configured(self) -> bool:
        return bool(self.url)

    def post(self, text: str, session_id: Optional[str] = None) -> Any:
        if not self.url:
            logger.warning("WEBHOOK_URL is not set, skipping webhook call")
            return None

        payload: Dict[str, Any] = {"text": text}
        if session_id:
            payload["sessionId"] = session_id
        headers = {"Content-Type": "application/json"}
        if self.auth:
            headers["Authorization"] = self.auth

        try:
            response = requests.post(self.url, json=payload, headers=headers, timeout=self.timeout)
        except requests.RequestException as e:
            logger.warning(f"❌ Webhook call failed: {e}")
            return None

        if not response.ok:
            logger.warning(f"❌ Webhook returned {response.status_code}: {response.text[:200]}")
            return None

        body = response.text
        if not body or not body.strip():
            return None
        try:
            data = response.json()
        except ValueError:
            data = {"rawText": body}
        logger.debug(f"Webhook reply: {body[:800]}")
        return data


class VectorSearchClient:
    """Thin proxy to the vector search service; errors propagate to the route."""

    def __init__(self, base_url: Optional[str], shop_id: str = "", api_key: str = "", timeout: float = 20.0):
        self.base_url = (base_url or "").rstrip("/")
        self.shop_id = shop_id
        self.api_key = api_key
        self.timeout = timeout

    @property
    def configured(self) -> bool:
        return bool(self.base_url)

    def _headers(self) -> Dict[str, str]:
        return {"x-shop-id": self.shop_id, "x-api-key": self.api_key}

    def search(self, query: str, limit: int = 20, offset: int = 0, min_score: Optional[float] = None) -> Any:
        params: Dict[str, Any] = {"query": query, "limit": limit, "offset": offset}
        if min_score is not None:
            params["min_score"] = min_score
        response = requests.get(
            f"{self.base_url}/api/v1/search/products",
            params=params,
            headers=self._headers(),
            timeout=self.timeout,
        )
        response.raise_for_status()
        return response.json()

    def health(self) -> Any:
        response = requests.get(f"{self.base_url}/health", timeout=self.timeout)
        response.raise_for_status()
        return response.json()
