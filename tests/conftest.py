from typing import Any, List, Optional

import pytest

from chatbubble.config import Settings
from chatbubble.shopify_client import ShopifyAPIError


class FakeWebhook:
    """Records posted texts and answers with a canned reply (or raises it)."""

    def __init__(self, reply: Any = None):
        self.reply = reply
        self.calls: List[tuple] = []

    def post(self, text: str, session_id: Optional[str] = None) -> Any:
        self.calls.append((text, session_id))
        if isinstance(self.reply, Exception):
            raise self.reply
        return self.reply


class FakeShopify:
    def __init__(self, configured: bool = False, products=None, cart_ok: bool = False, fail: bool = False):
        self.configured = configured
        self.products = products or []
        self.cart_ok = cart_ok
        self.fail = fail
        self.store_domain = "shop.example.com"
        self.cart_calls: List[tuple] = []

    def search_products(self, query: str, first: int = 100):
        if self.fail:
            raise ShopifyAPIError("Shopify GraphQL error")
        return list(self.products)

    def add_to_cart(self, variant_id: str, quantity: int = 1) -> bool:
        self.cart_calls.append((variant_id, quantity))
        return self.cart_ok


class FakeLLM:
    def __init__(self, reply: Optional[str] = None):
        self.reply = reply
        self.prompts: List[str] = []

    def chat(self, message, history=None, structured_intent=None):
        self.prompts.append(message)
        return self.reply


def make_settings(**overrides) -> Settings:
    values = dict(
        webhook_url=None,
        webhook_auth=None,
        ollama_base_url="http://localhost:11434",
        ollama_model="llama3.1:latest",
        groq_api_key=None,
        shop_domain=None,
        storefront_token=None,
        shopify_api_version="2024-10",
        vector_service_url=None,
        vector_shop_id="",
        vector_api_key="",
        upstream_timeout=1.0,
        catalog_csv_path=None,
        style_config_path=None,
        history_limit=50,
        log_level="INFO",
    )
    values.update(overrides)
    return Settings(**values)


@pytest.fixture
def settings():
    return make_settings()
