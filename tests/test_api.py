import json

import pytest
from fastapi.testclient import TestClient

from chatbubble.cart_relay import CartIntentRelay
from chatbubble.catalog import CatalogSearch
from chatbubble.chat_service import ChatService, ERROR_MESSAGE, NOT_FOUND_MESSAGE
from chatbubble.main import create_app
from chatbubble.models import Product
from chatbubble.planner import FALLBACK_MESSAGE

from conftest import FakeLLM, FakeShopify, FakeWebhook, make_settings


def wire(app, webhook=None, llm=None, shopify=None):
    shopify = shopify or FakeShopify()
    state = app.state
    state.shopify = shopify
    state.catalog = CatalogSearch(shopify)
    state.chat_service = ChatService(state.sessions, webhook or FakeWebhook(), llm, state.catalog, "shop.example.com")
    state.cart_relay = CartIntentRelay(webhook or FakeWebhook(), shopify)


@pytest.fixture
def app():
    app = create_app(make_settings())
    wire(app)
    return app


@pytest.fixture
def client(app):
    return TestClient(app)


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200, resp.text
    assert resp.json()["status"] == "OK"


def test_empty_message_is_rejected(client):
    resp = client.post("/api/chat", json={"message": "   "})
    assert resp.status_code == 400
    assert resp.json()["error"] == "Message is required"


def test_product_search_with_structured_webhook_reply(app, client):
    reply = {"output": json.dumps({
        "before_message": "Top picks",
        "after_message": "Want more?",
        "products": [{"id": 1, "title": "Red Shirt", "handle": "red-shirt"}],
    })}
    wire(app, webhook=FakeWebhook(reply))
    resp = client.post("/api/chat", json={"message": "show me red shirts", "sessionId": "s1"})
    assert resp.status_code == 200, resp.text
    body = resp.json()
    assert body["sessionId"] == "s1"
    assert body["intent"] == "product_search"
    assert body["plans"][0]["kind"] == "products"
    assert body["plans"][0]["header"] == "Top picks"
    html = body["html"][0]
    assert html.index("Top picks") < html.index("Red Shirt") < html.index("Want more?")
    assert 'href="https://shop.example.com/products/red-shirt"' in html


def test_product_search_falls_back_to_catalog(app, client):
    live = [Product(handle="red-shirt", title="Red Shirt", description="Cotton shirt")]
    wire(app, shopify=FakeShopify(configured=True, products=live))
    body = client.post("/api/chat", json={"message": "show me red shirts"}).json()
    assert body["plans"][0]["header"] == "I found these products:"
    assert body["plans"][0]["items"][0]["handle"] == "red-shirt"


def test_product_search_with_nothing_found(client):
    body = client.post("/api/chat", json={"message": "show me red shirts"}).json()
    assert body["plans"] == [{"kind": "text", "content": NOT_FOUND_MESSAGE}]


def test_conversational_uses_llm_when_webhook_is_silent(app, client):
    llm = FakeLLM("We ship worldwide.")
    wire(app, llm=llm)
    body = client.post("/api/chat", json={"message": "do you ship abroad?"}).json()
    assert body["intent"] == "conversational"
    assert body["plans"] == [{"kind": "text", "content": "We ship worldwide."}]
    assert llm.prompts == ["do you ship abroad?"]


def test_conversational_fallback_message(client):
    body = client.post("/api/chat", json={"message": "hello"}).json()
    assert body["plans"][0]["content"] == FALLBACK_MESSAGE


def test_pipeline_error_is_reported(app, client):
    wire(app, webhook=FakeWebhook(RuntimeError("down")))
    body = client.post("/api/chat", json={"message": "hello"}).json()
    assert body["plans"][0]["content"] == ERROR_MESSAGE


def test_overlapping_send_is_rejected(app, client):
    app.state.sessions.try_acquire("busy")
    resp = client.post("/api/chat", json={"message": "hello", "sessionId": "busy"})
    assert resp.status_code == 409


def test_history_is_recorded(app, client):
    wire(app, webhook=FakeWebhook({"reply": "Hi!"}))
    client.post("/api/chat", json={"message": "hello", "sessionId": "h1"})
    history = client.get("/api/chat/h1").json()["history"]
    assert [(h["role"], h["content"]) for h in history] == [("user", "hello"), ("assistant", "Hi!")]


def test_llm_chat_without_model(client):
    resp = client.post("/api/chat/llm", json={"message": "hello"})
    assert resp.status_code == 500
    assert resp.json()["error"] == "LLM chat failed"


def test_llm_chat(app, client):
    wire(app, llm=FakeLLM("Hello!"))
    resp = client.post("/api/chat/llm", json={"message": "hi", "sessionId": "x"})
    assert resp.json() == {"response": "Hello!"}
    assert len(app.state.sessions.get_history("x")) == 2


def test_llm_search(app, client):
    live = [Product(handle="blue-jeans", title="Blue Jeans", description="Denim")]
    wire(app, shopify=FakeShopify(configured=True, products=live))
    body = client.post("/api/chat/llm_search", json={"message": "blue jeans"}).json()
    assert body["intent"]["intent"] == "product_search"
    assert [p["handle"] for p in body["products"]] == ["blue-jeans"]


def test_shopify_products_without_config():
    client = TestClient(create_app(make_settings()))
    resp = client.get("/api/shopify/products")
    assert resp.status_code == 500
    assert resp.json()["error"] == "Failed to fetch products"


def test_store_domain(client):
    assert client.get("/api/shopify/store").json() == {"storeDomain": "shop.example.com"}


def test_cart_add(app, client):
    wire(app, shopify=FakeShopify(cart_ok=True))
    body = client.post("/api/cart/add", json={"variantId": "gid://shopify/ProductVariant/5"}).json()
    assert body["ok"] is True
    assert body["html"] == ["Added to cart!"]


def test_vector_search_requires_query(client):
    assert client.get("/api/vector/search").status_code == 400


def test_vector_search_not_configured(client):
    resp = client.get("/api/vector/search", params={"query": "shirts"})
    assert resp.status_code == 500
    assert resp.json()["error"] == "Vector search error"


def test_widget_and_style_config(client):
    widget = client.get("/api/widget/config").json()
    assert widget["welcomeMessage"] == "Hi! I'm your AI assistant. How can I help you today?"
    assert widget["position"] == "bottom-right"
    style = client.get("/style-config.json").json()
    assert style["primaryColor"] == "#667eea"
    assert style["inputBorderRadius"] == "26px"


def test_style_config_file_overrides(tmp_path):
    path = tmp_path / "style.json"
    path.write_text(json.dumps({"primaryColor": "#000000"}), encoding="utf-8")
    client = TestClient(create_app(make_settings(style_config_path=str(path))))
    style = client.get("/style-config.json").json()
    assert style["primaryColor"] == "#000000"
    assert style["secondaryColor"] == "#764ba2"
    assert client.get("/api/widget/config").json()["primaryColor"] == "#000000"


def test_reply_with_empty_narration_is_kept(app, client):
    llm = FakeLLM("should not be used")
    reply = {"output": json.dumps({"before_message": None, "after_message": "", "reply": "Hello there"})}
    wire(app, webhook=FakeWebhook(reply), llm=llm)
    body = client.post("/api/chat", json={"message": "hello"}).json()
    assert body["plans"] == [{"kind": "text", "content": "Hello there"}]
    assert llm.prompts == []


def test_cart_add_falls_back_when_webhook_raises(app, client):
    shopify = FakeShopify(cart_ok=True)
    wire(app, webhook=FakeWebhook(RuntimeError("down")), shopify=shopify)
    body = client.post("/api/cart/add", json={"variantId": "gid://shopify/ProductVariant/5", "quantity": 2}).json()
    assert body["ok"] is True
    assert shopify.cart_calls == [("5", 2)]
