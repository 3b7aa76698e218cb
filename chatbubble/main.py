import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

import requests
from fastapi import FastAPI, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .cart_relay import CartIntentRelay
from .catalog import CatalogSearch
from .chat_service import ChatService
from .config import Settings, load_settings
from .llm_gateway import LLMGateway
from .logging_setup import setup_logging
from .models import (
    CartAddRequest, CartAddResponse, ChatRequest, ChatResponse, LLMChatResponse,
    ProductSearchRequest, ProductSearchResponse,
)
from .render import render_plans
from .session_manager import SessionManager
from .shopify_client import ShopifyAPIError, ShopifyClient, ShopifyConfigError
from .webhook_client import VectorSearchClient, WebhookClient
from .widget_config import WidgetConfig, load_style_config

logger = logging.getLogger(__name__)


def error_response(status_code: int, error: str, details: Optional[str] = None) -> JSONResponse:
    content = {"error": error}
    if details is not None:
        content["details"] = details
    return JSONResponse(status_code=status_code, content=content)


def build_services(app: FastAPI, settings: Settings):
    timeout = settings.upstream_timeout
    state = app.state
    state.settings = settings
    state.sessions = SessionManager(history_limit=settings.history_limit, max_sessions=settings.max_sessions)
    state.webhook = WebhookClient(settings.webhook_url, settings.webhook_auth, timeout)
    state.vector = VectorSearchClient(settings.vector_service_url, settings.vector_shop_id, settings.vector_api_key, timeout)
    state.shopify = ShopifyClient(settings.shop_domain, settings.storefront_token, settings.shopify_api_version, timeout)
    state.llm = LLMGateway(settings.ollama_base_url, settings.ollama_model, settings.groq_api_key, timeout)
    state.catalog = CatalogSearch(state.shopify, state.llm, settings.catalog_csv_path)
    state.chat_service = ChatService(state.sessions, state.webhook, state.llm, state.catalog, state.shopify.store_domain)
    state.cart_relay = CartIntentRelay(state.webhook, state.shopify)
    state.style_config = load_style_config(settings.style_config_path)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or load_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        setup_logging(settings.log_level)
        logger.info("🚀 Server starting")
        logger.info(f"   🏬 Shopify Domain: {settings.shop_domain}")
        logger.info(f"   🔑 Storefront Token: {'✅ Set' if settings.storefront_token else '❌ Missing'}")
        logger.info(f"   💬 Ollama Model: {settings.ollama_model}")
        logger.info(f"   📡 Vector Service URL: {settings.vector_service_url}")
        yield
        logger.info("Application shutdown")

    app = FastAPI(title="Chat Bubble", lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    build_services(app, settings)

    # ---------------------------------------------------------
    # HEALTH & CONFIG
    # ---------------------------------------------------------
    @app.get("/health")
    def health():
        return {"status": "OK", "ts": datetime.now(timezone.utc).isoformat()}

    @app.get("/api/widget/config")
    def widget_config(request: Request):
        style = request.app.state.style_config
        return WidgetConfig.from_style(style, style.get("apiUrl")).model_dump()

    @app.get("/style-config.json")
    def style_config(request: Request):
        return request.app.state.style_config

    # ---------------------------------------------------------
    # CHAT
    # ---------------------------------------------------------
    @app.post("/api/chat", response_model=ChatResponse)
    def chat(body: ChatRequest, request: Request):
        if not body.message or not body.message.strip():
            return error_response(400, "Message is required")
        sessions: SessionManager = request.app.state.sessions
        session = sessions.get_or_create(body.sessionId)
        if not sessions.try_acquire(session.session_id):
            return error_response(409, "A message for this session is already being processed")
        try:
            return request.app.state.chat_service.handle_message(body.message, session.session_id)
        finally:
            sessions.release(session.session_id)

    @app.get("/api/chat/{session_id}")
    def chat_history(session_id: str, request: Request):
        history = request.app.state.sessions.get_history(session_id)
        logger.info(f"📥 GET /api/chat/{session_id} → {len(history)} messages")
        return {"history": [h.model_dump(mode="json") for h in history]}

    @app.post("/api/chat/llm", response_model=LLMChatResponse)
    def chat_llm(body: ChatRequest, request: Request):
        if not body.message or not body.message.strip():
            return error_response(400, "Message is required")
        reply = request.app.state.chat_service.llm_reply(body.message, body.sessionId or "default")
        if reply is None:
            return error_response(500, "LLM chat failed", "No language model answered")
        return LLMChatResponse(response=reply)

    @app.post("/api/chat/llm_search", response_model=ProductSearchResponse)
    def chat_llm_search(body: ProductSearchRequest, request: Request, first: int = Query(100, ge=1)):
        if not body.message or not body.message.strip():
            return error_response(400, "Message is required")
        logger.info(f"🧠 LLM-driven search request: {body.message!r}")
        intent, products = request.app.state.catalog.search(body.message, min(first, 250))
        return ProductSearchResponse(intent=intent, products=products)

    # ---------------------------------------------------------
    # SHOPIFY & CART
    # ---------------------------------------------------------
    @app.get("/api/shopify/products")
    def shopify_products(request: Request, first: int = Query(25, ge=1)):
        try:
            products = request.app.state.shopify.fetch_products(min(first, 250))
        except (ShopifyConfigError, ShopifyAPIError) as e:
            logger.error(f"❌ /api/shopify/products error: {e}")
            return error_response(500, "Failed to fetch products", str(e))
        valid = [p for p in products if p.description and p.description.strip()]
        logger.info(f"✅ /api/shopify/products → fetched {len(products)}, with description {len(valid)}")
        return {"products": [p.model_dump() for p in valid]}

    @app.get("/api/shopify/store")
    def shopify_store(request: Request):
        return {"storeDomain": request.app.state.shopify.store_domain or request.headers.get("host")}

    @app.post("/api/cart/add", response_model=CartAddResponse)
    def cart_add(body: CartAddRequest, request: Request):
        # No ButtonState here: the widget disables its own button until this returns
        result = request.app.state.cart_relay.add_to_cart(body.variantId, body.quantity, session_id=body.sessionId)
        html = render_plans(result.plans, request.app.state.shopify.store_domain)
        return CartAddResponse(ok=result.ok, plans=result.plans, html=html)

    # ---------------------------------------------------------
    # VECTOR SEARCH PROXY
    # ---------------------------------------------------------
    @app.get("/api/vector/search")
    def vector_search(
        request: Request,
        query: str = "",
        limit: int = 20,
        offset: int = 0,
        min_score: Optional[float] = None,
    ):
        if not query:
            return error_response(400, "query parameter is required")
        vector: VectorSearchClient = request.app.state.vector
        if not vector.configured:
            return error_response(500, "Vector search error", "VECTOR_SERVICE_URL is not set")
        try:
            return vector.search(query, limit, offset, min_score)
        except (requests.RequestException, ValueError) as e:
            logger.error(f"❌ /api/vector/search proxy error: {e}")
            return error_response(500, "Vector search error", str(e))

    @app.get("/api/health/vector")
    def vector_health(request: Request):
        vector: VectorSearchClient = request.app.state.vector
        try:
            return {"ok": True, "service": "vector-service", "upstream": vector.health()}
        except (requests.RequestException, ValueError) as e:
            return JSONResponse(status_code=502, content={"ok": False, "service": "vector-service", "error": str(e)})

    return app


app = create_app()
