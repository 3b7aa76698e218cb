import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv


@dataclass(frozen=True)
class Settings:
    """Runtime configuration for the upstream services and the widget."""
    webhook_url: Optional[str]
    webhook_auth: Optional[str]
    ollama_base_url: str
    ollama_model: str
    groq_api_key: Optional[str]
    shop_domain: Optional[str]
    storefront_token: Optional[str]
    shopify_api_version: str
    vector_service_url: Optional[str]
    vector_shop_id: str
    vector_api_key: str
    upstream_timeout: float
    catalog_csv_path: Optional[str]
    style_config_path: Optional[str]
    history_limit: int
    log_level: str
    max_sessions: int = 1000


def load_settings() -> Settings:
    load_dotenv()
    shop = (
        os.getenv("SHOPIFY_STORE_DOMAIN")
        or os.getenv("SHOPIFY_SHOP_DOMAIN")
        or os.getenv("DOMAIN")
    )
    return Settings(
        webhook_url=os.getenv("WEBHOOK_URL"),
        webhook_auth=os.getenv("WEBHOOK_AUTH"),
        ollama_base_url=os.getenv("OLLAMA_BASE_URL", "http://localhost:11434"),
        ollama_model=os.getenv("OLLAMA_MODEL", "llama3.1:latest"),
        groq_api_key=os.getenv("GROQ_API_KEY"),
        shop_domain=shop,
        storefront_token=os.getenv("SHOPIFY_STOREFRONT_ACCESS_TOKEN"),
        shopify_api_version=os.getenv("SHOPIFY_API_VERSION", "2024-10"),
        vector_service_url=os.getenv("VECTOR_SERVICE_URL"),
        vector_shop_id=os.getenv("VECTOR_SHOP_ID") or shop or "",
        vector_api_key=os.getenv("VECTOR_API_KEY") or os.getenv("VECTOR_SERVICE_API_KEY", ""),
        upstream_timeout=float(os.getenv("UPSTREAM_TIMEOUT_SECONDS", "20")),
        catalog_csv_path=os.getenv("CATALOG_CSV_PATH"),
        style_config_path=os.getenv("STYLE_CONFIG_PATH"),
        history_limit=int(os.getenv("CHAT_HISTORY_LIMIT", "50")),
        log_level=os.getenv("LOG_LEVEL", "INFO"),
        max_sessions=int(os.getenv("CHAT_MAX_SESSIONS", "1000")),
    )
