from datetime import datetime, timezone
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field

Intent = Literal["product_search", "conversational"]


# ---------------------------------------------------------
# CATALOG
# ---------------------------------------------------------
class ProductImage(BaseModel):
    url: str
    alt_text: Optional[str] = None


class ProductVariant(BaseModel):
    id: Optional[Union[str, int]] = None
    price: Optional[float] = None
    currency: Optional[str] = None


class Product(BaseModel):
    id: Optional[Union[str, int]] = None
    title: Optional[str] = None
    handle: Optional[str] = None
    description: Optional[str] = None
    product_type: Optional[str] = None
    tags: List[str] = []
    image: Optional[ProductImage] = None
    variants: List[ProductVariant] = []
    # {"minVariantPrice": {"amount": "...", "currencyCode": "..."}}
    price_range: Optional[Dict[str, Any]] = None
    min_variant_price: Optional[float] = None

    def display_price(self) -> Optional[float]:
        if self.variants and self.variants[0].price is not None:
            return self.variants[0].price
        return self.min_variant_price

    def display_currency(self) -> Optional[str]:
        if self.variants and self.variants[0].currency:
            return self.variants[0].currency
        min_price = (self.price_range or {}).get("minVariantPrice") or {}
        return min_price.get("currencyCode")


# ---------------------------------------------------------
# UPSTREAM NORMALIZATION
# ---------------------------------------------------------
class NormalizedResponse(BaseModel):
    raw_text: Optional[str] = None
    parsed_output: Optional[Union[Dict[str, Any], List[Any], str]] = None
    products: List[Product] = []
    candidate_reply_fields: List[str] = []
    # Top-level fields of the upstream working object, kept as-is
    fields: Dict[str, Any] = {}

    def structured_output(self) -> Dict[str, Any]:
        return self.parsed_output if isinstance(self.parsed_output, dict) else {}


# ---------------------------------------------------------
# RENDER PLANS
# ---------------------------------------------------------
class TextPlan(BaseModel):
    kind: Literal["text"] = "text"
    content: str


class HtmlPlan(BaseModel):
    kind: Literal["html"] = "html"
    content: str


class ProductsPlan(BaseModel):
    kind: Literal["products"] = "products"
    header: Optional[str] = None
    items: List[Product] = []
    footer: Optional[str] = None
    footer_html: Optional[str] = None


RenderPlan = Annotated[Union[TextPlan, HtmlPlan, ProductsPlan], Field(discriminator="kind")]


# ---------------------------------------------------------
# SESSIONS
# ---------------------------------------------------------
class ChatHistoryEntry(BaseModel):
    role: Literal["user", "assistant"]
    content: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class Session(BaseModel):
    session_id: str
    history: List[ChatHistoryEntry] = []


# ---------------------------------------------------------
# API
# ---------------------------------------------------------
class ChatRequest(BaseModel):
    message: str
    sessionId: Optional[str] = None


class ChatResponse(BaseModel):
    sessionId: str
    intent: Intent
    plans: List[RenderPlan] = []
    html: List[str] = []


class LLMChatResponse(BaseModel):
    response: str


class ProductSearchRequest(BaseModel):
    message: str


class ProductSearchResponse(BaseModel):
    intent: Dict[str, Any]
    products: List[Product] = []


class CartAddRequest(BaseModel):
    variantId: Union[str, int]
    quantity: int = 1
    sessionId: Optional[str] = None


class CartAddResponse(BaseModel):
    ok: bool
    plans: List[RenderPlan] = []
    html: List[str] = []
