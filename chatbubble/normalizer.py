"""
Upstream payload normalization.

The webhook (and the LLM behind it) answers in whatever shape it likes: a JSON
object, an array wrapping one, JSON embedded inside an ``output`` string, or
plain text. ``normalize`` turns any of these into a ``NormalizedResponse`` so
the planner only ever deals with one shape. It never raises.
"""
import json
import logging
import re
from typing import Any, Callable, Dict, List, Optional

from .models import NormalizedResponse, Product, ProductImage, ProductVariant

logger = logging.getLogger(__name__)

EMBEDDED_JSON = re.compile(r"\{[\s\S]*\}")

STRUCTURED_REPLY_KEYS = ["before_message", "reply", "response", "message"]
TOP_LEVEL_REPLY_KEYS = ["rawText", "output", "text", "reply", "response", "message"]


# ---------------------------------------------------------
# PRODUCT SHAPE EXTRACTORS (tried in order)
# ---------------------------------------------------------
def _from_products(data: Dict[str, Any], parsed: Any) -> Any:
    return data.get("products")


def _from_results(data: Dict[str, Any], parsed: Any) -> Any:
    return data.get("results")


def _from_nested_results(data: Dict[str, Any], parsed: Any) -> Any:
    results = data.get("results")
    return results.get("results") if isinstance(results, dict) else None


def _from_data_products(data: Dict[str, Any], parsed: Any) -> Any:
    inner = data.get("data")
    return inner.get("products") if isinstance(inner, dict) else None


def _from_parsed_products(data: Dict[str, Any], parsed: Any) -> Any:
    return parsed.get("products") if isinstance(parsed, dict) else None


def _from_parsed_list(data: Dict[str, Any], parsed: Any) -> Any:
    if isinstance(parsed, list) and parsed and isinstance(parsed[0], dict):
        if parsed[0].get("id") or parsed[0].get("title"):
            return parsed
    return None


PRODUCT_EXTRACTORS: List[Callable[[Dict[str, Any], Any], Any]] = [
    _from_products,
    _from_results,
    _from_nested_results,
    _from_data_products,
    _from_parsed_products,
    _from_parsed_list,
]


def extract_raw_products(data: Dict[str, Any], parsed: Any) -> List[Dict[str, Any]]:
    for extractor in PRODUCT_EXTRACTORS:
        found = extractor(data, parsed)
        if isinstance(found, list) and found:
            return [p for p in found if isinstance(p, dict)]
    return []


# ---------------------------------------------------------
# PRODUCT COERCION
# ---------------------------------------------------------
def _normalize_image_url(raw: Any) -> Optional[str]:
    if not raw or not isinstance(raw, str):
        return None
    url = raw.strip()
    if url.startswith("//"):
        url = "https:" + url
    return url or None


def resolve_image(item: Dict[str, Any]) -> Optional[ProductImage]:
    candidates: List[Any] = []
    alt = None
    for key in ("featuredImage", "featured_image", "image"):
        value = item.get(key)
        if isinstance(value, str):
            candidates.append(value)
        elif isinstance(value, dict):
            candidates.append(value.get("url") or value.get("src"))
            alt = alt or value.get("altText") or value.get("alt")
    candidates.append(item.get("featuredImageUrl"))
    candidates.append(item.get("featured_image_url"))
    images = item.get("images")
    if isinstance(images, list) and images:
        first = images[0]
        if isinstance(first, str):
            candidates.append(first)
        elif isinstance(first, dict):
            candidates.append(first.get("src") or first.get("url"))

    for c in candidates:
        url = _normalize_image_url(c)
        if url:
            return ProductImage(url=url, alt_text=alt)
    return None


def _to_float(value: Any) -> Optional[float]:
    try:
        return float(value) if value not in (None, "") else None
    except (TypeError, ValueError):
        return None


def _coerce_variant(raw: Any) -> Optional[ProductVariant]:
    if not isinstance(raw, dict):
        return None
    node = raw.get("node") if isinstance(raw.get("node"), dict) else raw
    price = node.get("price")
    currency = node.get("currency")
    money = node.get("priceV2") or (price if isinstance(price, dict) else None)
    if isinstance(money, dict):
        price = money.get("amount")
        currency = currency or money.get("currencyCode")
    return ProductVariant(id=node.get("id"), price=_to_float(price), currency=currency)


def coerce_product(item: Dict[str, Any]) -> Product:
    raw_variants = item.get("variants") or []
    if isinstance(raw_variants, dict):
        raw_variants = raw_variants.get("edges") or []
    variants = [v for v in (_coerce_variant(r) for r in raw_variants) if v]

    tags = item.get("tags") or []
    if isinstance(tags, str):
        tags = [t.strip() for t in tags.split(",") if t.strip()]

    price_range = item.get("priceRange") if isinstance(item.get("priceRange"), dict) else None
    min_price = _to_float(item.get("minVariantPrice"))
    if min_price is None and price_range:
        min_price = _to_float((price_range.get("minVariantPrice") or {}).get("amount"))

    return Product(
        id=item.get("id") if item.get("id") is not None else item.get("product_id"),
        title=item.get("title") or item.get("name"),
        handle=item.get("handle"),
        description=item.get("description"),
        product_type=item.get("productType") or item.get("product_type"),
        tags=[str(t) for t in tags if t is not None],
        image=resolve_image(item),
        variants=variants,
        price_range=price_range,
        min_variant_price=min_price,
    )


# ---------------------------------------------------------
# NORMALIZATION
# ---------------------------------------------------------
def parse_embedded_json(text: str) -> Any:
    """Greedy ``{...}`` extraction; the string itself when there is no parseable object."""
    match = EMBEDDED_JSON.search(text)
    if not match:
        return text
    try:
        return json.loads(match.group(0))
    except ValueError:
        logger.debug("Embedded JSON did not parse, treating output as text")
        return text


def collect_reply_candidates(data: Dict[str, Any], parsed: Any) -> List[str]:
    values: List[Any] = []
    if isinstance(parsed, dict):
        values.extend(parsed.get(k) for k in STRUCTURED_REPLY_KEYS)
    values.extend(data.get(k) for k in TOP_LEVEL_REPLY_KEYS)
    return [v.strip() for v in values if isinstance(v, str) and v.strip()]


def normalize(raw: Any) -> NormalizedResponse:
    if raw is None or raw == "" or raw == [] or raw == {}:
        return NormalizedResponse()

    data: Any = raw
    if isinstance(data, list):
        # Only the first element is used
        data = data[0]
    if isinstance(data, str):
        data = {"rawText": data}
    if not isinstance(data, dict):
        return NormalizedResponse()

    parsed: Any = None
    output = data.get("output")
    raw_text = data.get("rawText")
    possible = output if isinstance(output, str) else (raw_text if isinstance(raw_text, str) else None)
    if possible:
        parsed = parse_embedded_json(possible)
    elif data.get("parsedOutput"):
        parsed = data.get("parsedOutput")

    products: List[Product] = []
    for item in extract_raw_products(data, parsed):
        try:
            products.append(coerce_product(item))
        except ValueError as e:
            logger.warning(f"Skipping malformed product: {e}")

    if products:
        logger.info(f"✓ Found {len(products)} products in upstream response")

    return NormalizedResponse(
        raw_text=raw_text if isinstance(raw_text, str) else None,
        parsed_output=parsed,
        products=products,
        candidate_reply_fields=collect_reply_candidates(data, parsed),
        fields=data,
    )
