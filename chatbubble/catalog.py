import logging
import os
import re
from typing import Any, Dict, List, Optional, Tuple

import pandas as pd
from bs4 import BeautifulSoup

from .intent_rules import IntentRules
from .llm_gateway import LLMGateway
from .models import Product, ProductImage, ProductVariant
from .shopify_client import ShopifyAPIError, ShopifyClient, ShopifyConfigError

logger = logging.getLogger(__name__)

GENDER_WORDS = {
    "male": ["men", "man", "mens", "male", "boy"],
    "female": ["women", "woman", "womens", "female", "lady", "ladies", "girl"],
    "unisex": ["unisex", "all"],
}


class CatalogSearch:
    """
    Keyword/filter product search: live storefront first, CSV export second.

    Colour and gender only reorder results; price bounds and the description
    requirement remove them.
    """

    def __init__(
        self,
        shopify: ShopifyClient,
        llm: Optional[LLMGateway] = None,
        csv_path: Optional[str] = None,
        use_rerank: bool = False,
    ):
        self.shopify = shopify
        self.llm = llm
        self.use_rerank = use_rerank
        self.csv_products: List[Product] = []
        if csv_path and os.path.exists(csv_path):
            logger.info(f"📂 Loading CSV catalog from {csv_path}...")
            self.csv_products = self._load_csv(csv_path)

    # ---------------------------------------------------------
    # 1. CSV CATALOG
    # ---------------------------------------------------------
    @staticmethod
    def _clean_html(html_content: str) -> str:
        if not html_content:
            return ""
        soup = BeautifulSoup(html_content, "html.parser")
        return re.sub(r"\n\s*\n", "\n", soup.get_text(separator="\n").strip())[:1500]

    @staticmethod
    def _parse_price(raw: str) -> Optional[float]:
        digits = re.sub(r"[^\d.]", "", str(raw))
        try:
            return float(digits) if digits else None
        except ValueError:
            return None

    def _load_csv(self, filepath: str) -> List[Product]:
        try:
            df = pd.read_csv(filepath, encoding="utf-8-sig", dtype=str).fillna("")
        except (OSError, ValueError, pd.errors.ParserError) as e:
            logger.error(f"❌ Error loading CSV catalog: {e}")
            return []
        df.columns = df.columns.str.strip()
        if "Handle" not in df.columns:
            logger.error("❌ CSV catalog has no Handle column")
            return []

        cols = df.columns
        body_col = next((c for c in ["Body (HTML)", "Description"] if c in cols), None)
        price_col = next((c for c in ["Variant Price", "Price"] if c in cols), None)

        products: List[Product] = []
        for handle, rows in df.groupby("Handle", sort=False):
            if not handle:
                continue
            base = rows.iloc[0]
            variants = []
            for _, row in rows.iterrows():
                price = self._parse_price(row.get(price_col, "")) if price_col else None
                variant_id = str(row.get("Variant ID", "")).strip() or None
                if price is not None or variant_id:
                    variants.append(ProductVariant(id=variant_id, price=price))
            image_src = next((s for s in rows.get("Image Src", pd.Series(dtype=str)) if s), None)
            products.append(Product(
                id=str(base.get("ID", "")).strip() or None,
                title=base.get("Title") or None,
                handle=handle,
                description=self._clean_html(base.get(body_col, "")) if body_col else None,
                product_type=base.get("Type") or None,
                tags=[t.strip() for t in str(base.get("Tags", "")).split(",") if t.strip()],
                image=ProductImage(url=image_src) if image_src else None,
                variants=variants,
            ))
        logger.info(f"✅ CSV catalog loaded: {len(products)} products")
        return products

    # ---------------------------------------------------------
    # 2. QUERY CONSTRUCTION
    # ---------------------------------------------------------
    @staticmethod
    def build_terms(intent: Dict[str, Any], message: str) -> List[str]:
        """Intent keywords (or the raw words) plus naive singular forms."""
        keywords = intent.get("keywords")
        raw_terms = list(keywords) if isinstance(keywords, list) and keywords else message.lower().split()
        terms: List[str] = []
        for t in raw_terms:
            w = re.sub(r"[^a-z0-9]", "", str(t).lower())
            if not w:
                continue
            if w not in terms:
                terms.append(w)
            if len(w) > 3 and w.endswith("s") and w[:-1] not in terms:
                terms.append(w[:-1])
        return terms

    @staticmethod
    def build_query(terms: List[str], message: str) -> str:
        clauses = []
        for t in terms:
            safe = re.sub(r"[\"']", "", t)
            clauses.append(f"(title:*{safe}* OR handle:*{safe}* OR tag:*{safe}* OR product_type:*{safe}*)")
        return " OR ".join(clauses) or message

    # ---------------------------------------------------------
    # 3. FILTERS
    # ---------------------------------------------------------
    @staticmethod
    def _haystack(p: Product, with_meta: bool = False) -> List[str]:
        fields = [p.title or "", p.description or "", p.handle or ""]
        if with_meta:
            fields += [" ".join(p.tags), p.product_type or ""]
        return [f.lower() for f in fields]

    @staticmethod
    def filter_by_terms(products: List[Product], terms: List[str]) -> List[Product]:
        lowered = [t.lower() for t in terms]
        return [
            p for p in products
            if any(t in field for t in lowered for field in CatalogSearch._haystack(p))
        ]

    @staticmethod
    def prefer(products: List[Product], words: List[str]) -> List[Product]:
        matches, others = [], []
        for p in products:
            fields = CatalogSearch._haystack(p, with_meta=True)
            if any(w in field for w in words for field in fields):
                matches.append(p)
            else:
                others.append(p)
        return matches + others

    @staticmethod
    def filter_by_price(products: List[Product], price_min: Optional[float], price_max: Optional[float]) -> List[Product]:
        if price_min is None and price_max is None:
            return products
        kept = []
        for p in products:
            price = p.display_price()
            if price is None:
                continue
            if price_min is not None and price < price_min:
                continue
            if price_max is not None and price > price_max:
                continue
            kept.append(p)
        return kept

    @staticmethod
    def _number(value: Any) -> Optional[float]:
        try:
            return float(value) if value is not None else None
        except (TypeError, ValueError):
            return None

    # ---------------------------------------------------------
    # 4. SEARCH
    # ---------------------------------------------------------
    def _candidates(self, terms: List[str], message: str, first: int) -> List[Product]:
        if self.shopify.configured:
            try:
                return self.shopify.search_products(self.build_query(terms, message), first)
            except (ShopifyConfigError, ShopifyAPIError) as e:
                logger.warning(f"⚠️ Storefront search failed, using CSV catalog: {e}")
        return list(self.csv_products)

    def extract_intent(self, message: str) -> Dict[str, Any]:
        if self.llm:
            return self.llm.extract_intent(message)
        return IntentRules.extract_fallback_intent(message)

    def search(self, message: str, first: int = 100) -> Tuple[Dict[str, Any], List[Product]]:
        intent = self.extract_intent(message)
        filters = intent.get("filters") or {}

        terms = self.build_terms(intent, message)
        logger.info(f"🔎 Search terms (with singulars): {terms}")

        products = self.filter_by_terms(self._candidates(terms, message, first), terms)
        logger.info(f"🔎 After basic term filter: {len(products)} products")

        color = filters.get("color")
        if color:
            products = self.prefer(products, [str(color).lower()])

        gender = filters.get("gender")
        gender = str(gender).lower() if gender else IntentRules.gender_from_keywords(intent.get("keywords") or [])
        if gender in GENDER_WORDS:
            products = self.prefer(products, GENDER_WORDS[gender])

        products = self.filter_by_price(
            products, self._number(filters.get("price_min")), self._number(filters.get("price_max"))
        )
        products = [p for p in products if p.description and p.description.strip()]
        logger.info(f"🛍️ Final matched products (with description): {len(products)}")

        if self.use_rerank and self.llm and products:
            products = self.llm.rerank(message, products, filters)
        return intent, products
