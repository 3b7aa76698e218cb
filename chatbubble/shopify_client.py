import logging
from typing import Any, Dict, List, Optional

import requests

from .models import Product
from .normalizer import coerce_product

logger = logging.getLogger(__name__)

PRODUCT_FIELDS = """
              id title handle description productType tags featuredImage { url altText }
              priceRange { minVariantPrice { amount currencyCode } }
              variants(first: 5) { edges { node { id priceV2 { amount currencyCode } } } }
"""

PRODUCTS_QUERY = """
      query Products($first: Int!) {
        products(first: $first) {
          edges {
            node {%s}
          }
        }
      }
""" % PRODUCT_FIELDS

SEARCH_QUERY = """
      query SearchProducts($first: Int!, $query: String!) {
        products(first: $first, query: $query) {
          edges {
            node {%s}
          }
        }
      }
""" % PRODUCT_FIELDS


class ShopifyConfigError(Exception):
    """Storefront domain or access token is missing."""


class ShopifyAPIError(Exception):
    """The storefront answered with a transport error or GraphQL ``errors``."""


class ShopifyClient:
    def __init__(self, domain: Optional[str], access_token: Optional[str], api_version: str = "2024-10", timeout: float = 20.0):
        self.domain = (domain or "").replace("https://", "").replace("http://", "").strip("/")
        self.access_token = access_token
        self.api_version = api_version
        self.timeout = timeout

    @property
    def configured(self) -> bool:
        return bool(self.domain and self.access_token)

    @property
    def store_domain(self) -> Optional[str]:
        return self.domain or None

    # ---------------------------------------------------------
    # 1. GRAPHQL TRANSPORT
    # ---------------------------------------------------------
    def graphql(self, query: str, variables: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        if not self.configured:
            raise ShopifyConfigError("Shopify configuration missing")
        url = f"https://{self.domain}/api/{self.api_version}/graphql.json"
        headers = {
            "Content-Type": "application/json",
            "X-Shopify-Storefront-Access-Token": self.access_token,
        }
        try:
            response = requests.post(
                url, json={"query": query, "variables": variables or {}}, headers=headers, timeout=self.timeout
            )
            response.raise_for_status()
            data = response.json()
        except (requests.RequestException, ValueError) as e:
            raise ShopifyAPIError(str(e)) from e

        if data.get("errors"):
            logger.error(f"⚠️ Shopify returned errors: {data['errors']}")
            raise ShopifyAPIError("Shopify GraphQL error")
        return data

    @staticmethod
    def _map_edges(data: Dict[str, Any]) -> List[Product]:
        edges = (((data.get("data") or {}).get("products") or {}).get("edges")) or []
        products = []
        for edge in edges:
            node = edge.get("node") if isinstance(edge, dict) else None
            if isinstance(node, dict):
                products.append(coerce_product(node))
        return products

    # ---------------------------------------------------------
    # 2. CATALOG QUERIES
    # ---------------------------------------------------------
    def fetch_products(self, first: int = 25) -> List[Product]:
        first = max(1, min(first, 250))
        products = self._map_edges(self.graphql(PRODUCTS_QUERY, {"first": first}))
        logger.info(f"✅ Shopify listing: {len(products)} products from {self.domain}")
        return products

    def search_products(self, query: str, first: int = 100) -> List[Product]:
        first = max(1, min(first, 250))
        logger.info(f"🔍 Shopify query built: {query}")
        products = self._map_edges(self.graphql(SEARCH_QUERY, {"first": first, "query": query}))
        logger.info(f"📥 Retrieved {len(products)} candidate(s) from Shopify.")
        return products

    # ---------------------------------------------------------
    # 3. CART
    # ---------------------------------------------------------
    def add_to_cart(self, variant_id: str, quantity: int = 1) -> bool:
        if not self.domain:
            logger.warning("Cart add skipped, no store domain configured")
            return False
        try:
            response = requests.post(
                f"https://{self.domain}/cart/add.js",
                json={"id": variant_id, "quantity": quantity},
                headers={"Content-Type": "application/json"},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.warning(f"❌ Cart add failed: {e}")
            return False
        if not response.ok:
            logger.warning(f"❌ Cart add returned {response.status_code}")
        return response.ok
