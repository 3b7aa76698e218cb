"""
Add-to-cart relay.

The click is first phrased as an instruction to the webhook so the upstream
agent can confirm it (often with a checkout link); the storefront cart
endpoint is used only when that yields nothing usable.
"""
import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Iterator, List, Optional, Union

from .media import link_first_url
from .models import HtmlPlan, RenderPlan, TextPlan
from .normalizer import normalize
from .planner import is_fallback, plan
from .shopify_client import ShopifyClient
from .webhook_client import WebhookClient

logger = logging.getLogger(__name__)

ADDED_MESSAGE = "Added to cart!"
FAILED_MESSAGE = "Failed to add to cart."
NOT_ADDABLE_MESSAGE = "This product cannot be added automatically."


@dataclass
class ButtonState:
    label: str = "Add to Cart"
    disabled: bool = False


@dataclass
class CartResult:
    ok: bool
    plans: List[RenderPlan] = field(default_factory=list)


@contextmanager
def busy_button(button: Optional[ButtonState]) -> Iterator[None]:
    """Disables the button with an "Adding..." label and always puts it back."""
    if button is None:
        yield
        return
    previous = (button.label, button.disabled)
    button.disabled = True
    button.label = "Adding..."
    try:
        yield
    finally:
        button.label, button.disabled = previous


def normalize_variant_id(variant_id: Union[str, int, None]) -> str:
    """``gid://shopify/ProductVariant/123`` -> ``123``"""
    value = str(variant_id if variant_id is not None else "").strip()
    if "/" in value:
        value = value.rstrip("/").split("/")[-1]
    return value


class CartIntentRelay:
    def __init__(self, webhook: WebhookClient, shopify: ShopifyClient):
        self.webhook = webhook
        self.shopify = shopify

    def _via_webhook(self, numeric_id: str, session_id: Optional[str]) -> Optional[List[RenderPlan]]:
        raw = self.webhook.post(f"add {numeric_id} to my cart", session_id)
        if raw is None:
            return None
        plans = plan(normalize(raw))
        if is_fallback(plans):
            return None
        first = plans[0]
        if isinstance(first, TextPlan):
            linked = link_first_url(first.content)
            if linked:
                plans[0] = HtmlPlan(content=linked)
        return plans

    def add_to_cart(
        self,
        variant_id: Union[str, int, None],
        quantity: int = 1,
        button: Optional[ButtonState] = None,
        session_id: Optional[str] = None,
    ) -> CartResult:
        """
        ``button`` is for in-process callers that own a button model; it is held in
        the "Adding..." state for the whole call. The HTTP route passes none since
        the widget keeps its own button state around the request.
        """
        numeric_id = normalize_variant_id(variant_id)
        if not numeric_id:
            return CartResult(ok=False, plans=[TextPlan(content=NOT_ADDABLE_MESSAGE)])

        with busy_button(button):
            logger.info(f"🛒 Add to cart requested for variant {numeric_id} (qty {quantity})")
            try:
                plans = self._via_webhook(numeric_id, session_id)
            except Exception:
                logger.exception("Webhook add to cart failed, trying storefront cart")
                plans = None
            if plans:
                return CartResult(ok=True, plans=plans)

            try:
                if self.shopify.add_to_cart(numeric_id, quantity):
                    return CartResult(ok=True, plans=[TextPlan(content=ADDED_MESSAGE)])
            except Exception:
                logger.exception("Storefront add to cart failed")
            return CartResult(ok=False, plans=[TextPlan(content=FAILED_MESSAGE)])
