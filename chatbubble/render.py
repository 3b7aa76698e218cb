"""
HTML fragments for render plans, ready to be inserted by the widget.
"""
from typing import List, Optional
from urllib.parse import quote

from bs4 import BeautifulSoup, Tag

from .media import escape_text
from .models import HtmlPlan, Product, ProductsPlan, RenderPlan, TextPlan

MAX_CARDS = 8
CARD_IMG_STYLE = "width:64px;height:64px;object-fit:cover;border-radius:6px;"


def format_price(price: float) -> str:
    return ("%.2f" % price).rstrip("0").rstrip(".")


def product_url(product: Product, store_domain: Optional[str]) -> str:
    if not product.handle or not store_domain:
        return "#"
    return f"https://{store_domain}/products/{quote(product.handle)}"


def cart_variant_id(product: Product):
    """The id carried by the card's add-to-cart button."""
    if product.variants and product.variants[0].id is not None:
        return product.variants[0].id
    return product.id


class CardRenderer:

    def __init__(self, store_domain: Optional[str] = None):
        self.store_domain = store_domain
        self.soup = BeautifulSoup("", "html.parser")

    def _div(self, css_class: Optional[str] = None, text: Optional[str] = None) -> Tag:
        div = self.soup.new_tag("div", attrs={"class": css_class} if css_class else {})
        if text is not None:
            div.string = text
        return div

    def card(self, product: Product) -> Tag:
        card = self._div("cb-product")

        if product.image and product.image.url:
            card.append(self.soup.new_tag("img", attrs={
                "src": product.image.url,
                "alt": product.image.alt_text or product.title or "",
                "style": CARD_IMG_STYLE,
            }))

        body = self._div("cb-product-body")
        title = product.title or ""
        price = product.display_price()
        if price is not None:
            money = " ".join(p for p in (product.display_currency(), format_price(price)) if p)
            title += f" - {money}"
        body.append(self._div("cb-product-title", title))

        actions = self._div("cb-product-actions")
        view = self.soup.new_tag("a", attrs={
            "href": product_url(product, self.store_domain),
            "target": "_blank",
            "rel": "noopener noreferrer",
        })
        view.string = "View"
        actions.append(view)

        variant_id = cart_variant_id(product)
        if variant_id is not None:
            button = self.soup.new_tag("button", attrs={"class": "cb-add", "data-variant": str(variant_id)})
            button.string = "Add to Cart"
            actions.append(button)

        body.append(actions)
        card.append(body)
        return card

    def products(self, plan: ProductsPlan) -> str:
        wrapper = self._div("cb-products")
        if plan.header:
            wrapper.append(self._div("cb-products-header", plan.header))
        for product in plan.items[:MAX_CARDS]:
            wrapper.append(self.card(product))
        if plan.footer_html:
            footer = self._div("cb-products-footer")
            footer.append(BeautifulSoup(plan.footer_html, "html.parser"))
            wrapper.append(footer)
        elif plan.footer:
            wrapper.append(self._div("cb-products-footer", plan.footer))
        return wrapper.decode()


def render_plan(plan: RenderPlan, store_domain: Optional[str] = None) -> str:
    if isinstance(plan, ProductsPlan):
        return CardRenderer(store_domain).products(plan)
    if isinstance(plan, HtmlPlan):
        return plan.content
    if isinstance(plan, TextPlan):
        return escape_text(plan.content)
    raise ValueError(f"Unknown render plan: {plan!r}")


def render_plans(plans: List[RenderPlan], store_domain: Optional[str] = None) -> List[str]:
    return [render_plan(p, store_domain) for p in plans]
