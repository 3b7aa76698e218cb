"""
Decides how a normalized upstream reply is shown.

The branches are tried in a fixed order and the first match is terminal:
structured product narration, then a plain reply string, then the fallback
message.
"""
import logging
from typing import List, Optional

from .media import inline_media, looks_like_html
from .models import Intent, NormalizedResponse, ProductsPlan, RenderPlan, TextPlan, HtmlPlan

logger = logging.getLogger(__name__)

DEFAULT_PRODUCTS_HEADER = "I found these products:"
FALLBACK_MESSAGE = "Sorry, I didn't get a response. Please try again."


def _text_or_none(value) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def has_structured_reply(normalized: NormalizedResponse) -> bool:
    structured = normalized.structured_output()
    return bool(
        _text_or_none(structured.get("before_message"))
        or _text_or_none(structured.get("after_message"))
        or normalized.products
    )


def products_plan(normalized: NormalizedResponse, header: Optional[str], footer: Optional[str]) -> ProductsPlan:
    return ProductsPlan(
        header=header,
        items=normalized.products,
        footer=footer,
        footer_html=inline_media(footer) if footer else None,
    )


def plan(normalized: NormalizedResponse, hint: Optional[Intent] = None) -> List[RenderPlan]:
    # 1. structured product flow
    if has_structured_reply(normalized):
        structured = normalized.structured_output()
        before = _text_or_none(structured.get("before_message"))
        after = _text_or_none(structured.get("after_message"))
        if normalized.products:
            logger.debug(f"Planning {len(normalized.products)} product cards (hint={hint})")
            return [products_plan(normalized, before or DEFAULT_PRODUCTS_HEADER, after)]
        return [TextPlan(content="\n\n".join(part for part in (before, after) if part))]

    # 2. plain reply flow
    if normalized.candidate_reply_fields:
        reply = normalized.candidate_reply_fields[0]
        plans: List[RenderPlan] = []
        if looks_like_html(reply):
            plans.append(HtmlPlan(content=inline_media(reply)))
        else:
            plans.append(TextPlan(content=reply))
        if normalized.products:
            plans.append(products_plan(normalized, None, None))
        return plans

    # 3. fallback
    logger.info(f"No usable reply in upstream response (hint={hint})")
    return [TextPlan(content=FALLBACK_MESSAGE)]


def is_fallback(plans: List[RenderPlan]) -> bool:
    return (
        len(plans) == 1
        and isinstance(plans[0], TextPlan)
        and plans[0].content == FALLBACK_MESSAGE
    )
