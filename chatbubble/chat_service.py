import logging
from typing import List, Optional

from .catalog import CatalogSearch
from .intent_rules import IntentRules
from .llm_gateway import LLMGateway
from .models import ChatResponse, ProductsPlan, RenderPlan, TextPlan
from .normalizer import normalize
from .planner import FALLBACK_MESSAGE, has_structured_reply, is_fallback, plan
from .render import render_plans
from .sanitizer import sanitize
from .session_manager import SessionManager
from .webhook_client import WebhookClient

logger = logging.getLogger(__name__)

ERROR_MESSAGE = "Sorry — something went wrong."
FOUND_MESSAGE = "I found these products:"
NOT_FOUND_MESSAGE = "I could not find matching products. Try different keywords."


def plans_as_text(plans: List[RenderPlan]) -> str:
    """Flattens plans into the text stored in session history."""
    parts = []
    for p in plans:
        if isinstance(p, ProductsPlan):
            titles = ", ".join(i.title for i in p.items if i.title)
            parts.append(" ".join(x for x in (p.header, titles, p.footer) if x))
        else:
            parts.append(p.content)
    return "\n".join(x for x in parts if x)


class ChatService:
    """
    One user turn, end to end.

    Product searches go webhook -> catalog search -> planner; conversational
    turns go webhook -> LLM. Every tier that fails hands over to the next.
    """

    def __init__(
        self,
        sessions: SessionManager,
        webhook: WebhookClient,
        llm: Optional[LLMGateway],
        catalog: CatalogSearch,
        store_domain: Optional[str] = None,
    ):
        self.sessions = sessions
        self.webhook = webhook
        self.llm = llm
        self.catalog = catalog
        self.store_domain = store_domain

    # ---------------------------------------------------------
    # 1. PIPELINES
    # ---------------------------------------------------------
    def _product_turn(self, text: str, session_id: str) -> List[RenderPlan]:
        normalized = normalize(self.webhook.post(text, session_id))
        if has_structured_reply(normalized):
            return plan(normalized, "product_search")

        _, products = self.catalog.search(text)
        if products:
            return [ProductsPlan(header=FOUND_MESSAGE, items=products)]

        plans = plan(normalized, "product_search")
        if is_fallback(plans):
            return [TextPlan(content=NOT_FOUND_MESSAGE)]
        return plans

    def _conversational_turn(self, text: str, session_id: str) -> List[RenderPlan]:
        plans = plan(normalize(self.webhook.post(text, session_id)), "conversational")
        if not is_fallback(plans) or not self.llm:
            return plans
        reply = self.llm.chat(text, self.sessions.get_history(session_id))
        if reply:
            return [TextPlan(content=reply.strip())]
        return [TextPlan(content=FALLBACK_MESSAGE)]

    # ---------------------------------------------------------
    # 2. ENTRY POINTS
    # ---------------------------------------------------------
    def handle_message(self, message: str, session_id: Optional[str] = None) -> ChatResponse:
        session = self.sessions.get_or_create(session_id)
        text = sanitize(message)
        intent = IntentRules.classify(text)
        logger.info(f"💬 [{session.session_id}] {intent}: {text[:200]}")

        try:
            if intent == "product_search":
                plans = self._product_turn(text, session.session_id)
            else:
                plans = self._conversational_turn(text, session.session_id)
        except Exception:
            logger.exception("Chat pipeline failed")
            plans = [TextPlan(content=ERROR_MESSAGE)]

        self.sessions.add_interaction(session.session_id, "user", text)
        self.sessions.add_interaction(session.session_id, "assistant", plans_as_text(plans))

        return ChatResponse(
            sessionId=session.session_id,
            intent=intent,
            plans=plans,
            html=render_plans(plans, self.store_domain),
        )

    def llm_reply(self, message: str, session_id: str = "default") -> Optional[str]:
        """History-aware LLM answer without the webhook; ``None`` when no model answered."""
        if not self.llm:
            return None
        text = sanitize(message)
        reply = self.llm.chat(text, self.sessions.get_history(session_id))
        if not reply:
            return None
        self.sessions.add_interaction(session_id, "user", text)
        self.sessions.add_interaction(session_id, "assistant", reply)
        return reply
