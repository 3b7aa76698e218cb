import re
from typing import Any, Dict, List, Optional

from .models import Intent


class IntentRules:

    QUESTION_WORDS = ["why", "what", "how", "when", "where", "who", "did", "does", "do", "is", "are", "was", "were"]

    # Order matters: the first phrase contained in the message wins
    PRODUCT_VERBS = [
        "show me", "show", "find me", "find", "search for", "search",
        "list", "browse", "search products", "show products", "show item", "show items",
    ]

    DESIRE_PATTERN = re.compile(r"\b(i want|i'd like|i would like|looking for|need|want|buy)\b")

    STOP_WORDS = {
        "can", "you", "show", "me", "some", "a", "an", "the", "please", "find",
        "want", "see", "with", "and", "for", "in", "on", "of",
    }
    COLORS = [
        "red", "blue", "black", "white", "green", "yellow", "pink", "purple", "brown", "grey",
        "gray", "orange", "maroon", "navy", "beige", "teal", "olive", "gold", "silver",
    ]
    MALE_WORDS = {"men", "men's", "mens", "male", "man"}
    FEMALE_WORDS = {"women", "women's", "womens", "female", "lady", "ladies"}

    # ---------------------------------------------------------
    # 1. QUERY CLASSIFICATION
    # ---------------------------------------------------------
    @staticmethod
    def classify(message: Optional[str]) -> Intent:
        """question words > product verbs > desire phrases > conversational"""
        q = (message or "").strip().lower()
        if not q:
            return "conversational"

        for word in IntentRules.QUESTION_WORDS:
            if q == word or q.startswith(word + " "):
                return "conversational"

        for verb in IntentRules.PRODUCT_VERBS:
            if verb in q:
                # bare "show" / "show?" is not a search
                if len(q) <= len(verb) + 1:
                    return "conversational"
                return "product_search"

        if IntentRules.DESIRE_PATTERN.search(q):
            return "product_search"
        return "conversational"

    @staticmethod
    def is_product_query(message: Optional[str]) -> bool:
        return IntentRules.classify(message) == "product_search"

    # ---------------------------------------------------------
    # 2. HEURISTIC INTENT EXTRACTION (LLM FALLBACK)
    # ---------------------------------------------------------
    @staticmethod
    def _parse_amount(raw: str) -> Optional[int]:
        digits = re.sub(r"[^\d]", "", raw)
        return int(digits) if digits else None

    @staticmethod
    def extract_fallback_intent(message: str) -> Dict[str, Any]:
        """Builds the intent-extractor JSON shape without a model."""
        text = message or ""
        lowered = text.lower()
        tokens = re.sub(r"[^a-z0-9\s₹₨.,]", " ", lowered).split()
        keywords: List[str] = [t for t in tokens if len(t) > 2 and t not in IntentRules.STOP_WORDS]

        filters: Dict[str, Any] = {}
        under = re.search(r"(?:under|below|less than|<)\s*([₹₨Rs.,\d]+)", text, re.IGNORECASE)
        over = re.search(r"(?:over|above|more than|>)\s*([₹₨Rs.,\d]+)", text, re.IGNORECASE)
        any_num = re.search(r"([₹₨Rs.,]?\d{2,}(?:[.,]\d{1,2})?)", text)

        price_max = IntentRules._parse_amount(under.group(1)) if under else None
        price_min = IntentRules._parse_amount(over.group(1)) if over else None
        if not price_min and not price_max and any_num:
            price_max = IntentRules._parse_amount(any_num.group(1))

        if price_min:
            filters["price_min"] = price_min
        if price_max:
            filters["price_max"] = price_max
        if re.search(r"rupee|rupees|\brs\b|₹", text, re.IGNORECASE):
            filters["currency"] = "INR"

        for k in keywords:
            if "color" not in filters and k in IntentRules.COLORS:
                filters["color"] = k
            if "gender" not in filters and k in IntentRules.MALE_WORDS:
                filters["gender"] = "male"
            if "gender" not in filters and k in IntentRules.FEMALE_WORDS:
                filters["gender"] = "female"

        return {"intent": "product_search", "keywords": keywords, "filters": filters, "raw_query": text}

    @staticmethod
    def gender_from_keywords(keywords: List[str]) -> Optional[str]:
        for k in keywords:
            kl = str(k).lower()
            if kl in IntentRules.MALE_WORDS:
                return "male"
            if kl in IntentRules.FEMALE_WORDS:
                return "female"
            if kl in ("unisex", "all"):
                return "unisex"
        return None
