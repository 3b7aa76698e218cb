"""
Prompt builders for intent extraction, candidate reranking and conversational chat.
"""
import json
from typing import Any, Dict, List, Optional

from .models import ChatHistoryEntry, Product
from .sanitizer import sanitize

INTENT_EXAMPLES: List[Dict[str, Any]] = [
    {
        "input": "Show me red shirts under 1000 rupees",
        "output": {
            "intent": "product_search",
            "keywords": ["red", "shirt"],
            "filters": {"price_min": None, "price_max": 1000, "currency": "INR", "color": "red", "gender": None, "size": None},
            "raw_query": "Show me red shirts under 1000 rupees",
        },
    },
    {
        "input": "I want men's blue jeans, size 32",
        "output": {
            "intent": "product_search",
            "keywords": ["blue", "jeans"],
            "filters": {"gender": "male", "size": "32", "price_min": None, "price_max": None, "currency": None, "color": "blue"},
            "raw_query": "I want men's blue jeans, size 32",
        },
    },
    {
        "input": "Do you have a return policy?",
        "output": {
            "intent": "general_query",
            "keywords": ["return", "policy"],
            "filters": {},
            "raw_query": "Do you have a return policy?",
        },
    },
    {
        "input": "Men's red shirts",
        "output": {
            "intent": "product_search",
            "keywords": ["red", "shirt"],
            "filters": {"color": "red", "gender": "male", "price_min": None, "price_max": None, "currency": None, "size": None},
            "raw_query": "Men's red shirts",
        },
    },
    {
        "input": "Men formal red shirts",
        "output": {
            "intent": "product_search",
            "keywords": ["men", "formal", "red", "shirt"],
            "filters": {"color": "red", "gender": "male", "price_min": None, "price_max": None, "currency": None, "size": None},
            "raw_query": "Men formal red shirts",
        },
    },
    {
        "input": "Looking for women's black dresses under 3000 INR",
        "output": {
            "intent": "product_search",
            "keywords": ["black", "dress"],
            "filters": {"color": "black", "gender": "female", "price_min": None, "price_max": 3000, "currency": "INR", "size": None},
            "raw_query": "Looking for women's black dresses under 3000 INR",
        },
    },
    {
        "input": "Recommend something similar to this blazer I liked",
        "output": {
            "intent": "recommendation",
            "keywords": ["blazer", "similar"],
            "filters": {},
            "raw_query": "Recommend something similar to this blazer I liked",
        },
    },
]


def build_intent_prompt(user_text: str) -> str:
    clean = sanitize(user_text)
    examples_text = "\n\n".join(
        f'Input: "{ex["input"]}"\nOutput:\n{json.dumps(ex["output"])}' for ex in INTENT_EXAMPLES
    )

    return f"""
You are a strict assistant that MUST convert a customer's natural language request into a single JSON object describing intent and normalized filters.
Return ONLY valid JSON (a single JSON object) and nothing else - no code fences, no explanation, no extra text.

Rules:
- The JSON object must follow this exact shape:
{{
  "intent": "product_search" | "recommendation" | "general_query" | null,
  "keywords": [ "keyword1", "keyword2", ... ],
  "filters": {{
    "price_min": <integer|null>,
    "price_max": <integer|null>,
    "currency": <string|null>,
    "color": <string|null>,
    "gender": <"male"|"female"|"unisex"|null>,
    "size": <string|null>
  }},
  "raw_query": "<original text>"
}}

Normalization rules (be conservative, prefer null when ambiguous):
- Numeric fields: return integers for price_min/price_max. For words like "under 1000 rupees", interpret as price_max: 1000, currency: "INR".
- Gender: map variants to "male", "female", "unisex", or null. (e.g., "men's" -> "male", "women" -> "female")
- Color: return a single canonical color if clear (e.g., "red", "blue", "black"). If multiple colors are requested, use the first one mentioned.
- If the query mentions "similar" or "like this", set intent to "recommendation".
- If the query is a non-product question (policy, shipping), set intent to "general_query" and leave filters empty.

Examples:
{examples_text}

Now process this input and return the single JSON object (no extra text):
"{clean}"
"""


def build_rerank_prompt(user_text: str, candidates: List[Product], required_filters: Optional[Dict[str, Any]] = None) -> str:
    clean = sanitize(user_text)
    cand_json = json.dumps(
        [
            {
                "handle": p.handle,
                "title": p.title,
                "description": p.description or "",
                "price": p.display_price(),
                "tags": p.tags or None,
            }
            for p in candidates
        ],
        indent=2,
    )
    filters_text = json.dumps(required_filters or {}, indent=2)

    return f"""
You are a product relevance scorer. Given the user's request, the required search filters, and a short list of product objects, return ONLY a JSON array (no text) of candidate objects sorted by relevance.
Each returned object must include:
- handle (string)
- score (number, 0.0 - 1.0, higher is better)

Scoring rules:
1. If the filters require a gender (male/female/unisex), candidates that clearly conflict with it score close to 0.0.
2. If the filters require a color and the product metadata indicates a different color, penalize that candidate.
3. Favor products whose title or description contains the user's keywords.
4. If price filters exist, prefer products within the price range.
5. Use 1.0 for the best match and scale others accordingly.
6. Return results sorted by score (highest first).

User request:
"{clean}"

Required filters:
{filters_text}

Candidates:
{cand_json}

Return the ranked array only. Example:
[{{"handle":"ocean-blue-shirt","score":0.95}},{{"handle":"red-plaid","score":0.60}}]
"""


def build_chat_prompt(
    user_text: str,
    history: Optional[List[ChatHistoryEntry]] = None,
    structured_intent: Optional[Dict[str, Any]] = None,
) -> str:
    clean = sanitize(user_text)
    history_text = "\n".join(f"{h.role}: {sanitize(h.content)}" for h in (history or []))
    structured_text = (
        f"Structured intent (from intent-extractor): {json.dumps(structured_intent)}\n"
        if structured_intent else ""
    )

    return f"""
You are a helpful AI assistant for an e-commerce store. Use the conversation history and any structured intent data to answer the user's query helpfully and accurately.
History:
{history_text}

{structured_text}
User: "{clean}"

Guidelines:
- If structured intent includes filters (gender, color, price), any product suggestion must match them.
- Do not invent product attributes (sizes, discounts, availability). If information is missing, ask a clarifying question.
- Keep responses conversational and concise. When listing products, include title, price, and a one-line reason why it's relevant.
- If the user asks for a clarification (e.g., "Do you mean men's or women's?"), respond with a direct clarifying question.

Respond conversationally in plain text. Do not include JSON unless explicitly asked for.
"""
