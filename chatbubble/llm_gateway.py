import json
import logging
import re
from typing import Any, Dict, List, Optional

import requests
from groq import APIError, Groq, RateLimitError

from .intent_rules import IntentRules
from .models import ChatHistoryEntry, Product
from .prompts import build_chat_prompt, build_intent_prompt, build_rerank_prompt

logger = logging.getLogger(__name__)

CODE_FENCE = re.compile(r"```(?:json)?", re.IGNORECASE)
JSON_OBJECT = re.compile(r"\{[\s\S]*\}")
JSON_ARRAY = re.compile(r"\[[\s\S]*\]")


class LLMGateway:
    """
    Text generation through a local Ollama model, with the Groq model
    cascade as a second tier when an API key is configured.
    """

    def __init__(self, ollama_base_url: str, ollama_model: str, groq_api_key: Optional[str] = None, timeout: float = 20.0):
        self.ollama_base_url = ollama_base_url.rstrip("/")
        self.ollama_model = ollama_model
        self.timeout = timeout
        self.client = Groq(api_key=groq_api_key, timeout=timeout) if groq_api_key else None

        self.model_cascade = [
            "llama-3.3-70b-versatile",
            "llama-3.1-8b-instant",
        ]

    # ---------------------------------------------------------
    # 1. RAW GENERATION
    # ---------------------------------------------------------
    def _ollama_generate(self, prompt: str) -> Optional[str]:
        try:
            response = requests.post(
                f"{self.ollama_base_url}/api/generate",
                json={"model": self.ollama_model, "prompt": prompt, "stream": False, "temperature": 0.0},
                timeout=self.timeout,
            )
            response.raise_for_status()
            data = response.json()
        except (requests.RequestException, ValueError) as e:
            logger.warning(f"⚠️ Ollama generate call failed: {e}")
            return None
        text = data.get("response") or data.get("output") or ""
        return str(text).strip() or None

    def _groq_generate(self, prompt: str) -> Optional[str]:
        if not self.client:
            return None
        last_error = None
        for model in self.model_cascade:
            try:
                completion = self.client.chat.completions.create(
                    model=model,
                    messages=[{"role": "user", "content": prompt}],
                    temperature=0.0,
                    max_tokens=600,
                )
                return completion.choices[0].message.content
            except (RateLimitError, APIError) as e:
                last_error = e
                continue
        if last_error:
            logger.warning(f"⚠️ Groq cascade exhausted: {last_error}")
        return None

    def generate(self, prompt: str) -> Optional[str]:
        return self._ollama_generate(prompt) or self._groq_generate(prompt)

    # ---------------------------------------------------------
    # 2. INTENT EXTRACTION
    # ---------------------------------------------------------
    @staticmethod
    def parse_intent(raw: Optional[str]) -> Optional[Dict[str, Any]]:
        """First ``{...}`` block of the model output, code fences removed."""
        if not raw:
            return None
        cleaned = CODE_FENCE.sub("", raw).strip()
        match = JSON_OBJECT.search(cleaned)
        if not match:
            logger.warning("⚠️ No JSON block found in LLM output.")
            return None
        try:
            data = json.loads(match.group(0))
        except ValueError as e:
            logger.warning(f"⚠️ JSON parse failed on LLM block: {e}")
            return None
        return data if isinstance(data, dict) else None

    def extract_intent(self, message: str) -> Dict[str, Any]:
        raw = self.generate(build_intent_prompt(message))
        if raw:
            logger.debug(f"Raw LLM output: {raw[:800]}")
        intent = self.parse_intent(raw)
        if intent is None:
            logger.info("🔁 Falling back to heuristic intent extraction.")
            intent = IntentRules.extract_fallback_intent(message)
        intent.setdefault("filters", {})
        if not isinstance(intent["filters"], dict):
            intent["filters"] = {}
        return intent

    # ---------------------------------------------------------
    # 3. RERANK
    # ---------------------------------------------------------
    def rerank(self, message: str, candidates: List[Product], filters: Optional[Dict[str, Any]] = None) -> List[Product]:
        """Reorders candidates by model score; unscored candidates keep their order at the end."""
        if len(candidates) < 2:
            return candidates
        raw = self.generate(build_rerank_prompt(message, candidates, filters))
        if not raw:
            return candidates
        match = JSON_ARRAY.search(CODE_FENCE.sub("", raw))
        if not match:
            return candidates
        try:
            ranked = json.loads(match.group(0))
        except ValueError:
            logger.warning("⚠️ Rerank output was not valid JSON, keeping original order")
            return candidates

        scores: Dict[str, float] = {}
        for entry in ranked if isinstance(ranked, list) else []:
            if isinstance(entry, dict) and entry.get("handle"):
                try:
                    scores[str(entry["handle"])] = float(entry.get("score", 0))
                except (TypeError, ValueError):
                    continue

        scored = [p for p in candidates if p.handle in scores]
        rest = [p for p in candidates if p.handle not in scores]
        scored.sort(key=lambda p: scores[p.handle], reverse=True)
        return scored + rest

    # ---------------------------------------------------------
    # 4. CONVERSATION
    # ---------------------------------------------------------
    def chat(
        self,
        message: str,
        history: Optional[List[ChatHistoryEntry]] = None,
        structured_intent: Optional[Dict[str, Any]] = None,
    ) -> Optional[str]:
        return self.generate(build_chat_prompt(message, history, structured_intent))
