"""
Gemini AI Service for CLEP Finder

Language model collaborator on the google.genai SDK:
- extract_update_intent: institution message -> raw update tuples (JSON)
- answer_question: student question + database digest -> plain-text answer

The SDK call is blocking, so it runs in a worker thread.
"""

import asyncio
import json
import logging
import re
from typing import Any, Dict, List, Optional

from google import genai
from google.genai import types

from clepfinder.config.settings import Settings
from clepfinder.domain.catalog import EXAM_CATALOG
from clepfinder.infrastructure.exceptions import (
    AIServiceError,
    ConfigurationError,
    RateLimitError,
)


logger = logging.getLogger(__name__)


_JSON_ARRAY = re.compile(r"\[[\s\S]*\]")


EXTRACTION_PROMPT = """You extract update commands from the user message about CLEP exam data and return ONLY JSON.

Output must be an ARRAY of objects:
[
  {{"exam":"", "field":"", "value": ""}}
]

Field must be one of: "minScore", "credits", "courseCode"
- "minScore" for minimum score (value should be a number like 50, 55, etc.)
- "credits" for credits awarded (value should be a number like 3, 4, etc.)
- "courseCode" for course equivalent (value should be a string like "BIO 101")

Example inputs:
"Set Biology minimum score to 55"
Output: [{{"exam":"Biology","field":"minScore","value":55}}]

"Change Chemistry credits to 4 and set the course code to CHEM 101"
Output: [{{"exam":"Chemistry","field":"credits","value":4}},{{"exam":"Chemistry","field":"courseCode","value":"CHEM 101"}}]

Use the official CLEP exam names, for example: {exam_examples}.

Return ONLY valid JSON. No natural language.

User: {message}
JSON:
"""


ANSWER_PROMPT = """You are a helpful assistant for CLEP (College Level Examination Program) exam credit acceptance. You help students find universities that accept CLEP credits and answer questions about CLEP policies.

{context}

User Question: {question}

FORMATTING RULES:
- Do NOT use markdown formatting (no **, ##, #, *, etc.)
- Use plain text only, with line breaks for readability
- Use simple bullet points with dashes (-) if needed
- Only state facts supported by the university data above
"""


def parse_json_array(text: str) -> List[Any]:
    """
    Pull the first JSON array out of a model response.

    Models sometimes wrap the array in prose or code fences.

    Raises:
        ValueError: If no JSON array can be decoded
    """
    match = _JSON_ARRAY.search(text or "")
    candidate = match.group(0) if match else (text or "")
    parsed = json.loads(candidate)
    if not isinstance(parsed, list):
        raise ValueError("Expected a JSON array")
    return parsed


class GeminiService:
    """
    LanguageModel implementation on Gemini.

    Args:
        settings: Application settings (API key, model, sampling)
        client: Optional pre-built genai.Client, mainly for tests
    """

    def __init__(self, settings: Settings, client: Optional[genai.Client] = None):
        if client is None and not settings.google_api_key:
            raise ConfigurationError(
                "Missing GOOGLE_API_KEY environment variable",
                missing_keys=["GOOGLE_API_KEY"]
            )

        self._client = client or genai.Client(api_key=settings.google_api_key)
        self.model = settings.gemini_model
        self.temperature = settings.gemini_temperature
        self.max_output_tokens = settings.gemini_max_output_tokens

        logger.info(f"GeminiService initialized with model: {self.model}")

    async def _generate(self, prompt: str, operation: str) -> str:
        try:
            response = await asyncio.to_thread(
                lambda: self._client.models.generate_content(
                    model=self.model,
                    contents=prompt,
                    config=types.GenerateContentConfig(
                        temperature=self.temperature,
                        max_output_tokens=self.max_output_tokens,
                    )
                )
            )
        except Exception as e:
            error_msg = str(e).lower()

            if "rate" in error_msg or "quota" in error_msg or "429" in error_msg:
                raise RateLimitError(
                    "Gemini API rate limit exceeded",
                    original_error=e
                )

            raise AIServiceError(
                f"Gemini request failed: {str(e)}",
                model=self.model,
                operation=operation,
                original_error=e
            )

        if not response.text:
            raise AIServiceError(
                "Empty response from Gemini",
                model=self.model,
                operation=operation
            )

        return response.text

    async def extract_update_intent(self, text: str) -> List[Dict[str, Any]]:
        """
        Extract {"exam", "field", "value"} dicts from a message.

        Returned items are unvalidated; the assistant service sanitizes them.
        """
        prompt = EXTRACTION_PROMPT.format(
            exam_examples=", ".join(EXAM_CATALOG[:8]),
            message=text,
        )
        raw = await self._generate(prompt, "extract_update_intent")

        try:
            items = parse_json_array(raw)
        except ValueError as e:
            logger.warning(f"Could not parse update intent: {raw[:200]}")
            raise AIServiceError(
                "Could not parse update commands from model response",
                model=self.model,
                operation="extract_update_intent",
                original_error=e
            )

        return [item for item in items if isinstance(item, dict)]

    async def answer_question(self, text: str, context_summary: str) -> str:
        prompt = ANSWER_PROMPT.format(context=context_summary, question=text)
        answer = await self._generate(prompt, "answer_question")
        return answer.strip()
