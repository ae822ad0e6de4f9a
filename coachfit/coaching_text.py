"""
Client for the optional coaching-text service (Gemini through google-genai).

The service receives the structured insight payload embedded in a prompt and
returns free-form coaching bullets. Every failure surfaces as
CollaboratorUnavailable so callers can fall back to the numeric report.
"""
import json
import logging
from typing import Any, Dict, Optional

from google import genai
from google.genai import types

from coachfit import config
from coachfit.errors import CollaboratorUnavailable

logger = logging.getLogger(__name__)

COACH_PROMPT_TEMPLATE = """You are an experienced strength & conditioning coach.

Analyze the JSON summary below of ONE user's workout history from the app "Coach-Fit".
Based on their actual training patterns, write exactly 4 practical training recommendations.

Focus on:
- Weekly frequency and consistency
- Muscle group balance (upper vs lower, or any other gap in the data)
- Progressive overload (volume, sets, difficulty)
- Recovery and rest if recent load is high
- Weaknesses or overuse visible in the log

Rules:
- Output only bullet points starting with "- "
- No intro and no closing summary
- Each bullet is 1-2 sentences
- Speak directly to the user ("you"), friendly and concise
- No emojis
- Do not repeat the same idea twice
- Base everything on the data; do not invent numbers

Workout summary JSON:
{payload}
"""


def build_coaching_prompt(payload: Dict[str, Any]) -> str:
    return COACH_PROMPT_TEMPLATE.format(payload=json.dumps(payload, indent=2, sort_keys=True))


class GeminiCoachingTextService:
    """Generates coaching text from a structured insight payload."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        client=None,
        timeout_ms: Optional[int] = None,
    ):
        self.model = model or config.LLM_MODEL
        self.timeout_ms = timeout_ms or config.get_llm_timeout_ms()
        self.client = client
        if self.client is None:
            api_key = api_key or config.get_llm_api_key()
            if api_key:
                try:
                    self.client = genai.Client(
                        api_key=api_key,
                        http_options=types.HttpOptions(timeout=self.timeout_ms),
                    )
                except Exception as e:
                    logger.warning(f"Failed to init genai client: {e}")
                    self.client = None
            else:
                logger.warning("No GEMINI_API_KEY/GOOGLE_API_KEY set; coaching text is disabled.")

    @property
    def available(self) -> bool:
        return self.client is not None

    def generate(self, payload: Dict[str, Any]) -> str:
        """Return coaching text for ``payload``. Raises CollaboratorUnavailable on any failure."""
        if not self.available:
            raise CollaboratorUnavailable("Coaching text service is not configured.")

        prompt = build_coaching_prompt(payload)
        try:
            resp = self.client.models.generate_content(model=self.model, contents=prompt)
        except Exception as e:
            logger.warning(f"Coaching text generation failed: {e}")
            raise CollaboratorUnavailable("Coaching text generation failed.", cause=e) from e

        text = (getattr(resp, "text", None) or "").strip()
        if not text:
            raise CollaboratorUnavailable("Coaching text service returned an empty response.")
        return text
