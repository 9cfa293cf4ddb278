from __future__ import annotations
import json
import logging
import re
from typing import Any, Optional
import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError
from santo_nordeste.config import Config
from santo_nordeste.models import Mode, RecipeDraft
from santo_nordeste import prompts

logger = logging.getLogger(__name__)


class GenerationError(Exception):
    pass


class TransportError(GenerationError):
    pass


class ParseError(GenerationError):
    pass


def _extract_json(text: str) -> str:
    """Extract a JSON object from text that may be wrapped in prose or fences."""
    match = re.search(r"\{.*\}", text, re.DOTALL)
    if match:
        return match.group(0)
    return text


class InlineData(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    mime_type: Optional[str] = Field(default=None, alias="mimeType")
    data: Optional[str] = None


class Part(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    text: Optional[str] = None
    inline_data: Optional[InlineData] = Field(default=None, alias="inlineData")


class Content(BaseModel):
    parts: list[Part] = Field(default_factory=list)


class Candidate(BaseModel):
    content: Optional[Content] = None


class GenerateContentResponse(BaseModel):
    candidates: list[Candidate] = Field(default_factory=list)

    @property
    def parts(self) -> list[Part]:
        if not self.candidates or self.candidates[0].content is None:
            return []
        return self.candidates[0].content.parts


class GenerationClient:
    """Gemini ``generateContent`` client for recipe text, food images and narration."""

    def __init__(self, config: Config, http_client: httpx.Client | None = None):
        self.config = config
        self._owns_http = http_client is None
        self._http = http_client or httpx.Client(timeout=config.request_timeout)

    def __enter__(self) -> GenerationClient:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def close(self) -> None:
        if self._owns_http:
            self._http.close()

    def _generate(self, model: str, body: dict[str, Any]) -> GenerateContentResponse:
        url = f"{self.config.gemini_base_url.rstrip('/')}/models/{model}:generateContent"
        logger.debug("POST %s", url)
        try:
            response = self._http.post(
                url,
                json=body,
                headers={"x-goog-api-key": self.config.gemini_api_key},
            )
        except httpx.TimeoutException as e:
            raise TransportError(f"Request to {model} timed out.") from e
        except httpx.HTTPError as e:
            raise TransportError(f"Could not reach the generation backend: {e}") from e

        if response.status_code >= 400:
            raise TransportError(f"HTTP {response.status_code} error from {model}: {response.text[:200]}")
        try:
            payload = response.json()
        except ValueError as e:
            raise ParseError(f"Backend returned a non-JSON body: {e}") from e
        try:
            return GenerateContentResponse.model_validate(payload)
        except ValidationError as e:
            raise ParseError(f"Backend returned an unexpected response envelope: {e}") from e

    def request_recipe(self, query: str, mode: Mode = Mode.TRADITIONAL) -> RecipeDraft:
        body = {
            "systemInstruction": {"parts": [{"text": self.config.system_prompt}]},
            "contents": [{"role": "user", "parts": [{"text": prompts.recipe_prompt(query, mode)}]}],
            "generationConfig": {
                "responseMimeType": "application/json",
                "responseSchema": prompts.RECIPE_SCHEMA,
            },
        }
        response = self._generate(self.config.recipe_model, body)

        raw_text = "".join(p.text or "" for p in response.parts)
        if not raw_text.strip():
            raise ParseError("Backend response contained no recipe text")
        try:
            data = json.loads(_extract_json(raw_text))
        except json.JSONDecodeError as e:
            raise ParseError(f"Failed to parse recipe response as JSON: {e}") from e

        try:
            return RecipeDraft.model_validate(data)
        except ValidationError as e:
            raise ParseError(f"Backend returned an unexpected recipe format: {e}") from e

    def request_food_image(self, title: str) -> Optional[str]:
        body = {
            "contents": [{"parts": [{"text": prompts.image_prompt(title)}]}],
            "generationConfig": {"imageConfig": {"aspectRatio": "1:1"}},
        }
        try:
            response = self._generate(self.config.image_model, body)
        except GenerationError as e:
            logger.warning("Image generation failed for %r: %s", title, e)
            return None

        for part in response.parts:
            inline = part.inline_data
            if inline and inline.data:
                return f"data:{inline.mime_type or 'image/png'};base64,{inline.data}"
        logger.info("No image returned for %r", title)
        return None

    def request_narration_audio(self, text: str) -> Optional[str]:
        body = {
            "contents": [{"parts": [{"text": prompts.narration_prompt(text)}]}],
            "generationConfig": {
                "responseModalities": ["AUDIO"],
                "speechConfig": {
                    "voiceConfig": {"prebuiltVoiceConfig": {"voiceName": self.config.voice_name}},
                },
            },
        }
        try:
            response = self._generate(self.config.speech_model, body)
        except GenerationError as e:
            logger.warning("Narration audio request failed: %s", e)
            return None

        parts = response.parts
        inline = parts[0].inline_data if parts else None
        return inline.data if inline and inline.data else None
