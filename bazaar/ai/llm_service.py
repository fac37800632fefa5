"""LLM capability: OpenAI-backed client or a disabled stand-in.

Which variant is used is decided once at process start by
``build_llm_service``; callers never check for a missing client.
"""

import base64
import json
import logging
import time
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional, Type, TypeVar, Union

import pydantic
from openai import AsyncOpenAI
from pydantic import BaseModel

from bazaar import metrics
from bazaar.config import Settings, settings as default_settings
from bazaar.errors import ConfigurationError, MalformedResponse, UpstreamEmptyResponse

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

ImageInput = Union[bytes, str]


def strip_code_fences(text: str) -> str:
    """Remove a surrounding markdown code fence (```json ... ```) if present."""
    text = text.strip()
    if text.startswith("```json"):
        text = text[7:]
    elif text.startswith("```"):
        text = text[3:]
    if text.endswith("```"):
        text = text[:-3]
    return text.strip()


def parse_json_response(text: Optional[str], response_model: Type[ModelT]) -> ModelT:
    """
    Parse model output into a pydantic model.

    Raises:
        UpstreamEmptyResponse: text is empty
        MalformedResponse: text is not JSON or does not match the schema
    """
    if not text or not text.strip():
        raise UpstreamEmptyResponse(detail="Empty response from model")

    cleaned = strip_code_fences(text)
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError as e:
        logger.error(f"Failed to parse LLM JSON response: {e}\nResponse: {cleaned[:200]}")
        raise MalformedResponse(detail=f"Invalid JSON response from LLM: {e}") from e

    try:
        return response_model.model_validate(data)
    except pydantic.ValidationError as e:
        logger.error(f"LLM response does not match {response_model.__name__}: {e}")
        raise MalformedResponse(detail=f"Response does not match schema: {e}") from e


def image_to_data_url(image: ImageInput, mime_type: str = "image/jpeg") -> str:
    """Accept raw bytes, bare base64 or a data URL and return a data URL."""
    if isinstance(image, bytes):
        encoded = base64.b64encode(image).decode("ascii")
        return f"data:{mime_type};base64,{encoded}"

    image = image.strip()
    if image.startswith("data:image/"):
        return image
    return f"data:{mime_type};base64,{image}"


class LLMService(ABC):
    """Generative-model capability returning JSON text."""

    def __init__(self):
        self._call_count: int = 0

    @property
    def available(self) -> bool:
        return True

    @abstractmethod
    async def call_llm(
        self,
        prompt: str,
        system_prompt: str = "",
        image: Optional[ImageInput] = None,
        temperature: Optional[float] = None,
        operation: str = "generic",
    ) -> str:
        """Send one prompt and return the raw response text."""

    async def call_llm_structured(
        self,
        prompt: str,
        response_model: Type[ModelT],
        system_prompt: str = "",
        image: Optional[ImageInput] = None,
        temperature: Optional[float] = None,
        operation: str = "generic",
    ) -> ModelT:
        """
        Call the model with a JSON response schema and validate the result.

        Args:
            prompt: User prompt
            response_model: Pydantic model describing the expected JSON
            system_prompt: System prompt/instructions
            image: Optional image for multimodal prompts
            temperature: Sampling temperature
            operation: Label used for logging and metrics

        Returns:
            Validated response model
        """
        enhanced_system = system_prompt
        if enhanced_system:
            enhanced_system += "\n\n"
        enhanced_system += (
            "Respond with valid JSON matching this schema: "
            f"{json.dumps(response_model.model_json_schema(), ensure_ascii=False)}\n"
            "Return only the JSON object, no additional text."
        )

        text = await self.call_llm(
            prompt=prompt,
            system_prompt=enhanced_system,
            image=image,
            temperature=temperature,
            operation=operation,
        )
        return parse_json_response(text, response_model)

    def get_stats(self) -> Dict[str, Any]:
        return {"available": self.available, "call_count": self._call_count}


class DisabledLLMService(LLMService):
    """Stand-in used when no API key is configured; every call fails fast."""

    @property
    def available(self) -> bool:
        return False

    async def call_llm(
        self,
        prompt: str,
        system_prompt: str = "",
        image: Optional[ImageInput] = None,
        temperature: Optional[float] = None,
        operation: str = "generic",
    ) -> str:
        metrics.ai_requests_total.labels(operation=operation, status="not_configured").inc()
        raise ConfigurationError(detail="OpenAI API key not configured")


class OpenAILLMService(LLMService):
    """
    LLM capability backed by the OpenAI chat completions API.

    Features:
    - JSON-object response format
    - Multimodal (image + text) prompts
    - Per-call temperature
    - Call counting and Prometheus metrics
    """

    def __init__(
        self,
        config: Settings = default_settings,
        client: Optional[AsyncOpenAI] = None,
    ):
        super().__init__()
        self.config = config
        if client is None:
            if not config.openai_api_key:
                raise ConfigurationError(detail="OpenAI API key not configured")
            client_kwargs: Dict[str, Any] = {
                "api_key": config.openai_api_key,
                "timeout": config.llm_timeout_seconds,
            }
            if config.openai_base_url:
                client_kwargs["base_url"] = config.openai_base_url
            client = AsyncOpenAI(**client_kwargs)
        self._client = client

    async def call_llm(
        self,
        prompt: str,
        system_prompt: str = "",
        image: Optional[ImageInput] = None,
        temperature: Optional[float] = None,
        operation: str = "generic",
    ) -> str:
        model = self.config.llm_vision_model if image is not None else self.config.llm_model

        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        if image is not None:
            messages.append({
                "role": "user",
                "content": [
                    {"type": "text", "text": prompt},
                    {"type": "image_url", "image_url": {"url": image_to_data_url(image)}},
                ],
            })
        else:
            messages.append({"role": "user", "content": prompt})

        started = time.monotonic()
        try:
            response = await self._client.chat.completions.create(
                model=model,
                messages=messages,
                temperature=temperature,
                max_tokens=self.config.llm_max_tokens,
                response_format={"type": "json_object"},
            )
        except Exception as e:
            metrics.ai_requests_total.labels(operation=operation, status="error").inc()
            logger.error(f"LLM API call failed ({operation}): {e}")
            raise
        finally:
            metrics.ai_request_duration_seconds.labels(operation=operation).observe(
                time.monotonic() - started
            )

        self._call_count += 1
        result = response.choices[0].message.content if response.choices else None
        if not result:
            metrics.ai_requests_total.labels(operation=operation, status="empty").inc()
            logger.error(f"LLM returned an empty response ({operation})")
            raise UpstreamEmptyResponse(detail="No text returned from model")

        metrics.ai_requests_total.labels(operation=operation, status="success").inc()
        return result


def build_llm_service(config: Settings = default_settings) -> LLMService:
    """Pick the LLM variant for this process based on configuration."""
    if not config.openai_api_key:
        logger.warning("OPENAI_API_KEY not set; AI features are disabled")
        return DisabledLLMService()
    logger.info(f"AI features enabled (model={config.llm_model})")
    return OpenAILLMService(config)
