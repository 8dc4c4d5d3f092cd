import logging
from typing import Any, Optional

import httpx

from .config import Settings
from .errors import (
    MissingCredential,
    NoImageProduced,
    QuotaExhausted,
    RateLimited,
    TransportError,
    UpstreamError,
)
from .prompts import ModelMessage
from .schemas import GenerationResult

logger = logging.getLogger(__name__)

OUTPUT_MODALITIES = ["image", "text"]
BODY_EXCERPT_CHARS = 500


def first_image_url(data: Any) -> Optional[str]:
    """Returns choices[0].message.images[0].image_url.url, or None if any step is missing."""
    try:
        image = data["choices"][0]["message"]["images"][0]
    except (KeyError, IndexError, TypeError):
        return None

    ref = image.get("image_url") if isinstance(image, dict) else None
    if isinstance(ref, dict):
        ref = ref.get("url")
    return ref if isinstance(ref, str) and ref else None


class ModelRelay:
    """
    Sends one assembled ModelMessage to the AI gateway and translates the answer.

    Stateless: a fresh HTTP client per call, a single attempt, no retries.
    `transport` lets tests swap in an httpx.MockTransport.
    """

    def __init__(self, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.settings = settings
        self.transport = transport

    def build_payload(self, message: ModelMessage) -> dict:
        return {
            "model": self.settings.image_model,
            "messages": [message.to_chat_message()],
            "modalities": OUTPUT_MODALITIES,
        }

    async def generate(self, message: ModelMessage) -> GenerationResult:
        if not self.settings.api_key:
            raise MissingCredential("AI gateway API key is not configured")

        headers = {
            "Authorization": f"Bearer {self.settings.api_key}",
            "Content-Type": "application/json",
        }
        async with httpx.AsyncClient(transport=self.transport, timeout=self.settings.request_timeout) as client:
            try:
                response = await client.post(
                    self.settings.gateway_url, json=self.build_payload(message), headers=headers
                )
            except httpx.TimeoutException as e:
                logger.error("AI gateway timed out after %ss", self.settings.request_timeout)
                raise TransportError("timed out", e) from e
            except httpx.RequestError as e:
                logger.error("AI gateway request failed: %s", e)
                raise TransportError(str(e), e) from e

        if response.status_code == 429:
            raise RateLimited("AI gateway rate limited the request")
        if response.status_code == 402:
            raise QuotaExhausted("AI gateway credits exhausted")
        if not response.is_success:
            body = response.text[:BODY_EXCERPT_CHARS]
            logger.error("AI gateway error: %s %s", response.status_code, body)
            raise UpstreamError(response.status_code, body)

        try:
            data = response.json()
        except ValueError as e:
            logger.error("AI gateway returned a non-JSON body: %s", response.text[:BODY_EXCERPT_CHARS])
            raise UpstreamError(response.status_code, response.text[:BODY_EXCERPT_CHARS]) from e

        logger.info("AI response received")
        image_url = first_image_url(data)
        if not image_url:
            logger.error("No image in response: %s", _summarize(data))
            raise NoImageProduced("No image generated")

        return GenerationResult(imageUrl=image_url, prompt=message.instruction)


def _summarize(data: Any) -> str:
    # responses can echo inline base64 images back
    text = str(data)
    return text if len(text) <= BODY_EXCERPT_CHARS else text[:BODY_EXCERPT_CHARS] + "..."
