#!/usr/bin/env python3
"""
LLM transport for the analysis channels
Talks to Claude (Anthropic Messages API) or Gemini over aiohttp
"""

import asyncio
import base64
import io
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

import aiohttp
import numpy as np
from PIL import Image

from .config import AnalysisConfig
from .errors import NetworkError

logger = logging.getLogger(__name__)

ANTHROPIC_URL = "https://api.anthropic.com/v1/messages"
ANTHROPIC_VERSION = "2023-06-01"
GEMINI_URL = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"

MAX_IMAGE_EDGE = 1024
DATA_URL_PREFIX = "data:"


@dataclass
class ImagePayload:
    """Base64 image ready to be embedded in a model request"""
    data: str
    media_type: str = "image/png"

    @property
    def data_url(self) -> str:
        return f"data:{self.media_type};base64,{self.data}"


def _from_data_url(data_url: str) -> ImagePayload:
    header, _, payload = data_url.partition(",")
    if not payload or ";base64" not in header:
        raise ValueError("Image data URL is not base64 encoded")
    media_type = header[len(DATA_URL_PREFIX):].split(";")[0] or "image/png"
    # Validate before sending it anywhere
    base64.b64decode(payload, validate=True)
    return ImagePayload(data=payload, media_type=media_type)


def _open_image(image: Any) -> Image.Image:
    if isinstance(image, Image.Image):
        return image
    if isinstance(image, np.ndarray):
        return Image.fromarray(image.astype(np.uint8))
    if isinstance(image, (bytes, bytearray)):
        return Image.open(io.BytesIO(image))
    if isinstance(image, (str, Path)) and os.path.exists(str(image)):
        return Image.open(str(image))
    raise ValueError(f"Unsupported image input: {type(image).__name__}")


def encode_image(image: Any) -> ImagePayload:
    """
    Prepare an image for the vision model.

    Accepts a data URL, raw encoded bytes, a file path, a PIL image or a numpy
    array. Large images are downsized so the long edge is at most 1024 px.
    """
    if isinstance(image, str) and image.startswith(DATA_URL_PREFIX):
        return _from_data_url(image)

    img = _open_image(image)

    # Resize if too large (APIs have size limits)
    if img.width > MAX_IMAGE_EDGE or img.height > MAX_IMAGE_EDGE:
        img = img.copy()
        img.thumbnail((MAX_IMAGE_EDGE, MAX_IMAGE_EDGE), Image.Resampling.LANCZOS)

    if img.mode != 'RGB':
        img = img.convert('RGB')

    buffer = io.BytesIO()
    img.save(buffer, format='PNG')
    return ImagePayload(data=base64.b64encode(buffer.getvalue()).decode('utf-8'), media_type="image/png")


class LLMClient:
    """Base class: one prompt (plus optional image) in, response text out"""

    provider = "base"

    def __init__(self, api_key: str, model: str, timeout: float = 60.0, max_tokens: int = 2000):
        self.api_key = api_key
        self.model = model
        self.timeout = timeout
        self.max_tokens = max_tokens

    def build_payload(self, prompt: str, image: Optional[ImagePayload]) -> Dict[str, Any]:
        raise NotImplementedError

    def request_target(self) -> tuple:
        """Return (url, headers) for the request"""
        raise NotImplementedError

    def extract_text(self, body: Dict[str, Any]) -> str:
        raise NotImplementedError

    async def complete(self, prompt: str, image: Optional[ImagePayload] = None) -> str:
        """
        Send one request and return the model's text.

        Raises:
            NetworkError: on connection failure, timeout, non-200 status or an
                unexpected response body
        """
        url, headers = self.request_target()
        payload = self.build_payload(prompt, image)
        timeout = aiohttp.ClientTimeout(total=self.timeout)

        try:
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.post(url, headers=headers, json=payload) as response:
                    if response.status != 200:
                        detail = await response.text()
                        raise NetworkError(
                            f"{self.provider} API error: {response.status} - {detail[:200]}",
                            status=response.status,
                        )
                    body = await response.json(content_type=None)
        except NetworkError:
            raise
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            raise NetworkError(f"{self.provider} request failed: {type(e).__name__}: {e}")

        try:
            return self.extract_text(body)
        except (KeyError, IndexError, TypeError) as e:
            raise NetworkError(f"Unexpected {self.provider} response body: {e}")


class AnthropicClient(LLMClient):
    """Claude Messages API"""

    provider = "claude"

    def request_target(self) -> tuple:
        headers = {
            "Content-Type": "application/json",
            "x-api-key": self.api_key,
            "anthropic-version": ANTHROPIC_VERSION,
        }
        return ANTHROPIC_URL, headers

    def build_payload(self, prompt: str, image: Optional[ImagePayload]) -> Dict[str, Any]:
        if image is None:
            content: Any = prompt
        else:
            content = [
                {
                    "type": "image",
                    "source": {
                        "type": "base64",
                        "media_type": image.media_type,
                        "data": image.data,
                    },
                },
                {"type": "text", "text": prompt},
            ]
        return {
            "model": self.model,
            "max_tokens": self.max_tokens,
            "messages": [{"role": "user", "content": content}],
        }

    def extract_text(self, body: Dict[str, Any]) -> str:
        for block in body["content"]:
            if block.get("type") == "text":
                return block["text"]
        return ""


class GeminiClient(LLMClient):
    """Gemini generateContent API"""

    provider = "gemini"

    def request_target(self) -> tuple:
        url = GEMINI_URL.format(model=self.model) + f"?key={self.api_key}"
        return url, {"Content-Type": "application/json"}

    def build_payload(self, prompt: str, image: Optional[ImagePayload]) -> Dict[str, Any]:
        parts: list = [{"text": prompt}]
        if image is not None:
            parts.append({
                "inline_data": {
                    "mime_type": image.media_type,
                    "data": image.data,
                }
            })
        return {
            "contents": [{"parts": parts}],
            "generationConfig": {"maxOutputTokens": self.max_tokens, "temperature": 0.1},
        }

    def extract_text(self, body: Dict[str, Any]) -> str:
        return body['candidates'][0]['content']['parts'][0]['text']


def create_llm_client(config: AnalysisConfig, model: Optional[str] = None,
                      max_tokens: int = 2000) -> Optional[LLMClient]:
    """Build the client for the configured provider, or None without an API key"""
    if not config.ai_configured:
        return None

    if config.provider == "claude":
        client_cls = AnthropicClient
    elif config.provider == "gemini":
        client_cls = GeminiClient
    else:
        logger.warning(f"Unsupported AI provider: {config.provider}")
        return None

    return client_cls(
        api_key=config.api_key,
        model=model or config.text_model,
        timeout=config.timeout,
        max_tokens=max_tokens,
    )
