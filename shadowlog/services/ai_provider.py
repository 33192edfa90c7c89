"""
Gemini completion provider for ShadowLog analysis.
Uses the google-genai client, either with an API key or with Vertex AI (service account file or ADC).
Built once by the app lifespan; build_gemini_provider returns None when no credentials are configured.
"""
import asyncio
import logging
from pathlib import Path
from typing import Any

from shadowlog.config import Settings

logger = logging.getLogger(__name__)


class GeminiProvider:
    """complete(system_prompt, user_content, temperature, max_tokens) -> text. Raises on API or model errors."""

    def __init__(self, client: Any, model: str, timeout_seconds: float = 30):
        self._client = client
        self._model = model
        self._timeout = timeout_seconds

    async def complete(self, system_prompt: str, user_content: str, temperature: float, max_tokens: int) -> str:
        from google.genai.types import GenerateContentConfig

        response = await asyncio.wait_for(
            self._client.aio.models.generate_content(
                model=self._model,
                contents=user_content,
                config=GenerateContentConfig(
                    system_instruction=system_prompt,
                    temperature=temperature,
                    max_output_tokens=max_tokens,
                ),
            ),
            timeout=self._timeout,
        )
        if not response or not response.candidates:
            raise ValueError("Empty response from model")
        candidate = response.candidates[0]
        if not candidate.content or not candidate.content.parts:
            raise ValueError("No text in model response")
        return getattr(response, "text", None) or candidate.content.parts[0].text or ""

    async def aclose(self) -> None:
        aio = getattr(self._client, "aio", None)
        close = getattr(aio, "aclose", None)
        if close is None:
            return
        try:
            await close()
        except Exception as e:
            logger.warning("Gemini client close error: %s", e)


def build_gemini_provider(settings: Settings) -> GeminiProvider | None:
    if not settings.gemini_api_key and not settings.vertex_project_id:
        logger.warning("Gemini credentials not configured, AI features return neutral defaults")
        return None
    try:
        from google import genai
    except ImportError as e:
        raise RuntimeError("Google GenAI not installed. pip install google-genai google-auth") from e

    if settings.gemini_api_key:
        client = genai.Client(api_key=settings.gemini_api_key)
    else:
        credentials = None
        if settings.vertex_credentials_path:
            from google.oauth2 import service_account

            path = Path(settings.vertex_credentials_path)
            if path.is_file():
                credentials = service_account.Credentials.from_service_account_file(
                    str(path),
                    scopes=["https://www.googleapis.com/auth/cloud-platform"],
                )
            else:
                logger.warning("vertex_credentials_path %s not found, falling back to ADC", path)
        client = genai.Client(
            vertexai=True,
            project=settings.vertex_project_id,
            location=settings.vertex_location,
            credentials=credentials,
        )
    logger.info("Gemini provider ready (model %s)", settings.gemini_model)
    return GeminiProvider(client, settings.gemini_model, timeout_seconds=settings.ai_request_timeout_seconds)
