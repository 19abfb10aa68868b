"""Gemini-backed client for synthetic triage examples."""

from __future__ import annotations

import os

from google import genai
from google.genai import types

DEFAULT_MODEL_ID = "gemini-2.0-flash"
API_KEY_ENV_VAR = "GEMINI_API_KEY"


class GeminiExampleClient:
    """Ask Gemini for a JSON array of labeled symptom descriptions."""

    def __init__(
        self,
        *,
        api_key: str | None = None,
        model_id: str = DEFAULT_MODEL_ID,
        api_key_env_var: str = API_KEY_ENV_VAR,
    ) -> None:
        resolved_key = api_key if api_key is not None else os.environ.get(api_key_env_var)
        if not resolved_key:
            raise ValueError(f"{api_key_env_var} is not set")
        self._client = genai.Client(api_key=resolved_key)
        self._model_id = model_id

    def generate(self, prompt: str) -> str:
        response = self._client.models.generate_content(
            model=self._model_id,
            contents=prompt,
            config=types.GenerateContentConfig(response_mime_type="application/json"),
        )
        return (response.text or "").strip()
