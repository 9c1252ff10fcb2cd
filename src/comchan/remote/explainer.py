"""Ask a hosted chat-completion model to explain detected spikes."""

from __future__ import annotations

import logging
import os
from typing import Any, Optional

import requests

from ..core.spikes import DEFAULT_RECENT_POINTS, SpikeDetector

logger = logging.getLogger(__name__)

OPENAI_CHAT_URL = "https://api.openai.com/v1/chat/completions"
API_KEY_ENV = "OPENAI_API_KEY"
DEFAULT_MODEL = "gpt-3.5-turbo"
DEFAULT_TIMEOUT_S = 30.0

SYSTEM_PROMPT = (
    "You are a helpful embedded systems diagnostics assistant. "
    "Provide brief, actionable explanations for sensor data anomalies."
)

PROMPT_TEMPLATE = """\
You are an embedded systems expert analyzing serial sensor data from a microcontroller.

The following sensor data was captured, and spikes (anomalies) were detected:

## Detected Spikes
{spikes}
## Recent Sensor Data
{data}

Provide a concise, plain-English explanation of what likely caused each spike. \
Consider common embedded system issues such as:
- Loose connections or wiring issues
- Power fluctuations or supply noise
- Sensor calibration drift
- Environmental interference (EMI, temperature)
- Software timing issues or buffer overflows
- Ground loops or analog reference problems

Format your response as a brief summary (2-4 sentences per spike). \
Start each explanation with the timestamp."""


class ExplanationError(RuntimeError):
    """The explanation service could not produce an answer."""


def build_prompt(
    detector: SpikeDetector, max_recent_per_channel: int = DEFAULT_RECENT_POINTS
) -> str:
    return PROMPT_TEMPLATE.format(
        spikes=detector.summarize_spikes(),
        data=detector.summarize_buffers(max_recent_per_channel),
    )


class SpikeExplainer:
    """Thin client for the chat-completions endpoint. No retries."""

    def __init__(
        self,
        api_key: str,
        model: str = DEFAULT_MODEL,
        timeout_s: float = DEFAULT_TIMEOUT_S,
        url: str = OPENAI_CHAT_URL,
        session: Optional[requests.Session] = None,
    ) -> None:
        if not api_key:
            raise ValueError("api_key must not be empty")
        self.model = model
        self.timeout_s = timeout_s
        self.url = url
        self.session = session or requests.Session()
        self.session.headers.update(
            {
                "Authorization": f"Bearer {api_key}",
                "Content-Type": "application/json",
            }
        )

    @classmethod
    def from_env(cls, **kwargs: Any) -> Optional["SpikeExplainer"]:
        """Build an explainer from ``$OPENAI_API_KEY``; ``None`` if unset."""
        api_key = os.environ.get(API_KEY_ENV, "").strip()
        if not api_key:
            return None
        return cls(api_key, **kwargs)

    def _payload(self, prompt: str) -> dict[str, Any]:
        return {
            "model": self.model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
            "max_tokens": 500,
            "temperature": 0.3,
        }

    def complete(self, prompt: str) -> str:
        """Send ``prompt`` and return the model's reply text."""
        try:
            resp = self.session.post(self.url, json=self._payload(prompt), timeout=self.timeout_s)
        except requests.RequestException as exc:
            raise ExplanationError(f"Request to {self.url} failed: {exc}") from exc

        if not resp.ok:
            raise ExplanationError(f"OpenAI API error ({resp.status_code}): {resp.text}")

        try:
            body = resp.json()
            content = body["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as exc:
            raise ExplanationError(f"Unexpected response from {self.url}: {exc}") from exc
        if not isinstance(content, str):
            raise ExplanationError("Response did not contain an explanation")
        return content

    def explain(self, detector: SpikeDetector) -> str:
        logger.info("Requesting explanation for %d spikes", len(detector.spikes))
        return self.complete(build_prompt(detector))
