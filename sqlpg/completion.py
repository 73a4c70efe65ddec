"""Credential lookup and chat-completion calls against the LLM gateway"""

import enum
import logging
from dataclasses import dataclass
from typing import Optional

import groq
import httpx
from groq import Groq

logger = logging.getLogger(__name__)

NO_RESPONSE_TEXT = "No response from the language model."
ERROR_TEXT = "Error communicating with the language model API."


class Failure(str, enum.Enum):
    EMPTY = "empty"
    TRANSPORT = "transport"
    REJECTED = "rejected"
    MALFORMED = "malformed"


@dataclass(frozen=True)
class CompletionResult:
    ok: bool
    text: str
    failure: Optional[Failure] = None
    detail: str = ""

    @classmethod
    def success(cls, text):
        return cls(ok=True, text=text)

    @classmethod
    def failed(cls, failure, detail=""):
        text = NO_RESPONSE_TEXT if failure is Failure.EMPTY else ERROR_TEXT
        return cls(ok=False, text=text, failure=failure, detail=detail)


def fetch_credential(url, client=None):
    """Fetch the bearer token from the gateway's token endpoint.

    Returns None when the endpoint is unreachable or answers without a token;
    completion calls made with no token are rejected by the service.
    """
    own_client = client is None
    if own_client:
        client = httpx.Client(timeout=10.0, follow_redirects=True)
    try:
        response = client.get(url)
        response.raise_for_status()
        token = response.json().get("token")
    except (httpx.HTTPError, ValueError, AttributeError) as e:
        logger.warning("Token endpoint %s unavailable: %s", url, e)
        return None
    finally:
        if own_client:
            client.close()

    if not token:
        logger.warning("Token endpoint %s returned no token", url)
        return None
    return token


class CompletionClient:
    """One request/response cycle per prompt, failures returned as data"""

    def __init__(self, credential, settings, client=None):
        self.credential = credential
        self.model = settings.model
        self.max_tokens = settings.max_tokens
        self.temperature = settings.temperature
        if client is None:
            client = Groq(
                api_key=credential or "",
                base_url=settings.base_url,
                timeout=settings.timeout,
                max_retries=0,
            )
        self.client = client

    @property
    def has_credential(self):
        return bool(self.credential)

    def complete(self, prompt):
        try:
            completion = self.client.chat.completions.create(
                model=self.model,
                messages=[{"role": "user", "content": prompt}],
                max_tokens=self.max_tokens,
                temperature=self.temperature,
            )
        except groq.APIConnectionError as e:
            logger.error("Completion request failed (transport): %s", e)
            return CompletionResult.failed(Failure.TRANSPORT, str(e))
        except groq.APIStatusError as e:
            logger.error("Completion request rejected with HTTP %s", e.status_code)
            return CompletionResult.failed(Failure.REJECTED, f"HTTP {e.status_code}")
        except Exception as e:
            logger.exception("Completion response could not be read")
            return CompletionResult.failed(Failure.MALFORMED, str(e))

        try:
            choices = completion.choices or []
            content = choices[0].message.content if choices else None
        except (AttributeError, TypeError) as e:
            logger.error("Completion response has no message content: %s", e)
            return CompletionResult.failed(Failure.MALFORMED, str(e))

        if not content or not content.strip():
            logger.warning("Completion returned no content")
            return CompletionResult.failed(Failure.EMPTY)
        return CompletionResult.success(content.strip())
