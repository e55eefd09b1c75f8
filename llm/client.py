"""
OpenAI-compatible chat completions client using direct REST API calls.
Handles API calls with retries and JSON output.
"""
import json
from typing import Any, Dict, List, Optional, Union

import requests
import urllib3
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from core.config import get_settings
from core.exceptions import ConfigurationError, LLMError
from core.logger import setup_logger

logger = setup_logger(__name__)

JsonPayload = Union[Dict[str, Any], List[Any]]


def strip_code_fences(content: str) -> str:
    """
    Remove a surrounding markdown code block (```json ... ```) if present.

    Args:
        content: Raw assistant message

    Returns:
        Content without the fences
    """
    content_stripped = content.strip()
    if content_stripped.startswith("```"):
        lines = content_stripped.split("\n")
        if lines[0].startswith("```"):
            lines = lines[1:]
        if lines and lines[-1].strip() == "```":
            lines = lines[:-1]
        content_stripped = "\n".join(lines).strip()
    return content_stripped


def parse_json_content(content: str) -> JsonPayload:
    """
    Parse the assistant message as JSON.

    Falls back to the first fenced block or the outermost array/object when
    the model wraps its answer in prose.

    Raises:
        ValueError: If no JSON can be recovered
    """
    stripped = strip_code_fences(content)
    try:
        return json.loads(stripped)
    except json.JSONDecodeError:
        pass

    if "```" in stripped:
        fenced = stripped.split("```")[1]
        if fenced.startswith("json"):
            fenced = fenced[4:]
        try:
            return json.loads(fenced.strip())
        except json.JSONDecodeError:
            pass

    for opener, closer in (("[", "]"), ("{", "}")):
        start, end = stripped.find(opener), stripped.rfind(closer)
        if start != -1 and end > start:
            try:
                return json.loads(stripped[start:end + 1])
            except json.JSONDecodeError:
                continue

    raise ValueError("LLM did not return valid JSON")


class OpenAIClientWrapper:
    """Wrapper for the chat completions REST API with retry logic."""

    def __init__(self):
        """Initialize REST API client."""
        settings = get_settings()
        if not settings.openai_api_key:
            raise ConfigurationError(
                "OPENAI_API_KEY environment variable not set",
                details={"required_key": "OPENAI_API_KEY"}
            )

        self.gateway_url = settings.openai_gateway_url
        self.api_key = settings.openai_api_key
        self.model = settings.openai_model
        self.timeout = settings.openai_timeout
        self.verify_ssl = settings.openai_verify_ssl

        if not self.verify_ssl:
            # Self-signed internal gateways
            urllib3.disable_warnings(urllib3.exceptions.InsecureRequestWarning)

        logger.info(f"Initialized OpenAI REST client with model: {self.model}, gateway: {self.gateway_url}")

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_exception_type((LLMError,)),
        reraise=True
    )
    def call_json(
        self,
        system_prompt: str,
        user_message: str,
        temperature: float = 0.1,
    ) -> JsonPayload:
        """
        Call the chat completions API and parse the reply as JSON.

        Args:
            system_prompt: System instruction
            user_message: User message with document text
            temperature: Model temperature (0.0-1.0)

        Returns:
            Parsed JSON response

        Raises:
            LLMError: If API call fails after retries
        """
        payload = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_message},
            ],
            "response_format": {"type": "json_object"},
        }

        # Reasoning models reject a temperature parameter
        if not self.model.lower().startswith(("o1", "o3", "o4", "gpt-5")):
            payload["temperature"] = temperature

        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.api_key}"
        }

        response = None
        try:
            response = requests.post(
                self.gateway_url,
                headers=headers,
                data=json.dumps(payload),
                verify=self.verify_ssl,
                timeout=self.timeout
            )

            # Raise for HTTP errors (4xx, 5xx)
            response.raise_for_status()

            completion_data = response.json()

            content = None
            try:
                content = completion_data["choices"][0]["message"]["content"]
            except (KeyError, IndexError, TypeError):
                pass

            if not content:
                logger.error(f"Response keys: {list(completion_data.keys())}")
                raise ValueError("Unexpected response structure: no message content in 'choices'")

            result = parse_json_content(content)

            if "usage" in completion_data:
                usage = completion_data["usage"]
                input_tokens = usage.get("prompt_tokens", "N/A")
                output_tokens = usage.get("completion_tokens", "N/A")
                logger.debug(f"Token usage - Input: {input_tokens}, Output: {output_tokens}")

            return result

        except requests.exceptions.Timeout as e:
            logger.error(f"Gateway request timeout after {self.timeout}s: {e}")
            raise LLMError(
                f"Gateway request timeout after {self.timeout}s",
                details={"gateway_url": self.gateway_url, "timeout": self.timeout}
            )

        except requests.exceptions.HTTPError as e:
            logger.error(f"Gateway HTTP error: {e}")
            raise LLMError(
                f"Gateway returned HTTP error: {e}",
                details={
                    "gateway_url": self.gateway_url,
                    "status_code": getattr(e.response, "status_code", None),
                }
            )

        except requests.exceptions.RequestException as e:
            logger.error(f"Gateway request failed: {e}")
            raise LLMError(
                f"Failed to connect to gateway: {str(e)}",
                details={"gateway_url": self.gateway_url, "error": str(e)}
            )

        except ValueError as e:
            # json.JSONDecodeError is a ValueError too
            logger.error(f"Error parsing gateway response: {e}")
            raise LLMError(
                f"Gateway response parsing error: {str(e)}",
                details={"error": str(e), "raw_length": len(response.text) if response is not None else 0}
            )


# Singleton client instance
_client: Optional[OpenAIClientWrapper] = None


def get_client() -> OpenAIClientWrapper:
    """
    Get or create OpenAI client singleton.

    Returns:
        OpenAI client wrapper instance
    """
    global _client
    if _client is None:
        _client = OpenAIClientWrapper()
    return _client


def reset_client() -> None:
    """Drop the cached client (useful for testing)."""
    global _client
    _client = None
