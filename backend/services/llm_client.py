"""LLM clients for the Gemini, Groq and Ollama backends."""
import time
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import List, Optional, Dict, Any, Sequence, Union

import httpx
from groq import Groq
from groq import RateLimitError, AuthenticationError, APIError, APITimeoutError, APIConnectionError
from google import genai
from google.genai import errors as genai_errors
from google.genai import types as genai_types

from models.conversation import ConversationTurn, Role
from config import (
    GEMINI_API_KEY,
    GROQ_API_KEY,
    OLLAMA_URL,
    GEMINI_MODEL,
    GROQ_MODEL,
    OLLAMA_MODEL,
    OLLAMA_TIMEOUT,
    LLM_TEMPERATURE,
    ANSWER_LANGUAGE,
)

logger = logging.getLogger(__name__)

EMPTY_RESPONSE_TEXT = "Sorry, I could not generate a response."


@dataclass
class LLMError:
    """Structured error response from LLM operations."""
    code: str
    message: str
    details: Dict[str, Any]


class LLMClientError(Exception):
    """Custom exception for LLM client errors with structured error information."""

    def __init__(self, error: LLMError):
        self.error = error
        super().__init__(error.message)


@dataclass
class ConnectionStatus:
    """Outcome of a provider connection test."""
    success: bool
    message: str


@dataclass
class GeminiConfig:
    """Credentials and model for the Google Gemini backend."""
    api_key: Optional[str]
    model: str = GEMINI_MODEL
    provider: str = field(default="gemini", init=False)


@dataclass
class GroqConfig:
    """Credentials and model for the Groq backend."""
    api_key: Optional[str]
    model: str = GROQ_MODEL
    provider: str = field(default="groq", init=False)


@dataclass
class OllamaConfig:
    """Server location and model for a self-hosted Ollama backend."""
    base_url: Optional[str]
    model: str = OLLAMA_MODEL
    timeout: float = OLLAMA_TIMEOUT
    provider: str = field(default="ollama", init=False)


ProviderConfig = Union[GeminiConfig, GroqConfig, OllamaConfig]


class LLMClient(ABC):
    """
    Answers a question from an assembled document context.

    Concrete clients differ only in how they reach their backend; prompts and
    error reporting are shared so callers never depend on the active provider.
    """

    provider = "base"

    def __init__(self, config: ProviderConfig):
        self.config = config
        self.model = config.model

    @abstractmethod
    def get_interpretation(
        self,
        context_block: str,
        question: str,
        history: Sequence[ConversationTurn]
    ) -> str:
        """
        Ask the backend to explain the context in answer to the question.

        Args:
            context_block: Relevant document sections, already formatted
            question: User question
            history: Recent conversation turns, oldest first

        Returns:
            Answer text

        Raises:
            LLMClientError: Structured error with code, message, and details
        """

    @staticmethod
    def build_system_prompt(language: str = ANSWER_LANGUAGE) -> str:
        """Instructions shared by every backend."""
        return f"""You are an AI assistant named Legal Eagle, specializing in simplifying complex legal text.
Your task is to provide a simplified explanation for the user's question based *only* on the provided context from a legal document.
Your response should be *only* the simplified explanation. Do not repeat the original text from the context. Do not add introductory phrases like "Here is the explanation".
You will be given the recent conversation history for context. Use it to continue the conversation naturally.

Your entire response MUST be in {language}.
Explain the concepts in plain, easy-to-understand language, as if you were explaining it to a high school student.
Do not invent information or use knowledge outside of the provided context.
If the context does not contain the answer, state that clearly in {language}."""

    @staticmethod
    def build_user_prompt(
        context_block: str,
        question: str,
        history_text: str = "",
        language: str = ANSWER_LANGUAGE
    ) -> str:
        """
        Build the user message carrying the context and the question.

        Args:
            context_block: Relevant document sections
            question: User question
            history_text: Inline conversation history, for backends without chat roles
            language: Language the answer must be written in

        Returns:
            Complete user prompt
        """
        return f"""{history_text}{context_block}

---
User's Question: "{question}"
---

Your simplified explanation (in {language}), continuing the conversation based on the history provided:"""

    @staticmethod
    def format_history(history: Sequence[ConversationTurn]) -> str:
        """Render history as a transcript block for single-message prompts."""
        if not history:
            return ""
        lines = [
            f"{'User' if turn.role == Role.USER else 'Assistant'}: {turn.content}"
            for turn in history
        ]
        return "RECENT CONVERSATION HISTORY:\n---\n" + "\n".join(lines) + "\n---\n\n"

    @staticmethod
    def to_chat_messages(history: Sequence[ConversationTurn]) -> List[Dict[str, str]]:
        """Map conversation turns onto OpenAI-style chat roles."""
        return [
            {
                "role": "assistant" if turn.role == Role.MODEL else "user",
                "content": turn.content
            }
            for turn in history
        ]

    def _error(
        self,
        code: str,
        message: str,
        start_time: float,
        original: Exception,
        **details: Any
    ) -> LLMClientError:
        """Log a failed call and wrap it in an LLMClientError."""
        latency_ms = int((time.time() - start_time) * 1000)
        error = LLMError(
            code=code,
            message=message,
            details={
                "provider": self.provider,
                "model": self.model,
                "latency_ms": latency_ms,
                "original_error": str(original),
                **details
            }
        )
        logger.error(
            f"{self.provider} error: model={self.model}, latency={latency_ms}ms, error={original}",
            exc_info=True,
            extra={"error_code": error.code, "error_details": error.details}
        )
        return LLMClientError(error)

    def _log_success(self, start_time: float) -> None:
        latency_ms = int((time.time() - start_time) * 1000)
        logger.info(
            f"Generated interpretation: provider={self.provider}, model={self.model}, "
            f"latency={latency_ms}ms"
        )


class GeminiClient(LLMClient):
    """Client for the Google Gemini API."""

    provider = "gemini"

    def __init__(self, config: GeminiConfig):
        super().__init__(config)
        if not config.api_key:
            raise ValueError("GEMINI_API_KEY must be provided or set in environment")
        self.client = genai.Client(api_key=config.api_key)
        logger.info("GeminiClient initialized successfully")

    def get_interpretation(self, context_block, question, history) -> str:
        start_time = time.time()
        prompt = self.build_user_prompt(
            context_block, question, history_text=self.format_history(history)
        )

        try:
            response = self.client.models.generate_content(
                model=self.model,
                contents=prompt,
                config=genai_types.GenerateContentConfig(
                    system_instruction=self.build_system_prompt(),
                    temperature=LLM_TEMPERATURE
                )
            )
        except genai_errors.APIError as e:
            if e.code in (401, 403):
                raise self._error(
                    "AUTHENTICATION_ERROR",
                    "Authentication failed. Please check your Gemini API key.",
                    start_time, e
                )
            if e.code == 429:
                raise self._error(
                    "RATE_LIMIT_ERROR",
                    "Rate limit exceeded. Please try again in a few moments.",
                    start_time, e, retry_after=60
                )
            raise self._error(
                "API_ERROR", f"Gemini API error: {e.message or e}", start_time, e,
                status_code=e.code
            )
        except Exception as e:
            raise self._error(
                "UNKNOWN_ERROR",
                f"Failed to get an interpretation from Gemini: {str(e)}",
                start_time, e, error_type=type(e).__name__
            )

        self._log_success(start_time)
        return response.text or EMPTY_RESPONSE_TEXT


class GroqClient(LLMClient):
    """Client for the Groq API."""

    provider = "groq"

    def __init__(self, config: GroqConfig):
        super().__init__(config)
        if not config.api_key:
            raise ValueError("GROQ_API_KEY must be provided or set in environment")
        self.client = Groq(api_key=config.api_key)
        logger.info("GroqClient initialized successfully")

    def get_interpretation(self, context_block, question, history) -> str:
        start_time = time.time()
        messages = [
            {"role": "system", "content": self.build_system_prompt()},
            *self.to_chat_messages(history),
            {"role": "user", "content": self.build_user_prompt(context_block, question)}
        ]

        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=messages,
                temperature=LLM_TEMPERATURE
            )
        except RateLimitError as e:
            raise self._error(
                "RATE_LIMIT_ERROR",
                "Rate limit exceeded. Please try again in a few moments.",
                start_time, e, retry_after=60
            )
        except AuthenticationError as e:
            raise self._error(
                "AUTHENTICATION_ERROR",
                "Authentication failed. Please check your Groq API key.",
                start_time, e
            )
        except APITimeoutError as e:
            raise self._error(
                "TIMEOUT_ERROR", "Request timed out. Please try again.", start_time, e
            )
        except APIError as e:
            raise self._error("API_ERROR", f"Groq API error: {str(e)}", start_time, e)
        except Exception as e:
            raise self._error(
                "UNKNOWN_ERROR",
                f"Failed to get an interpretation from Groq: {str(e)}",
                start_time, e, error_type=type(e).__name__
            )

        try:
            content = response.choices[0].message.content if response.choices else None
        except (AttributeError, IndexError, TypeError) as e:
            raise self._error(
                "API_ERROR", "Groq returned an invalid response.", start_time, e
            )

        self._log_success(start_time)
        return content or EMPTY_RESPONSE_TEXT

    @staticmethod
    def test_connection(api_key: str, model: str = GROQ_MODEL) -> ConnectionStatus:
        """
        Validate a Groq API key with a one-token completion.

        Args:
            api_key: The API key to test
            model: Model used for the probe request

        Returns:
            ConnectionStatus with success flag and a user-facing message
        """
        if not api_key:
            return ConnectionStatus(success=False, message="The API key cannot be empty.")

        try:
            Groq(api_key=api_key).chat.completions.create(
                messages=[{"role": "user", "content": "test"}],
                model=model,
                max_tokens=1
            )
            return ConnectionStatus(success=True, message="Connection successful!")
        except AuthenticationError:
            reason = "Authentication failed. The API key is invalid or has expired."
        except APIConnectionError:
            reason = "Network failure. Check your internet connection."
        except Exception as e:
            reason = str(e) or "An unknown error occurred."

        logger.warning(f"Groq connection test failed: {reason}")
        return ConnectionStatus(success=False, message=f"Connection failed: {reason}")


class OllamaClient(LLMClient):
    """Client for a self-hosted Ollama server."""

    provider = "ollama"

    def __init__(self, config: OllamaConfig):
        super().__init__(config)
        if not config.base_url:
            raise ValueError("OLLAMA_URL must be provided or set in environment")
        self.base_url = config.base_url.rstrip("/")
        self.timeout = config.timeout
        logger.info(f"OllamaClient initialized for {self.base_url}")

    def get_interpretation(self, context_block, question, history) -> str:
        start_time = time.time()
        payload = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": self.build_system_prompt()},
                *self.to_chat_messages(history),
                {"role": "user", "content": self.build_user_prompt(context_block, question)}
            ],
            "stream": False
        }

        try:
            with httpx.Client(timeout=self.timeout) as client:
                response = client.post(f"{self.base_url}/api/chat", json=payload)
        except httpx.TimeoutException as e:
            raise self._error(
                "TIMEOUT_ERROR", f"Request timed out after {self.timeout}s.", start_time, e
            )
        except httpx.RequestError as e:
            raise self._error(
                "NETWORK_ERROR",
                f"Could not reach the Ollama server at {self.base_url}.",
                start_time, e
            )

        if response.status_code != 200:
            error = RuntimeError(response.text)
            raise self._error(
                "API_ERROR",
                f"The Ollama server responded with status {response.status_code}: {response.text}",
                start_time, error, status_code=response.status_code
            )

        try:
            data = response.json()
            if not isinstance(data, dict):
                raise ValueError(f"expected a JSON object, got {type(data).__name__}")
            message = data.get("message") or {}
            if not isinstance(message, dict):
                raise ValueError(f"expected a message object, got {type(message).__name__}")
        except ValueError as e:
            raise self._error(
                "API_ERROR", "The Ollama server returned an invalid response.", start_time, e
            )

        self._log_success(start_time)
        return message.get("content") or EMPTY_RESPONSE_TEXT

    @staticmethod
    def test_connection(url: str, timeout: float = 10.0) -> ConnectionStatus:
        """
        Check that ``url`` points at a running Ollama server.

        Args:
            url: Server base URL
            timeout: Request timeout in seconds

        Returns:
            ConnectionStatus with success flag and a user-facing message
        """
        if not url:
            return ConnectionStatus(success=False, message="The URL cannot be empty.")

        try:
            response = httpx.get(url, timeout=timeout)
        except httpx.RequestError as e:
            logger.warning(f"Ollama connection test failed: {e}")
            return ConnectionStatus(
                success=False,
                message="Connection failed: Network failure or unreachable URL. "
                        "Check the URL and your Ollama server's CORS settings."
            )

        if response.status_code == 200 and "Ollama is running" in response.text:
            return ConnectionStatus(success=True, message="Connection successful!")

        return ConnectionStatus(
            success=False,
            message="Connection failed: The server at the given URL does not look like an Ollama server."
        )


def load_provider_config(provider: str) -> ProviderConfig:
    """
    Build a provider configuration from environment settings.

    Args:
        provider: "gemini", "groq" or "ollama"

    Returns:
        Configuration for the requested provider

    Raises:
        ValueError: If the provider is unknown
    """
    provider = (provider or "").strip().lower()
    if provider == "gemini":
        return GeminiConfig(api_key=GEMINI_API_KEY)
    if provider == "groq":
        return GroqConfig(api_key=GROQ_API_KEY)
    if provider == "ollama":
        return OllamaConfig(base_url=OLLAMA_URL)
    raise ValueError(f"Unknown AI provider: {provider!r}")


def create_llm_client(config: ProviderConfig) -> LLMClient:
    """
    Instantiate the client matching a provider configuration.

    Raises:
        ValueError: If the configuration lacks credentials or is of an unknown type
    """
    if isinstance(config, GeminiConfig):
        return GeminiClient(config)
    if isinstance(config, GroqConfig):
        return GroqClient(config)
    if isinstance(config, OllamaConfig):
        return OllamaClient(config)
    raise ValueError(f"Unsupported provider configuration: {type(config).__name__}")
