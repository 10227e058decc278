"""Unit tests for the LLM clients."""
import sys
from pathlib import Path

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent.parent / "backend"))

import httpx
import pytest
from unittest.mock import Mock, MagicMock, patch
from groq import RateLimitError, AuthenticationError, APIError, APITimeoutError
from google.genai import errors as genai_errors

from models.conversation import ConversationTurn, Role
from services.llm_client import (
    LLMClient, LLMClientError, GeminiClient, GroqClient, OllamaClient,
    GeminiConfig, GroqConfig, OllamaConfig, EMPTY_RESPONSE_TEXT,
    create_llm_client, load_provider_config,
)


CONTEXT = 'CONTEXT: ...\n\n---\nSection "Artigo 2.º Prazo":\nO contrato dura cinco anos.\n---'
QUESTION = "Qual o prazo do contrato?"
HISTORY = [
    ConversationTurn(role=Role.MODEL, content="Documento carregado."),
    ConversationTurn(role=Role.USER, content="Do que trata a lei?"),
]


def groq_response(content):
    response = Mock()
    response.choices = [Mock(message=Mock(content=content))]
    return response


class TestPrompts:
    """Test suite for the prompt helpers shared by all clients."""

    def test_client_must_implement_get_interpretation(self):
        """Test that an incomplete backend can't be instantiated."""

        class IncompleteClient(LLMClient):
            provider = "incomplete"

        with pytest.raises(TypeError):
            IncompleteClient(GroqConfig(api_key="test_key"))

    def test_system_prompt_sets_language(self):
        """Test that the answer language is configurable."""
        prompt = LLMClient.build_system_prompt(language="English")

        assert "Legal Eagle" in prompt
        assert "MUST be in English" in prompt
        assert "only* on the provided context" in prompt

    def test_user_prompt_contains_context_and_question(self):
        """Test the user message layout."""
        prompt = LLMClient.build_user_prompt(CONTEXT, QUESTION)

        assert prompt.startswith(CONTEXT)
        assert f'User\'s Question: "{QUESTION}"' in prompt

    def test_format_history(self):
        """Test the inline transcript used by single-message backends."""
        text = LLMClient.format_history(HISTORY)

        assert "Assistant: Documento carregado." in text
        assert "User: Do que trata a lei?" in text
        assert LLMClient.format_history([]) == ""

    def test_chat_messages_map_model_role_to_assistant(self):
        """Test role mapping for chat-style APIs."""
        assert LLMClient.to_chat_messages(HISTORY) == [
            {"role": "assistant", "content": "Documento carregado."},
            {"role": "user", "content": "Do que trata a lei?"},
        ]


class TestGroqClient:
    """Test suite for GroqClient."""

    def test_initialization_without_api_key_raises_error(self):
        """Test GroqClient needs an API key."""
        with pytest.raises(ValueError, match="GROQ_API_KEY must be provided"):
            GroqClient(GroqConfig(api_key=None))

    @patch('services.llm_client.Groq')
    def test_get_interpretation_success(self, mock_groq_class):
        """Test a successful completion and the messages sent."""
        mock_client = Mock()
        mock_client.chat.completions.create.return_value = groq_response("Cinco anos.")
        mock_groq_class.return_value = mock_client

        client = GroqClient(GroqConfig(api_key="test_key"))
        answer = client.get_interpretation(CONTEXT, QUESTION, HISTORY)

        assert answer == "Cinco anos."
        mock_groq_class.assert_called_once_with(api_key="test_key")

        kwargs = mock_client.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "llama3-70b-8192"
        messages = kwargs["messages"]
        assert messages[0]["role"] == "system"
        assert messages[1:3] == LLMClient.to_chat_messages(HISTORY)
        assert messages[-1]["role"] == "user"
        assert CONTEXT in messages[-1]["content"]
        assert QUESTION in messages[-1]["content"]

    @patch('services.llm_client.Groq')
    def test_empty_completion_falls_back(self, mock_groq_class):
        """Test that an empty answer is replaced by a fixed message."""
        mock_client = Mock()
        mock_client.chat.completions.create.return_value = groq_response(None)
        mock_groq_class.return_value = mock_client

        client = GroqClient(GroqConfig(api_key="test_key"))

        assert client.get_interpretation(CONTEXT, QUESTION, []) == EMPTY_RESPONSE_TEXT

    @patch('services.llm_client.Groq')
    def test_malformed_completion(self, mock_groq_class):
        """Test that a completion without a message becomes API_ERROR."""
        mock_client = Mock()
        mock_client.chat.completions.create.return_value = Mock(choices=[object()])
        mock_groq_class.return_value = mock_client

        client = GroqClient(GroqConfig(api_key="test_key"))

        with pytest.raises(LLMClientError) as exc_info:
            client.get_interpretation(CONTEXT, QUESTION, [])

        assert exc_info.value.error.code == "API_ERROR"

    @patch('services.llm_client.Groq')
    def test_rate_limit_error(self, mock_groq_class):
        """Test that rate limit errors are handled with retry suggestion."""
        mock_client = Mock()
        mock_client.chat.completions.create.side_effect = RateLimitError(
            message="Rate limit exceeded",
            response=Mock(status_code=429),
            body=None
        )
        mock_groq_class.return_value = mock_client

        client = GroqClient(GroqConfig(api_key="test_key"))

        with pytest.raises(LLMClientError) as exc_info:
            client.get_interpretation(CONTEXT, QUESTION, [])

        error = exc_info.value.error
        assert error.code == "RATE_LIMIT_ERROR"
        assert error.details["retry_after"] == 60
        assert error.details["provider"] == "groq"
        assert isinstance(error.details["latency_ms"], int)

    @patch('services.llm_client.Groq')
    def test_authentication_error(self, mock_groq_class):
        """Test that authentication errors are handled properly."""
        mock_client = Mock()
        mock_client.chat.completions.create.side_effect = AuthenticationError(
            message="Invalid API key",
            response=Mock(status_code=401),
            body=None
        )
        mock_groq_class.return_value = mock_client

        client = GroqClient(GroqConfig(api_key="test_key"))

        with pytest.raises(LLMClientError) as exc_info:
            client.get_interpretation(CONTEXT, QUESTION, [])

        assert exc_info.value.error.code == "AUTHENTICATION_ERROR"
        assert "Authentication failed" in exc_info.value.error.message

    @patch('services.llm_client.Groq')
    def test_timeout_error(self, mock_groq_class):
        """Test that timeout errors are handled properly."""
        mock_client = Mock()
        mock_client.chat.completions.create.side_effect = APITimeoutError(request=Mock())
        mock_groq_class.return_value = mock_client

        client = GroqClient(GroqConfig(api_key="test_key"))

        with pytest.raises(LLMClientError) as exc_info:
            client.get_interpretation(CONTEXT, QUESTION, [])

        assert exc_info.value.error.code == "TIMEOUT_ERROR"

    @patch('services.llm_client.Groq')
    def test_generic_api_error(self, mock_groq_class):
        """Test that generic API errors are handled properly."""
        mock_client = Mock()
        mock_client.chat.completions.create.side_effect = APIError(
            message="Service unavailable",
            request=Mock(),
            body=None
        )
        mock_groq_class.return_value = mock_client

        client = GroqClient(GroqConfig(api_key="test_key"))

        with pytest.raises(LLMClientError) as exc_info:
            client.get_interpretation(CONTEXT, QUESTION, [])

        assert exc_info.value.error.code == "API_ERROR"
        assert "Groq API error" in exc_info.value.error.message

    @patch('services.llm_client.Groq')
    def test_unexpected_error(self, mock_groq_class):
        """Test that unknown failures still surface as LLMClientError."""
        mock_client = Mock()
        mock_client.chat.completions.create.side_effect = Exception("boom")
        mock_groq_class.return_value = mock_client

        client = GroqClient(GroqConfig(api_key="test_key"))

        with pytest.raises(LLMClientError) as exc_info:
            client.get_interpretation(CONTEXT, QUESTION, [])

        error = exc_info.value.error
        assert error.code == "UNKNOWN_ERROR"
        assert error.details["error_type"] == "Exception"

    @patch('services.llm_client.Groq')
    def test_connection_success(self, mock_groq_class):
        """Test a valid key."""
        status = GroqClient.test_connection("test_key")

        assert status.success is True
        kwargs = mock_groq_class.return_value.chat.completions.create.call_args.kwargs
        assert kwargs["max_tokens"] == 1

    @patch('services.llm_client.Groq')
    def test_connection_invalid_key(self, mock_groq_class):
        """Test an invalid key is reported without raising."""
        mock_groq_class.return_value.chat.completions.create.side_effect = AuthenticationError(
            message="Invalid API key",
            response=Mock(status_code=401),
            body=None
        )

        status = GroqClient.test_connection("bad_key")

        assert status.success is False
        assert "Authentication failed" in status.message

    def test_connection_empty_key(self):
        """Test that an empty key is rejected up front."""
        status = GroqClient.test_connection("")

        assert status.success is False
        assert "cannot be empty" in status.message


class TestGeminiClient:
    """Test suite for GeminiClient."""

    def test_initialization_without_api_key_raises_error(self):
        """Test GeminiClient needs an API key."""
        with pytest.raises(ValueError, match="GEMINI_API_KEY must be provided"):
            GeminiClient(GeminiConfig(api_key=""))

    @patch('services.llm_client.genai')
    def test_get_interpretation_success(self, mock_genai):
        """Test a successful generation with inline history."""
        mock_client = mock_genai.Client.return_value
        mock_client.models.generate_content.return_value = Mock(text="Cinco anos.")

        client = GeminiClient(GeminiConfig(api_key="test_key"))
        answer = client.get_interpretation(CONTEXT, QUESTION, HISTORY)

        assert answer == "Cinco anos."
        mock_genai.Client.assert_called_once_with(api_key="test_key")

        kwargs = mock_client.models.generate_content.call_args.kwargs
        assert kwargs["model"] == "gemini-2.5-flash"
        assert "User: Do que trata a lei?" in kwargs["contents"]
        assert CONTEXT in kwargs["contents"]
        assert "Legal Eagle" in kwargs["config"].system_instruction

    @patch('services.llm_client.genai')
    def test_empty_text_falls_back(self, mock_genai):
        """Test that a blocked or empty answer is replaced by a fixed message."""
        mock_genai.Client.return_value.models.generate_content.return_value = Mock(text=None)

        client = GeminiClient(GeminiConfig(api_key="test_key"))

        assert client.get_interpretation(CONTEXT, QUESTION, []) == EMPTY_RESPONSE_TEXT

    @patch('services.llm_client.genai')
    def test_rate_limit_error(self, mock_genai):
        """Test that quota errors map to RATE_LIMIT_ERROR."""
        mock_genai.Client.return_value.models.generate_content.side_effect = genai_errors.ClientError(
            429, {"error": {"code": 429, "message": "Quota exceeded", "status": "RESOURCE_EXHAUSTED"}}
        )

        client = GeminiClient(GeminiConfig(api_key="test_key"))

        with pytest.raises(LLMClientError) as exc_info:
            client.get_interpretation(CONTEXT, QUESTION, [])

        assert exc_info.value.error.code == "RATE_LIMIT_ERROR"
        assert exc_info.value.error.details["provider"] == "gemini"

    @patch('services.llm_client.genai')
    def test_server_error(self, mock_genai):
        """Test that other API errors map to API_ERROR."""
        mock_genai.Client.return_value.models.generate_content.side_effect = genai_errors.ServerError(
            500, {"error": {"code": 500, "message": "Internal error", "status": "INTERNAL"}}
        )

        client = GeminiClient(GeminiConfig(api_key="test_key"))

        with pytest.raises(LLMClientError) as exc_info:
            client.get_interpretation(CONTEXT, QUESTION, [])

        assert exc_info.value.error.code == "API_ERROR"
        assert exc_info.value.error.details["status_code"] == 500


class TestOllamaClient:
    """Test suite for OllamaClient."""

    @pytest.fixture
    def client(self):
        return OllamaClient(OllamaConfig(base_url="http://localhost:11434/"))

    def test_initialization_without_url_raises_error(self):
        """Test OllamaClient needs a server URL."""
        with pytest.raises(ValueError, match="OLLAMA_URL must be provided"):
            OllamaClient(OllamaConfig(base_url=None))

    @patch('httpx.Client')
    def test_get_interpretation_success(self, mock_client_class, client):
        """Test a successful, non-streaming chat request."""
        mock_http = MagicMock()
        mock_http.post.return_value = Mock(
            status_code=200,
            json=Mock(return_value={"message": {"role": "assistant", "content": "Cinco anos."}})
        )
        mock_client_class.return_value.__enter__.return_value = mock_http

        answer = client.get_interpretation(CONTEXT, QUESTION, HISTORY)

        assert answer == "Cinco anos."
        url = mock_http.post.call_args.args[0]
        payload = mock_http.post.call_args.kwargs["json"]
        assert url == "http://localhost:11434/api/chat"
        assert payload["model"] == "llama3"
        assert payload["stream"] is False
        assert payload["messages"][1] == {"role": "assistant", "content": "Documento carregado."}

    @patch('httpx.Client')
    def test_error_status(self, mock_client_class, client):
        """Test that a non-200 answer becomes API_ERROR."""
        mock_http = MagicMock()
        mock_http.post.return_value = Mock(status_code=404, text="model 'llama3' not found")
        mock_client_class.return_value.__enter__.return_value = mock_http

        with pytest.raises(LLMClientError) as exc_info:
            client.get_interpretation(CONTEXT, QUESTION, [])

        error = exc_info.value.error
        assert error.code == "API_ERROR"
        assert "404" in error.message
        assert error.details["status_code"] == 404

    @pytest.mark.parametrize("body", [["unexpected"], "texto", {"message": "texto"}])
    @patch('httpx.Client')
    def test_malformed_body(self, mock_client_class, body, client):
        """Test that a 200 answer with an unexpected JSON shape becomes API_ERROR."""
        mock_http = MagicMock()
        mock_http.post.return_value = Mock(status_code=200, json=Mock(return_value=body))
        mock_client_class.return_value.__enter__.return_value = mock_http

        with pytest.raises(LLMClientError) as exc_info:
            client.get_interpretation(CONTEXT, QUESTION, [])

        assert exc_info.value.error.code == "API_ERROR"
        assert "invalid response" in exc_info.value.error.message

    @patch('httpx.Client')
    def test_timeout(self, mock_client_class, client):
        """Test that timeouts become TIMEOUT_ERROR."""
        mock_http = MagicMock()
        mock_http.post.side_effect = httpx.TimeoutException("Timeout")
        mock_client_class.return_value.__enter__.return_value = mock_http

        with pytest.raises(LLMClientError) as exc_info:
            client.get_interpretation(CONTEXT, QUESTION, [])

        assert exc_info.value.error.code == "TIMEOUT_ERROR"

    @patch('httpx.Client')
    def test_unreachable_server(self, mock_client_class, client):
        """Test that connection failures become NETWORK_ERROR."""
        mock_http = MagicMock()
        mock_http.post.side_effect = httpx.ConnectError("Connection refused")
        mock_client_class.return_value.__enter__.return_value = mock_http

        with pytest.raises(LLMClientError) as exc_info:
            client.get_interpretation(CONTEXT, QUESTION, [])

        assert exc_info.value.error.code == "NETWORK_ERROR"

    @patch('httpx.get')
    def test_connection_success(self, mock_get):
        """Test a reachable Ollama server."""
        mock_get.return_value = Mock(status_code=200, text="Ollama is running")

        status = OllamaClient.test_connection("http://localhost:11434")

        assert status.success is True

    @patch('httpx.get')
    def test_connection_to_other_server(self, mock_get):
        """Test a server that answers but isn't Ollama."""
        mock_get.return_value = Mock(status_code=200, text="<html>nginx</html>")

        status = OllamaClient.test_connection("http://localhost:8080")

        assert status.success is False
        assert "does not look like an Ollama server" in status.message

    @patch('httpx.get')
    def test_connection_unreachable(self, mock_get):
        """Test a URL nobody listens on."""
        mock_get.side_effect = httpx.ConnectError("Connection refused")

        status = OllamaClient.test_connection("http://localhost:9")

        assert status.success is False
        assert "unreachable" in status.message


class TestProviderSelection:
    """Test suite for provider configuration and dispatch."""

    def test_load_provider_config(self):
        """Test that each provider name maps to its config type."""
        assert isinstance(load_provider_config("gemini"), GeminiConfig)
        assert isinstance(load_provider_config("Groq"), GroqConfig)
        assert isinstance(load_provider_config(" ollama "), OllamaConfig)

    def test_load_unknown_provider(self):
        """Test that unknown providers are rejected."""
        with pytest.raises(ValueError, match="Unknown AI provider"):
            load_provider_config("openai")

    @patch('services.llm_client.Groq')
    @patch('services.llm_client.genai')
    def test_create_llm_client_dispatches_on_config(self, mock_genai, mock_groq_class):
        """Test that the config type selects the client."""
        assert isinstance(create_llm_client(GeminiConfig(api_key="k")), GeminiClient)
        assert isinstance(create_llm_client(GroqConfig(api_key="k")), GroqClient)
        assert isinstance(create_llm_client(OllamaConfig(base_url="http://h")), OllamaClient)

    def test_create_llm_client_rejects_other_objects(self):
        """Test that arbitrary objects are not accepted as configs."""
        with pytest.raises(ValueError, match="Unsupported provider configuration"):
            create_llm_client(object())

    def test_config_reports_provider(self):
        """Test the provider tag carried by each config."""
        assert GeminiConfig(api_key="k").provider == "gemini"
        assert GroqConfig(api_key="k").provider == "groq"
        assert OllamaConfig(base_url="http://h").provider == "ollama"
