"""Tests for chat completions endpoint handler."""

import logging
from unittest.mock import AsyncMock, patch

import pytest
from fastapi.testclient import TestClient

from relay.core.upstream import CHAT_FEATURE, IMAGE_CHAT_FEATURE
from relay.main import create_app
from relay.utils.errors import ApiError, AuthenticationError, RateLimitError

AUTH = {"Authorization": "Bearer test-key"}


def chat_body(model: str = "gpt-4o", content="Hello", **extra) -> dict:
    return {"model": model, "messages": [{"role": "user", "content": content}], **extra}


@pytest.fixture
def client(settings, registry):
    """Test client for an app using the static catalog."""
    app = create_app(settings, registry)
    return TestClient(app, raise_server_exceptions=False)


@pytest.fixture
def upstream():
    """Patch the upstream call and image upload used by the chat handler."""
    with patch(
        "relay.api.handlers.chat.send_chat_request",
        new=AsyncMock(return_value="Hi from upstream"),
    ) as send, patch(
        "relay.api.handlers.chat.upload_message_images",
        new=AsyncMock(return_value=[]),
    ) as upload:
        yield send, upload


class TestChatCompletionsSuccess:
    """Tests for successful chat completions."""

    def test_returns_openai_completion(self, client, upstream):
        """Test the upstream text is wrapped in a chat.completion object."""
        response = client.post("/v1/chat/completions", json=chat_body(), headers=AUTH)

        assert response.status_code == 200
        data = response.json()
        assert data["object"] == "chat.completion"
        assert data["model"] == "gpt-4o"
        assert data["id"].startswith("chatcmpl-")
        assert data["choices"][0]["message"] == {
            "role": "assistant",
            "content": "Hi from upstream",
        }
        assert data["choices"][0]["finish_reason"] == "stop"

    def test_forwards_api_key_and_prompt(self, client, upstream):
        """Test the caller's key and the flattened prompt reach upstream."""
        send, _ = upstream

        client.post("/v1/chat/completions", json=chat_body(), headers=AUTH)

        body, api_key = send.await_args.args[:2]
        assert api_key == "test-key"
        assert body["type"] == CHAT_FEATURE
        assert body["model"] == "gpt-4o"
        assert body["promptObject"]["prompt"] == "User: Hello"
        assert body["promptObject"]["webSearch"] is False

    def test_x_api_key_header_accepted(self, client, upstream):
        """Test the Anthropic-style key header also works."""
        send, _ = upstream

        response = client.post(
            "/v1/chat/completions", json=chat_body(), headers={"x-api-key": "alt-key"}
        )

        assert response.status_code == 200
        assert send.await_args.args[1] == "alt-key"

    def test_web_search_suffix(self, client, upstream, settings):
        """Test ':online' strips the suffix and enables web search."""
        send, _ = upstream

        response = client.post(
            "/v1/chat/completions", json=chat_body("gpt-4o:online"), headers=AUTH
        )

        assert response.status_code == 200
        assert response.json()["model"] == "gpt-4o"
        prompt_object = send.await_args.args[0]["promptObject"]
        assert prompt_object["webSearch"] is True
        assert prompt_object["numOfSite"] == settings.web_search.num_of_site
        assert prompt_object["maxWord"] == settings.web_search.max_word

    def test_image_request_uses_image_feature(self, client, upstream):
        """Test uploaded image paths switch the upstream feature type."""
        send, upload = upstream
        upload.return_value = ["assets/cat.png"]
        content = [
            {"type": "text", "text": "What is this?"},
            {"type": "image_url", "image_url": {"url": "https://example.com/cat.png"}},
        ]

        response = client.post(
            "/v1/chat/completions", json=chat_body(content=content), headers=AUTH
        )

        assert response.status_code == 200
        body = send.await_args.args[0]
        assert body["type"] == IMAGE_CHAT_FEATURE
        assert body["promptObject"]["imageList"] == ["assets/cat.png"]
        assert upload.await_args.args[1] == "test-key"

    def test_request_logged_with_request_id(self, client, upstream, caplog):
        """Test the request summary log carries the request ID."""
        with caplog.at_level(logging.INFO, logger="relay.api.handlers.chat"):
            client.post(
                "/v1/chat/completions",
                json=chat_body(),
                headers={**AUTH, "X-Request-ID": "trace-42"},
            )

        records = [r for r in caplog.records if r.name == "relay.api.handlers.chat"]
        assert records[0].request_id == "trace-42"
        assert "model=gpt-4o" in records[0].getMessage()

    def test_extra_fields_ignored(self, client, upstream):
        """Test unknown OpenAI parameters do not fail validation."""
        response = client.post(
            "/v1/chat/completions",
            json=chat_body(top_p=0.5, presence_penalty=0.1),
            headers=AUTH,
        )
        assert response.status_code == 200


class TestChatCompletionsErrors:
    """Tests for error responses in the OpenAI envelope."""

    def test_missing_api_key(self, client, upstream):
        """Test requests without a key are rejected before upstream."""
        send, _ = upstream

        response = client.post("/v1/chat/completions", json=chat_body())

        assert response.status_code == 401
        error = response.json()["error"]
        assert error["type"] == "authentication_error"
        assert error["code"] == "invalid_api_key"
        send.assert_not_awaited()

    def test_unknown_model(self, client, upstream):
        """Test unknown models return 404 model_not_found."""
        response = client.post(
            "/v1/chat/completions", json=chat_body("no-such-model"), headers=AUTH
        )

        assert response.status_code == 404
        error = response.json()["error"]
        assert error["code"] == "model_not_found"
        assert error["param"] == "model"
        assert "no-such-model" in error["message"]

    def test_image_generation_model(self, client, upstream):
        """Test image generation models are rejected with a pointer."""
        response = client.post(
            "/v1/chat/completions", json=chat_body("img-gen-1"), headers=AUTH
        )

        assert response.status_code == 400
        error = response.json()["error"]
        assert error["type"] == "invalid_request_error"
        assert "/v1/images/generations" in error["message"]

    def test_images_on_text_only_model(self, client, upstream):
        """Test image input is rejected for models without vision."""
        send, upload = upstream
        content = [{"type": "image_url", "image_url": {"url": "https://example.com/a.png"}}]

        response = client.post(
            "/v1/chat/completions",
            json=chat_body("text-only-1", content=content),
            headers=AUTH,
        )

        assert response.status_code == 400
        assert response.json()["error"]["message"] == (
            "Model 'text-only-1' does not support image inputs"
        )
        upload.assert_not_awaited()
        send.assert_not_awaited()

    def test_unknown_suffix(self, client, upstream):
        """Test an unsupported model suffix fails validation."""
        response = client.post(
            "/v1/chat/completions", json=chat_body("gpt-4o:turbo"), headers=AUTH
        )

        assert response.status_code == 400
        assert response.json()["error"]["param"] == "model"

    def test_streaming_rejected(self, client, upstream):
        """Test stream=true is refused."""
        response = client.post(
            "/v1/chat/completions", json=chat_body(stream=True), headers=AUTH
        )

        assert response.status_code == 400
        error = response.json()["error"]
        assert error["param"] == "stream"
        assert error["code"] == "unsupported_parameter"

    def test_empty_messages(self, client, upstream):
        """Test an empty messages array is a validation error."""
        response = client.post(
            "/v1/chat/completions", json={"model": "gpt-4o", "messages": []}, headers=AUTH
        )

        assert response.status_code == 400
        error = response.json()["error"]
        assert error["type"] == "invalid_request_error"
        assert error["param"] == "messages"

    def test_invalid_role(self, client, upstream):
        """Test unknown roles fail validation."""
        response = client.post(
            "/v1/chat/completions",
            json={"model": "gpt-4o", "messages": [{"role": "wizard", "content": "x"}]},
            headers=AUTH,
        )
        assert response.status_code == 400

    @pytest.mark.parametrize(
        "error,status,error_type",
        [
            (AuthenticationError("Invalid API key provided to upstream API"), 401, "authentication_error"),
            (RateLimitError(), 429, "rate_limit_error"),
            (ApiError("Upstream API error: 500", upstream_status=500), 502, "api_error"),
        ],
    )
    def test_upstream_failures(self, client, upstream, error, status, error_type):
        """Test upstream failures map to their OpenAI error types."""
        send, _ = upstream
        send.side_effect = error

        response = client.post("/v1/chat/completions", json=chat_body(), headers=AUTH)

        assert response.status_code == status
        assert response.json()["error"]["type"] == error_type

    def test_unexpected_error_not_leaked(self, client, upstream):
        """Test unexpected exceptions return a generic 500."""
        send, _ = upstream
        send.side_effect = RuntimeError("internal secret")

        response = client.post("/v1/chat/completions", json=chat_body(), headers=AUTH)

        assert response.status_code == 500
        assert "internal secret" not in response.text
        assert response.json()["error"]["message"] == "An unexpected error occurred"
