"""Tests for response data models."""

from datetime import datetime, timezone

from relay.models.response import (
    AnthropicMessageResponse,
    ChatCompletionResponse,
    ComponentHealth,
    HealthResponse,
    HealthStatus,
    ModelInfo,
)


class TestChatCompletionResponse:
    """Tests for ChatCompletionResponse."""

    def test_from_text(self):
        """Test building a completion from upstream text."""
        response = ChatCompletionResponse.from_text("gpt-4o", "Hello")
        data = response.model_dump()

        assert data["object"] == "chat.completion"
        assert data["model"] == "gpt-4o"
        assert data["choices"] == [
            {
                "index": 0,
                "message": {"role": "assistant", "content": "Hello"},
                "finish_reason": "stop",
            }
        ]
        assert data["usage"] == {"prompt_tokens": 0, "completion_tokens": 0, "total_tokens": 0}

    def test_unique_ids(self):
        """Test every response gets its own id."""
        first = ChatCompletionResponse.from_text("m", "a")
        second = ChatCompletionResponse.from_text("m", "a")
        assert first.id != second.id


class TestAnthropicMessageResponse:
    """Tests for AnthropicMessageResponse."""

    def test_from_text(self):
        """Test building a message from upstream text."""
        data = AnthropicMessageResponse.from_text("gpt-4o", "Hello").model_dump()

        assert data["type"] == "message"
        assert data["role"] == "assistant"
        assert data["content"] == [{"type": "text", "text": "Hello"}]
        assert data["stop_reason"] == "end_turn"
        assert data["stop_sequence"] is None
        assert data["usage"] == {"input_tokens": 0, "output_tokens": 0}


class TestModelInfo:
    """Tests for ModelInfo."""

    def test_defaults(self):
        """Test default owner and flags."""
        info = ModelInfo(id="gpt-4o")
        assert info.object == "model"
        assert info.owned_by == "1min.ai"
        assert info.vision is False


class TestHealthResponse:
    """Tests for health models."""

    def test_enum_values_serialized(self):
        """Test statuses serialize as plain strings."""
        response = HealthResponse(
            status=HealthStatus.DEGRADED,
            version="1.0.0",
            timestamp=datetime.now(timezone.utc),
            checks={"catalog": ComponentHealth(status=HealthStatus.HEALTHY, latency_ms=3)},
        )
        data = response.model_dump()

        assert data["status"] == "degraded"
        assert data["checks"]["catalog"]["status"] == "healthy"
        assert data["checks"]["catalog"]["latency_ms"] == 3
