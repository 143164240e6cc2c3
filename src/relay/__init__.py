"""relay-server: OpenAI- and Anthropic-compatible relay for the 1min.ai API."""

__version__ = "1.0.0"
