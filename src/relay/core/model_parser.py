"""Model name parsing.

A model name may end with the web search suffix (``:online`` by default),
e.g. ``gpt-4o:online``. Parsing is purely syntactic and never raises.
"""

from pydantic import BaseModel

from relay.config import Settings


class WebSearchConfig(BaseModel):
    """Web search options forwarded with the prompt."""

    web_search: bool = True
    num_of_site: int
    max_word: int


class ParsedModel(BaseModel):
    """Result of parsing a caller-supplied model name."""

    clean_model: str = ""
    web_search_config: WebSearchConfig | None = None
    error: str | None = None


def parse_model(raw_model: str, settings: Settings) -> ParsedModel:
    """Split a raw model name into its canonical id and web search config.

    Args:
        raw_model: Model name as sent by the caller.
        settings: Application settings (web search suffix and limits).

    Returns:
        ParsedModel with either ``clean_model`` set or ``error`` describing
        why the name is malformed.
    """
    if not isinstance(raw_model, str) or not raw_model.strip():
        return ParsedModel(error="Model name is required")

    model = raw_model.strip()
    search = settings.web_search

    if ":" not in model:
        return ParsedModel(clean_model=model)

    base, _, suffix = model.rpartition(":")
    suffix = f":{suffix.lower()}"

    if suffix != search.suffix:
        return ParsedModel(error=f"Unsupported model suffix '{suffix}' in '{model}'")

    if not base or base.endswith(":"):
        return ParsedModel(error=f"Invalid model name '{model}'")

    if not search.enabled:
        return ParsedModel(error=f"Web search is not enabled on this relay ('{model}')")

    return ParsedModel(
        clean_model=base,
        web_search_config=WebSearchConfig(
            num_of_site=search.num_of_site,
            max_word=search.max_word,
        ),
    )
