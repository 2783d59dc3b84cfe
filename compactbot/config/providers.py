"""Provider and model catalogue for compactbot.

Model ids are provider-local; LiteLLM addresses them as ``provider/id``.
"""

PROVIDERS = [
    {
        "id": "cerebras",
        "name": "Cerebras",
        "description": "Fast open-weight inference",
        "env_key": "CEREBRAS_API_KEY",
        "models": [
            {"id": "qwen-3-32b", "name": "Qwen 3 32B"},
            {"id": "llama-3.3-70b", "name": "Llama 3.3 70B"},
        ],
    },
    {
        "id": "anthropic",
        "name": "Anthropic",
        "description": "Claude models (Opus, Sonnet, Haiku)",
        "env_key": "ANTHROPIC_API_KEY",
        "models": [
            {"id": "claude-haiku-4-5", "name": "Claude Haiku 4.5"},
            {"id": "claude-sonnet-4-5", "name": "Claude Sonnet 4.5"},
            {"id": "claude-opus-4-6", "name": "Claude Opus 4.6"},
        ],
    },
    {
        "id": "openai",
        "name": "OpenAI",
        "description": "GPT models (GPT-5.2, GPT-5 Mini)",
        "env_key": "OPENAI_API_KEY",
        "models": [
            {"id": "gpt-5-mini", "name": "GPT-5 Mini"},
            {"id": "gpt-5.2", "name": "GPT-5.2"},
        ],
    },
    {
        "id": "gemini",
        "name": "Gemini",
        "description": "Google models (Gemini 3 Pro, Flash)",
        "env_key": "GEMINI_API_KEY",
        "models": [
            {"id": "gemini-3-flash-preview", "name": "Gemini 3 Flash"},
            {"id": "gemini-3-pro-preview", "name": "Gemini 3 Pro"},
        ],
    },
]


def get_provider(provider_id: str) -> dict | None:
    """Get a provider by ID."""
    for p in PROVIDERS:
        if p["id"] == provider_id:
            return p
    return None

