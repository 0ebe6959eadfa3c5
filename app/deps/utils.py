"""
Utility functions for provider clients
"""

import re
from typing import Optional

# OpenRouter keys look like sk-or-v1-<64 hex>, Google keys like AIza<35 chars>
_KEY_PATTERNS = [
    r'sk-or-[a-zA-Z0-9-]{20,}',
    r'sk-[a-zA-Z0-9]{20,}',
    r'AIza[0-9A-Za-z_-]{30,}',
]


def _mask(value: str) -> str:
    if len(value) <= 8:
        return "****"
    return value[:4] + "*" * (len(value) - 8) + value[-4:]


def sanitize_api_key(text: str, api_key: Optional[str] = None) -> str:
    """
    Mask API keys in text before it is logged or returned to a client

    Args:
        text: Text that may contain an API key
        api_key: Known key to mask; common key shapes are masked regardless

    Returns:
        Text with keys masked, keeping the first and last four characters
    """
    if not text:
        return text

    if api_key and api_key in text:
        text = text.replace(api_key, _mask(api_key))

    for pattern in _KEY_PATTERNS:
        text = re.sub(pattern, lambda m: _mask(m.group()), text)

    return text
