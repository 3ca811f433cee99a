import re


def redact_secrets(text: str) -> str:
    """Redact common secret patterns from logs and error strings."""
    if not isinstance(text, str):
        return text

    redacted = text

    # Query params like apiKey=, api_key=, account_id=, key=, token=, secret=
    redacted = re.sub(
        r"(?i)(api[_-]?key|account[_-]?id|key|token|secret)=([^&\s]+)",
        r"\1=***REDACTED***",
        redacted,
    )

    # Header style secrets: X-API-KEY: <value>, Authorization: Bearer <token>
    redacted = re.sub(r"(?i)(X-API-KEY['\"]?\s*[:=]\s*['\"]?)[A-Za-z0-9._\-=+/]+", r"\1***REDACTED***", redacted)
    redacted = re.sub(r"(?i)Bearer\s+[A-Za-z0-9._\-]+", "Bearer ***REDACTED***", redacted)

    return redacted


def is_configured_key(value: str) -> bool:
    """Return True if an env var-like key is configured (not empty or placeholder)."""
    if not value:
        return False
    s = value.strip()
    if not s:
        return False
    return ('YOUR_' not in s) and ('your_' not in s)
