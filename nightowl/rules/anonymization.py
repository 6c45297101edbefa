"""
Redaction policy for XP-ledger metadata kept after anonymization.

Keys listed here carry free text or identifiers and are replaced with
REDACTED. Everything else (quest ids, streak days, bonus amounts) is kept
for aggregate analytics.
"""

from typing import Any, Dict, Optional

REDACTED = "[redacted]"

REDACTED_METADATA_KEYS = frozenset(
    {
        "name",
        "first_name",
        "last_name",
        "firstName",
        "lastName",
        "username",
        "email",
        "phone",
        "text",
        "note",
        "notes",
        "comment",
        "message",
        "transcript",
        "location",
    }
)


def redact_metadata(metadata: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """Return a copy of ``metadata`` with personal fields redacted."""
    if metadata is None:
        return None
    redacted = {}
    for key, value in metadata.items():
        if key in REDACTED_METADATA_KEYS:
            redacted[key] = REDACTED
        elif isinstance(value, dict):
            redacted[key] = redact_metadata(value)
        elif isinstance(value, list):
            redacted[key] = [
                redact_metadata(item) if isinstance(item, dict) else item
                for item in value
            ]
        else:
            redacted[key] = value
    return redacted
