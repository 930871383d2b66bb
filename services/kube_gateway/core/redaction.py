"""
Credential scrubbing for log fields and error envelopes.

Transport errors may echo the outbound Authorization header verbatim
(e.g. h11 rejecting an illegal header value), so any text derived from an
exception is passed through `redact` before it leaves the process.
"""

from typing import Iterable, Optional

from pydantic import SecretStr

REDACTED = "[REDACTED]"


def redact(text: Optional[str], secrets: Iterable[Optional[SecretStr]] = ()) -> Optional[str]:
    if not text:
        return text
    for secret in secrets:
        value = secret.get_secret_value() if secret is not None else ""
        if value:
            text = text.replace(value, REDACTED)
    return text


def has_control_characters(value: str) -> bool:
    return any(ord(char) < 0x20 or ord(char) == 0x7F for char in value)
