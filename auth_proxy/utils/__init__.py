from typing import Iterable, List, Optional, Tuple

SENSITIVE_HEADERS = {"authorization", "proxy-authorization", "cookie"}


def mask_token(text: str, token: Optional[str]) -> str:
    return text.replace(token, f"{token[:4]}****") if token else text


def redact_headers(headers: Iterable[Tuple[str, str]]) -> List[Tuple[str, str]]:
    """Copy of ``headers`` safe for logs: credential values keep only their scheme."""
    redacted = []
    for name, value in headers:
        if name.lower() in SENSITIVE_HEADERS:
            scheme, _, rest = value.partition(" ")
            value = f"{scheme} ****" if rest else "****"
        redacted.append((name, value))
    return redacted
