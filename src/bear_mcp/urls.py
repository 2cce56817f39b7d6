"""
Bear x-callback-url encoding and callback query decoding.

Outgoing: bear://x-callback-url/<action>?k=v&... with every key and value
percent-encoded. Flags are written as the literal ``yes`` when set and left
out entirely otherwise; Bear has no "no" spelling worth sending.

Incoming: Bear reports results as query parameters on the x-success URL.
Values are strings on the wire; ``DECODE_RULES`` says which fields carry
JSON arrays or yes/no flags.
"""

import json
from typing import Any, Callable, Iterable, Mapping, Optional, Union
from urllib.parse import parse_qsl, quote

from .errors import CallbackDecodeError

ParamValue = Optional[Union[str, bool]]


def encode_params(params: Mapping[str, ParamValue]) -> str:
    """Percent-encode parameters in insertion order, skipping unset ones"""
    parts = []
    for key, value in params.items():
        if value is None or value is False:
            continue
        if value is True:
            value = "yes"
        parts.append(f"{quote(str(key), safe='')}={quote(str(value), safe='')}")
    return "&".join(parts)


def build_url(action: str, params: Optional[Mapping[str, ParamValue]] = None, scheme: str = "bear") -> str:
    """Build the x-callback-url for a Bear action"""
    base = f"{scheme}://x-callback-url/{action}"
    query = encode_params(params or {})
    return f"{base}?{query}" if query else base


def _json_list(value: str) -> Any:
    try:
        parsed = json.loads(value)
    except ValueError:
        return value
    return parsed if isinstance(parsed, list) else value


def _yes(value: str) -> bool:
    return value == "yes"


def _plain(value: str) -> str:
    return value


DECODE_RULES: dict[str, Callable[[str], Any]] = {
    "notes": _json_list,
    "tags": _json_list,
    "is_trashed": _yes,
    "pin": _yes,
}


def decode_callback(pairs: Iterable[tuple[str, str]]) -> dict[str, Any]:
    """Apply the per-field rules to already split query pairs"""
    result: dict[str, Any] = {}
    for key, value in pairs:
        result[key] = DECODE_RULES.get(key, _plain)(value)
    return result


def decode_query(query: str) -> dict[str, Any]:
    """Decode a raw callback query string into a result mapping"""
    try:
        pairs = parse_qsl(query, keep_blank_values=True, encoding="utf-8", errors="strict")
        return decode_callback(pairs)
    except ValueError as e:
        raise CallbackDecodeError(f"Failed to parse callback data: {e}") from e
