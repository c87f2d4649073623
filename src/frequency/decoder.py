"""Lenient JSON decoding for third-party meta payloads."""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import Any, Union

# A lone unquoted token such as ``common`` or ``2.5k``.
_BARE_WORD = re.compile(r'^[^\s{}\[\]",:]+$')


class PayloadDecodeError(ValueError):
    """Raised when a payload is not valid structured text."""


@dataclass(frozen=True)
class DecoderOptions:
    """Fixed decoder behaviour; instances are immutable and safe to share."""

    strip_whitespace: bool = True
    allow_bare_words: bool = True
    allow_non_finite: bool = False


LENIENT_DECODER = DecoderOptions()
STRICT_DECODER = DecoderOptions(strip_whitespace=False, allow_bare_words=False)


def decode_payload(payload: Union[str, bytes], options: DecoderOptions = LENIENT_DECODER) -> Any:
    """
    Decode ``payload`` into plain python values (dict, list, str, int, float, bool, None).

    Raises
    ------
    PayloadDecodeError
        If the payload cannot be decoded under ``options``.
    """
    if isinstance(payload, bytes):
        try:
            payload = payload.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise PayloadDecodeError(f"Payload is not valid UTF-8: {exc}") from exc
    if not isinstance(payload, str):
        raise PayloadDecodeError(f"Expected textual payload, got {type(payload).__name__}")

    text = payload.strip() if options.strip_whitespace else payload
    try:
        return json.loads(text, parse_constant=_constant_parser(options))
    except json.JSONDecodeError as exc:
        if options.allow_bare_words and _BARE_WORD.match(text):
            return text
        raise PayloadDecodeError(f"Malformed payload: {exc.msg} at position {exc.pos}") from exc


def _constant_parser(options: DecoderOptions):
    def parse(token: str) -> float:
        if not options.allow_non_finite:
            raise PayloadDecodeError(f"Non-finite number {token!r} is not allowed")
        return float(token)

    return parse


__all__ = [
    "DecoderOptions",
    "LENIENT_DECODER",
    "PayloadDecodeError",
    "STRICT_DECODER",
    "decode_payload",
]
