"""Opaque pagination tokens.

A token is the url-safe base64 encoding of the last evaluated key of a
page, ``{"hk": <ticker>, "sk": <sort key>}``. Callers must treat it as
opaque; the store resumes strictly after that key.
"""

from __future__ import annotations

import base64
import binascii
import json

from crypto_ticker.core.exceptions import InvalidTokenError
from crypto_ticker.core.models import SORT_KEY_PREFIX


def encode_token(ticker: str, last_sort_key: str) -> str:
    raw = json.dumps({"hk": ticker, "sk": last_sort_key}, separators=(",", ":"))
    return base64.urlsafe_b64encode(raw.encode("utf-8")).decode("ascii")


def decode_token(token: str, ticker: str) -> str:
    """Return the sort key a token resumes after.

    Raises
    ------
    InvalidTokenError
        The token is not valid base64 JSON, lacks the key fields, or was
        issued for a different ticker.
    """
    try:
        raw = base64.urlsafe_b64decode(token.encode("ascii"))
        key = json.loads(raw.decode("utf-8"))
    except (ValueError, binascii.Error, UnicodeError, RecursionError) as e:
        raise InvalidTokenError(
            "Malformed continuation token",
            context={"ticker": ticker, "reason": "undecodable"},
        ) from e

    if (
        not isinstance(key, dict)
        or not isinstance(key.get("hk"), str)
        or not isinstance(key.get("sk"), str)
        or not key["sk"].startswith(SORT_KEY_PREFIX)
    ):
        raise InvalidTokenError(
            "Malformed continuation token",
            context={"ticker": ticker, "reason": "bad_shape"},
        )

    if key["hk"] != ticker:
        raise InvalidTokenError(
            "Continuation token was issued for a different ticker",
            context={"ticker": ticker, "reason": "ticker_mismatch"},
        )

    return key["sk"]
