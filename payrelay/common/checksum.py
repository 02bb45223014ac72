"""X-VERIFY checksum construction for gateway requests.

The gateway recomputes the same digest server-side, so every byte here
(JSON separators, base64 alphabet, path literals) has to match its scheme:

    sha256hex(message + salt_key) + "###" + key_index
"""

import base64
import hashlib
import json
from typing import Any


PAY_PATH = "/pg/v1/pay"
STATUS_PATH_TEMPLATE = "/pg/v1/status/{merchant_id}/{transaction_id}"


def compute_checksum(message: str, salt_key: str, key_index: int) -> str:
    digest = hashlib.sha256((message + salt_key).encode("utf-8")).hexdigest()
    return f"{digest}###{key_index}"


def encode_payload(payload: dict[str, Any]) -> str:
    """Serialize a payload as compact JSON and base64 it."""

    # Same bytes as JSON.stringify: no whitespace, non-ASCII left unescaped.
    raw = json.dumps(payload, separators=(",", ":"), ensure_ascii=False)
    return base64.b64encode(raw.encode("utf-8")).decode("ascii")


def pay_checksum(encoded_payload: str, salt_key: str, key_index: int) -> str:
    """Checksum for `POST /pg/v1/pay`, signed over the base64 payload."""

    return compute_checksum(encoded_payload + PAY_PATH, salt_key, key_index)


def status_path(merchant_id: str, transaction_id: str) -> str:
    return STATUS_PATH_TEMPLATE.format(merchant_id=merchant_id, transaction_id=transaction_id)


def status_checksum(merchant_id: str, transaction_id: str, salt_key: str, key_index: int) -> str:
    """Checksum for the status lookup, signed over the request path."""

    return compute_checksum(status_path(merchant_id, transaction_id), salt_key, key_index)
