"""Signing-key derivation for AWS Signature Version 4.

The signing key is derived from the long-term secret by a four-step
HMAC-SHA256 chain over the request date, region, service and terminator.
It is valid for one UTC calendar day and one region only.
"""

import hashlib
import hmac
import threading
from typing import Optional

from s3lite.constants import KEY_PREFIX, SERVICE, TERMINATOR
from s3lite.errors import SigningInputError


def hmac_sha256(key: bytes, msg: str) -> bytes:
    """Raw HMAC-SHA256 of a UTF-8 message."""
    return hmac.new(key, msg.encode("utf-8"), hashlib.sha256).digest()


def _check_date(date: str) -> None:
    if len(date) != 8 or not date.isdigit():
        raise SigningInputError(f"Scope date must be YYYYMMDD, got {date!r}")


def derive_signing_key(
    secret_key: str,
    date: str,
    region: str,
    service: str = SERVICE,
) -> bytes:
    """Derive the day-scoped signing key.

    Args:
        secret_key: Long-term secret access key.
        date: UTC calendar date of the request timestamp, as ``YYYYMMDD``.
        region: Region identifier, e.g. ``eu-west-1``.
        service: Service name; always ``s3`` for this client.

    Returns:
        The 32-byte signing key.

    Raises:
        SigningInputError: If the date is not eight digits or an input is empty.
    """
    _check_date(date)
    if not secret_key:
        raise SigningInputError("Secret key must not be empty")
    if not region:
        raise SigningInputError("Region must not be empty")

    k_date = hmac_sha256(f"{KEY_PREFIX}{secret_key}".encode("utf-8"), date)
    k_region = hmac_sha256(k_date, region)
    k_service = hmac_sha256(k_region, service)
    return hmac_sha256(k_service, TERMINATOR)


class SigningKeyCache:
    """Per-(date, region) cache of derived signing keys.

    Keys are only ever cached under the date they were derived for. When a
    key for a new date is stored, keys for every other date are dropped, so
    yesterday's key can never be returned for today's request.

    Safe for concurrent use from multiple threads.
    """

    def __init__(self, secret_key: str, max_entries: int = 8):
        """Initialize the cache.

        Args:
            secret_key: Secret the cached keys are derived from.
            max_entries: Upper bound on regions kept for the current date.
        """
        if not secret_key:
            raise SigningInputError("Secret key must not be empty")
        self._secret_key = secret_key
        self._max_entries = max_entries
        self._keys: dict[tuple[str, str], bytes] = {}
        self._lock = threading.Lock()

    def get(self, date: str, region: str) -> bytes:
        """Return the signing key for a date and region, deriving it if needed."""
        cache_key = (date, region)
        with self._lock:
            key: Optional[bytes] = self._keys.get(cache_key)
        if key is not None:
            return key

        key = derive_signing_key(self._secret_key, date, region)

        with self._lock:
            stale = [k for k in self._keys if k[0] != date]
            for k in stale:
                del self._keys[k]
            if cache_key not in self._keys and len(self._keys) >= self._max_entries:
                self._keys.pop(next(iter(self._keys)))
            self._keys[cache_key] = key
        return key

    def derives_from(self, secret_key: str) -> bool:
        """Whether this cache derives its keys from ``secret_key``."""
        return hmac.compare_digest(self._secret_key.encode("utf-8"), secret_key.encode("utf-8"))

    def __len__(self) -> int:
        with self._lock:
            return len(self._keys)

    def clear(self) -> None:
        """Drop every cached key."""
        with self._lock:
            self._keys.clear()
