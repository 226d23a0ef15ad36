"""Canonical request construction for AWS Signature Version 4.

The server rebuilds the canonical request from what it receives and
compares signatures, so every byte here matters: header names are
lower-cased and sorted, values trimmed, query parameters sorted, and the
sections joined by single newlines.

http://docs.aws.amazon.com/AmazonS3/latest/API/sig-v4-header-based-auth.html
"""

from collections.abc import Iterable, Mapping
from typing import Any, Union

from s3lite.errors import SigningInputError
from s3lite.models import CanonicalRequest

_UNRESERVED = frozenset(
    "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789-_.~"
)

QueryParams = Union[Mapping[str, Any], Iterable[tuple[str, Any]]]


def uri_encode(value: str, encode_slash: bool = True) -> str:
    """Percent-encode a string using the SigV4 rules.

    Unreserved characters (A-Z, a-z, 0-9, ``-``, ``_``, ``.``, ``~``) are
    kept; every other byte of the UTF-8 encoding becomes ``%XX`` with
    upper-case hex. Slashes are kept when ``encode_slash`` is False, which
    is how object keys are encoded into paths.
    """
    result = []
    for byte in value.encode("utf-8"):
        char = chr(byte)
        if char in _UNRESERVED or (char == "/" and not encode_slash):
            result.append(char)
        else:
            result.append(f"%{byte:02X}")
    return "".join(result)


def _query_pairs(params: QueryParams) -> list[tuple[str, str]]:
    if isinstance(params, Mapping):
        params = params.items()
    pairs = []
    for name, value in params:
        pairs.append((str(name), "" if value is None else str(value)))
    return pairs


def canonical_query_string(params: QueryParams, encoded: bool = False) -> str:
    """Serialize query parameters in canonical order.

    Args:
        params: Mapping or sequence of ``(name, value)`` pairs. A ``None``
               value serializes as an empty value (``name=``).
        encoded: True when names and values are already percent-encoded,
                as when they were split out of a URL.

    Returns:
        ``name=value`` pairs sorted by name (then value) and joined by
        ``&``; an empty string when there are no parameters.
    """
    pairs = _query_pairs(params)
    if not encoded:
        pairs = [(uri_encode(name), uri_encode(value)) for name, value in pairs]
    return "&".join(f"{name}={value}" for name, value in sorted(pairs))


def split_query(query: str) -> list[tuple[str, str]]:
    """Split a raw (still encoded) query string into name/value pairs."""
    if not query:
        return []
    pairs = []
    for part in query.split("&"):
        if not part:
            continue
        name, _, value = part.partition("=")
        pairs.append((name, value))
    return pairs


def canonical_headers(headers: Mapping[str, Any]) -> tuple[str, str]:
    """Build the canonical header block and the signed-header list.

    Args:
        headers: Headers to sign. Names are case-insensitive.

    Returns:
        Tuple of (block, signed_list). The block holds one
        ``name:value\\n`` line per header, ordered by lower-cased name;
        the signed list joins the same names with ``;``.

    Raises:
        SigningInputError: If two names differ only in case.
    """
    normalized: dict[str, str] = {}
    for name, value in headers.items():
        lname = name.strip().lower()
        if lname in normalized:
            raise SigningInputError(f"Duplicate header: {name}")
        # Leading/trailing whitespace is trimmed, inner whitespace kept as-is
        normalized[lname] = str(value).strip()

    names = sorted(normalized)
    block = "".join(f"{name}:{normalized[name]}\n" for name in names)
    return block, ";".join(names)


def build_canonical_request(
    method: str,
    path: str,
    query: Union[str, QueryParams],
    headers: Mapping[str, Any],
    payload_hash: str,
) -> CanonicalRequest:
    """Assemble the canonical request.

    Args:
        method: HTTP method.
        path: URI path, already percent-encoded. Not re-encoded here.
        query: Canonical query string, or parameters to canonicalize.
        headers: Headers to sign.
        payload_hash: Hex SHA-256 of the body, or ``UNSIGNED-PAYLOAD``.

    Returns:
        The CanonicalRequest; ``str()`` of it is the text to hash.
    """
    if not method:
        raise SigningInputError("HTTP method must not be empty")
    if not payload_hash:
        raise SigningInputError("Payload hash must not be empty")
    if not isinstance(query, str):
        query = canonical_query_string(query)

    block, signed = canonical_headers(headers)
    return CanonicalRequest(
        method=method.upper(),
        path=path or "/",
        query=query,
        headers=block,
        signed_headers=signed,
        payload_hash=payload_hash,
    )
