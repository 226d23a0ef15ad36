"""Upload payload sources and content analysis.

A payload is anything the client can upload: a file on disk, bytes in
memory, or an already-open binary stream. Each is wrapped in a
``PayloadSource`` exposing its length, content hashes, MIME type, and a
stream that can be rewound to the start, because the body is read twice:
once to hash it, once to send it.
"""

import base64
import hashlib
import io
import mimetypes
import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import BinaryIO, Optional, Union

from s3lite.constants import (
    CannedACL,
    DEFAULT_CONTENT_TYPE,
    StorageClass,
    TEXT_CONTENT_TYPE,
)
from s3lite.models import ObjectMetadata

# Read payloads in 1 MiB chunks when hashing
CHUNK_SIZE = 1024 * 1024

PayloadLike = Union["PayloadSource", str, bytes, bytearray, os.PathLike, BinaryIO]


def _guess_type(name: Optional[str]) -> str:
    if not name:
        return DEFAULT_CONTENT_TYPE
    guessed, _ = mimetypes.guess_type(name)
    return guessed or DEFAULT_CONTENT_TYPE


class PayloadSource(ABC):
    """Restartable source of upload bytes."""

    _digests: Optional[tuple[str, str]] = None

    @abstractmethod
    def open(self) -> BinaryIO:
        """Return the body stream, positioned at the start of the payload."""

    @abstractmethod
    def length(self) -> int:
        """Payload size in bytes."""

    @abstractmethod
    def content_type(self) -> str:
        """MIME type to upload the payload with."""

    def close(self) -> None:
        """Release any handle opened by this source."""
        pass

    def _compute_digests(self) -> tuple[str, str]:
        sha256 = hashlib.sha256()
        md5 = hashlib.md5()
        stream = self.open()
        for chunk in iter(lambda: stream.read(CHUNK_SIZE), b""):
            sha256.update(chunk)
            md5.update(chunk)
        return sha256.hexdigest(), base64.b64encode(md5.digest()).decode("ascii")

    def sha256(self) -> str:
        """Hex SHA-256 of the payload."""
        if self._digests is None:
            self._digests = self._compute_digests()
        return self._digests[0]

    def md5(self) -> str:
        """Base64 MD5 of the payload, as sent in Content-MD5."""
        if self._digests is None:
            self._digests = self._compute_digests()
        return self._digests[1]

    def __enter__(self) -> "PayloadSource":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        self.close()
        return False


class FilePayload(PayloadSource):
    """Payload read from a file on disk."""

    def __init__(self, path: Union[str, os.PathLike]):
        self.path = Path(path)
        if not self.path.is_file():
            raise FileNotFoundError(f"Payload file not found: {self.path}")
        self._handle: Optional[BinaryIO] = None

    def open(self) -> BinaryIO:
        if self._handle is None or self._handle.closed:
            self._handle = open(self.path, "rb")
        self._handle.seek(0)
        return self._handle

    def length(self) -> int:
        return self.path.stat().st_size

    def content_type(self) -> str:
        return _guess_type(self.path.name)

    def close(self) -> None:
        if self._handle is not None:
            self._handle.close()
            self._handle = None


class BytesPayload(PayloadSource):
    """Payload held in memory.

    Text is encoded as UTF-8 and uploaded as ``text/plain`` unless another
    content type is given.
    """

    def __init__(self, data: Union[bytes, bytearray, str], content_type: Optional[str] = None):
        if isinstance(data, str):
            self.data = data.encode("utf-8")
            default_type = TEXT_CONTENT_TYPE
        else:
            self.data = bytes(data)
            default_type = DEFAULT_CONTENT_TYPE
        self._content_type = content_type or default_type
        self._stream = io.BytesIO(self.data)

    def open(self) -> BinaryIO:
        self._stream.seek(0)
        return self._stream

    def length(self) -> int:
        return len(self.data)

    def content_type(self) -> str:
        return self._content_type

    def sha256(self) -> str:
        return hashlib.sha256(self.data).hexdigest()

    def md5(self) -> str:
        return base64.b64encode(hashlib.md5(self.data).digest()).decode("ascii")


class StreamPayload(PayloadSource):
    """Payload read from an open, seekable binary stream.

    The payload starts at the stream's position when wrapped. The stream
    belongs to the caller and is left open by ``close()``.
    """

    def __init__(self, stream: BinaryIO, content_type: Optional[str] = None):
        if not (hasattr(stream, "seekable") and stream.seekable()):
            raise ValueError("Payload stream must support seeking back to its start")
        self.stream = stream
        self._start = stream.tell()
        self._content_type = content_type

    def open(self) -> BinaryIO:
        self.stream.seek(self._start)
        return self.stream

    def length(self) -> int:
        end = self.stream.seek(0, io.SEEK_END)
        self.stream.seek(self._start)
        return end - self._start

    def content_type(self) -> str:
        if self._content_type:
            return self._content_type
        name = getattr(self.stream, "name", None)
        return _guess_type(name if isinstance(name, str) else None)


def as_payload(source: PayloadLike) -> PayloadSource:
    """Wrap anything uploadable in the matching PayloadSource.

    A ``str`` naming an existing file is treated as a path; any other
    ``str`` is uploaded as text.
    """
    if isinstance(source, PayloadSource):
        return source
    if isinstance(source, os.PathLike):
        return FilePayload(source)
    if isinstance(source, str):
        if os.path.isfile(source):
            return FilePayload(source)
        return BytesPayload(source)
    if isinstance(source, (bytes, bytearray)):
        return BytesPayload(source)
    if hasattr(source, "read"):
        return StreamPayload(source)
    raise TypeError(f"Cannot upload payload of type {type(source).__name__}")


def analyze(
    payload: PayloadSource,
    acl: CannedACL = CannedACL.PRIVATE,
    storage_class: StorageClass = StorageClass.STANDARD,
) -> ObjectMetadata:
    """Describe a payload for upload.

    Reads the payload once to hash it; the source is left ready to be
    reopened from the start.
    """
    return ObjectMetadata(
        length=payload.length(),
        sha256=payload.sha256(),
        md5=payload.md5(),
        content_type=payload.content_type(),
        acl=acl,
        storage_class=storage_class,
    )
