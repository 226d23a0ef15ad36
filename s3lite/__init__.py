"""
s3lite - minimal S3-compatible object storage client.

Signs requests with AWS Signature Version 4 (header-based and presigned
URLs) and performs put/get/delete/list against a single bucket.
"""

__version__ = "1.0.0"

from s3lite.client import ObjectStoreClient
from s3lite.constants import CannedACL, Region, StorageClass
from s3lite.envelope import ContentLengthPolicy
from s3lite.errors import (
    ListingParseError,
    ProtocolError,
    S3LiteError,
    SigningInputError,
)
from s3lite.models import Credentials, ListingEntry, OperationResult
from s3lite.signer import PresignContentLength, Signer

__all__ = [
    "CannedACL",
    "ContentLengthPolicy",
    "Credentials",
    "ListingEntry",
    "ListingParseError",
    "ObjectStoreClient",
    "OperationResult",
    "PresignContentLength",
    "ProtocolError",
    "Region",
    "S3LiteError",
    "Signer",
    "SigningInputError",
    "StorageClass",
    "__version__",
]
