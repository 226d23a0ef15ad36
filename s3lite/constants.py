"""Protocol constants and closed enumerations for the S3 REST API.

Region identifiers, canned ACLs, storage classes and header names are
enumerations rather than bare strings so that a typo fails at attribute
lookup instead of producing a request the server rejects.

References:
- Regions: http://docs.aws.amazon.com/general/latest/gr/rande.html#s3_region
- Canned ACLs: http://docs.aws.amazon.com/AmazonS3/latest/dev/ACLOverview.html#CannedACL
- Common headers: http://docs.aws.amazon.com/AmazonS3/latest/API/RESTCommonRequestHeaders.html
"""

import hashlib
from enum import Enum

# SigV4 protocol literals
ALGORITHM = "AWS4-HMAC-SHA256"
SERVICE = "s3"
TERMINATOR = "aws4_request"
KEY_PREFIX = "AWS4"
UNSIGNED_PAYLOAD = "UNSIGNED-PAYLOAD"
EMPTY_SHA256 = hashlib.sha256(b"").hexdigest()

# Timestamp formats
AMZ_DATE_FORMAT = "%Y%m%dT%H%M%SZ"
SCOPE_DATE_FORMAT = "%Y%m%d"

# Presigned URLs may live at most seven days
MAX_PRESIGN_TTL = 7 * 24 * 60 * 60
DEFAULT_PRESIGN_TTL = 3600

DEFAULT_CONTENT_TYPE = "application/octet-stream"
TEXT_CONTENT_TYPE = "text/plain"


class Region(Enum):
    """AWS regions with an S3 endpoint."""

    AP_SOUTHEAST_2 = "ap-southeast-2"
    SA_EAST_1 = "sa-east-1"
    US_WEST_1 = "us-west-1"
    EU_WEST_1 = "eu-west-1"
    AP_NORTHEAST_1 = "ap-northeast-1"
    US_WEST_2 = "us-west-2"
    AP_SOUTHEAST_1 = "ap-southeast-1"
    US_EAST_1 = "us-east-1"

    @classmethod
    def parse(cls, value: "str | Region") -> "Region":
        """Look up a region by identifier (e.g. ``eu-west-1``) or member name."""
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            pass
        try:
            return cls[value.upper()]
        except KeyError:
            raise ValueError(f"Unknown region: {value}") from None


DEFAULT_REGION = Region.US_EAST_1

# Region -> endpoint host. The default region uses the global endpoint.
REGION_HOSTS = {
    region: (
        "s3.amazonaws.com"
        if region is DEFAULT_REGION
        else f"s3-{region.value}.amazonaws.com"
    )
    for region in Region
}


class CannedACL(Enum):
    """Named access-control presets applied to uploaded objects."""

    PRIVATE = "private"
    PUBLIC_READ = "public-read"
    PUBLIC_FULL = "public-read-write"
    AUTH_READ = "authenticated-read"
    OWNER_READ = "bucket-owner-read"
    OWNER_FULL = "bucket-owner-full-control"
    LOG_WRITE = "log-delivery-write"

    @property
    def cache_control(self) -> str:
        """Cache-Control class matching the ACL's visibility."""
        return "public" if self.value.startswith("public") else "private"


class StorageClass(Enum):
    """Storage redundancy classes."""

    STANDARD = "STANDARD"
    REDUCED_REDUNDANCY = "REDUCED_REDUNDANCY"


class ServerSideEncryption(Enum):
    """Server-side encryption algorithms."""

    AES256 = "AES256"


class AmzHeader(Enum):
    """Request header names used by the client.

    Values are in the canonical (lower-case) form used when signing.
    """

    ACL = "x-amz-acl"
    ENCRYPTION = "x-amz-server-side-encryption"
    STORAGE_CLASS = "x-amz-storage-class"
    CONTENT_SHA256 = "x-amz-content-sha256"
    DATE = "x-amz-date"
    AUTHORIZATION = "authorization"
    HOST = "host"
    HTTP_DATE = "date"
    CACHE_CONTROL = "cache-control"
    CONTENT_LENGTH = "content-length"
    CONTENT_MD5 = "content-md5"
    CONTENT_TYPE = "content-type"


class PresignParam(Enum):
    """Query parameter names used by query-string authentication."""

    ALGORITHM = "X-Amz-Algorithm"
    CREDENTIAL = "X-Amz-Credential"
    DATE = "X-Amz-Date"
    EXPIRES = "X-Amz-Expires"
    SIGNED_HEADERS = "X-Amz-SignedHeaders"
    SIGNATURE = "X-Amz-Signature"


def endpoint_host(region: "str | Region") -> str:
    """Return the S3 endpoint host for a region.

    Raises:
        ValueError: If the region is not a known S3 region.
    """
    return REGION_HOSTS[Region.parse(region)]
