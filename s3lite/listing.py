"""Bucket listing (GET Bucket) response parsing.

http://docs.aws.amazon.com/AmazonS3/latest/API/RESTBucketGET.html
"""

import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from typing import Optional, Union

from s3lite.errors import ListingParseError
from s3lite.models import ListingEntry

# Lower-cased child tags mapped onto ListingEntry fields
_ENTRY_FIELDS = {
    "key": "key",
    "lastmodified": "last_modified",
    "etag": "etag",
    "size": "size",
    "storageclass": "storage_class",
}


@dataclass
class ListingPage:
    """One page of a bucket listing."""

    entries: list[ListingEntry] = field(default_factory=list)
    is_truncated: bool = False
    next_marker: Optional[str] = None


def _local_name(tag: str) -> str:
    """Tag name without its ``{namespace}`` prefix, lower-cased."""
    return tag.rsplit("}", 1)[-1].lower()


def _parse_root(body: Union[bytes, str]) -> ET.Element:
    try:
        return ET.fromstring(body)
    except ET.ParseError as e:
        raise ListingParseError(f"Malformed listing XML: {e}") from e


def _parse_entry(contents: ET.Element) -> ListingEntry:
    values: dict[str, Optional[object]] = {}
    extra: dict[str, str] = {}
    for child in contents:
        name = _local_name(child.tag)
        text = "".join(child.itertext())
        if name in _ENTRY_FIELDS:
            values[_ENTRY_FIELDS[name]] = text
        else:
            extra[name] = text

    if "key" not in values:
        raise ListingParseError("Listing entry without a Key element")
    size = values.get("size")
    if size is not None:
        try:
            values["size"] = int(size)
        except ValueError as e:
            raise ListingParseError(f"Invalid Size in listing: {size!r}") from e
    return ListingEntry(extra=extra, **values)


def parse_listing_page(body: Union[bytes, str]) -> ListingPage:
    """Parse a listing body including its pagination fields.

    Raises:
        ListingParseError: If the body is not well-formed XML.
    """
    root = _parse_root(body)
    page = ListingPage()

    for element in root:
        name = _local_name(element.tag)
        if name == "contents":
            page.entries.append(_parse_entry(element))
        elif name == "istruncated":
            page.is_truncated = (element.text or "").strip().lower() == "true"
        elif name == "nextmarker":
            page.next_marker = element.text

    # Without NextMarker (no delimiter requested) the last key continues the listing
    if page.is_truncated and page.next_marker is None and page.entries:
        page.next_marker = page.entries[-1].key
    return page


def parse_listing(body: Union[bytes, str]) -> list[ListingEntry]:
    """Extract every ``Contents`` entry, in document order.

    Raises:
        ListingParseError: If the body is not well-formed XML. No partial
                          result is returned.
    """
    return parse_listing_page(body).entries
