"""Inline decoding of data: URLs, bypassing every cache."""

import base64
import binascii

from ..errors import FetchError, FetchErrorKind
from .base import Image

DATA_URI_PREFIX = "data:"


def is_data_uri(url: str) -> bool:
    return url.startswith(DATA_URI_PREFIX)


def decode_data_uri(url: str) -> Image:
    """
    Decode a base64 data URL into an Image.

    Any parameters after the media type (e.g. ";base64", ";charset=...")
    are discarded.

    Args:
        url: URL of the form data:<type>[;params],<base64 payload>

    Returns:
        Image with the declared media type and decoded bytes

    Raises:
        FetchError: INVALID_DATA_URL if the URL is malformed
    """
    header, sep, payload = url[len(DATA_URI_PREFIX) :].partition(",")
    content_type = header.split(";", 1)[0].strip()
    if not sep or not content_type:
        raise FetchError(FetchErrorKind.INVALID_DATA_URL)

    try:
        body = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as e:
        raise FetchError(FetchErrorKind.INVALID_DATA_URL) from e

    return Image(content_type=content_type, body=body)
