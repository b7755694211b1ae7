"""Concept/agent reference parsing and public URL building."""
import re

from annotations_rw.utils.exceptions import MalformedReferenceError

UUID_EXTRACT_REGEX = re.compile(
    r".*/([0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12})$"
)


def extract_uuid(reference: str) -> str:
    """
    Extract the trailing UUID from a thing URI.

    Args:
        reference: URI such as ``http://api.ft.com/things/<uuid>``

    Returns:
        The UUID path segment

    Raises:
        MalformedReferenceError: If the reference does not end in ``/<uuid>``
    """
    match = UUID_EXTRACT_REGEX.fullmatch(reference or "")
    if match is None:
        raise MalformedReferenceError(reference)
    return match.group(1)


def thing_url(uuid: str, base_url: str) -> str:
    """Build the public URL of a thing from its uuid."""
    return base_url.rstrip("/") + "/things/" + uuid
