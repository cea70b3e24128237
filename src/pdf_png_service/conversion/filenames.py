"""Object key conventions: PDF detection, output naming and order identifiers.

Uploaded files carry their order linkage in the name, e.g.
``scans/case(O100)(I1).pdf`` belongs to order ``O100``, item ``I1``.
"""

import os
import re

from .interfaces import FilenameIdentifiers

IDENTIFIER_PATTERN = re.compile(r"\(([^)]+)\)\(([^)]+)\)")
_PDF_SUFFIX = re.compile(r"\.pdf\Z", re.IGNORECASE)


def is_pdf(key: str) -> bool:
    return bool(_PDF_SUFFIX.search(key))


def output_key_for(key: str) -> str:
    """Return the PNG key for a PDF key, keeping any directory prefix."""
    return _PDF_SUFFIX.sub(".png", key)


def image_path_for(local_path: str) -> str:
    root, _ = os.path.splitext(local_path)
    return root + ".png"


def local_name_for(key: str, limit: int = 200) -> str:
    """Return the basename used for the local copy of an object, trimmed to fit NAME_MAX."""
    name = key.split("/")[-1]
    if len(name.encode("utf-8")) <= limit:
        return name
    stem, ext = os.path.splitext(name)
    budget = limit - len(ext.encode("utf-8"))
    return stem.encode("utf-8")[:budget].decode("utf-8", "ignore") + ext


def parse_identifiers(key: str) -> FilenameIdentifiers | None:
    match = IDENTIFIER_PATTERN.search(key)
    if not match:
        return None
    order_id, order_item_id = match.group(1), match.group(2)
    if not order_id or not order_item_id:
        return None
    return FilenameIdentifiers(order_id=order_id, order_item_id=order_item_id)
