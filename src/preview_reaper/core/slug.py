"""Legacy branch slugs used by the slug-based preview naming scheme."""

import hashlib
import re

MAX_PREVIEW_NAME_LENGTH = 45
HASH_LENGTH = 10

_REFS_HEADS = re.compile(r"^refs/heads/")
_DISALLOWED = re.compile(r"[^-a-z0-9]")


def preview_name_from_branch(branch: str) -> str:
    """
    Derive the legacy preview name for a branch.

    The name is lower-cased with every character outside ``[-a-z0-9]``
    replaced by ``-``. Names longer than MAX_PREVIEW_NAME_LENGTH are
    truncated and suffixed with a short hash of the full name, so two long
    branches sharing a prefix still get distinct names.

    Args:
        branch: Branch name, optionally prefixed with ``refs/heads/``.

    Returns:
        A slug of at most MAX_PREVIEW_NAME_LENGTH characters.
    """
    name = _DISALLOWED.sub("-", _REFS_HEADS.sub("", branch).lower())
    if len(name) <= MAX_PREVIEW_NAME_LENGTH:
        return name

    digest = hashlib.sha256(name.encode("utf-8")).hexdigest()[:HASH_LENGTH]
    keep = MAX_PREVIEW_NAME_LENGTH - HASH_LENGTH - 1
    return f"{name[:keep]}-{digest}"
