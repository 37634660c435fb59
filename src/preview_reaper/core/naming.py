"""
Mapping from git branches to the preview namespaces that may back them.

Two naming schemes coexist while previews migrate between them, so every
branch maps to a pair of names and both count as expected.
"""

import unicodedata
from collections.abc import Callable, Iterable

from preview_reaper.core.slug import preview_name_from_branch
from preview_reaper.models.namespace import NamespacePair

DEFAULT_PREFIX = "staging-"


class BranchNameMapper:
    """Computes namespace names for branches under both naming schemes."""

    def __init__(
        self,
        legacy_slug: Callable[[str], str] = preview_name_from_branch,
        prefix: str = DEFAULT_PREFIX,
    ):
        self.legacy_slug = legacy_slug
        self.prefix = prefix

    def current_name(self, branch: str) -> str:
        normalized = unicodedata.normalize("NFC", branch)
        return self.prefix + normalized.replace("/", "-")

    def legacy_name(self, branch: str) -> str:
        return self.prefix + self.legacy_slug(branch)

    def namespaces_for(self, branch: str) -> NamespacePair:
        """Both namespace names a preview for ``branch`` may live in."""
        return NamespacePair(
            legacy_name=self.legacy_name(branch),
            current_name=self.current_name(branch),
        )

    def expected_namespaces(self, branches: Iterable[str]) -> frozenset[str]:
        """Union of both names over every branch."""
        expected: set[str] = set()

        for branch in branches:
            expected |= self.namespaces_for(branch).as_set()

        return frozenset(expected)
