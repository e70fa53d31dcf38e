"""Parent/child tag vocabulary loaded from vocabulary.yaml."""

from typing import Any

from ..config import load_vocabulary


class TagHierarchy:
    """Static parent -> children tag table with reverse lookup."""

    def __init__(self, vocabulary: dict[str, Any] | None = None):
        vocabulary = vocabulary or load_vocabulary()
        self.parents: dict[str, list[str]] = {
            parent.lower(): [child.lower() for child in children]
            for parent, children in vocabulary.get("tag_hierarchy", {}).items()
        }

    def children(self, parent: str) -> list[str]:
        return self.parents.get(parent.lower(), [])

    def parents_of(self, tag: str) -> list[str]:
        """Parents (in table order) that list tag among their children."""
        tag = tag.lower()
        return [parent for parent, children in self.parents.items() if tag in children]

    def matching(self, fragment: str) -> tuple[list[str], list[tuple[str, str]]]:
        """Parents and (child, parent) pairs whose names contain fragment."""
        fragment = fragment.lower()
        parents = [p for p in self.parents if fragment in p]
        children = [
            (child, parent)
            for parent, kids in self.parents.items()
            for child in kids
            if fragment in child
        ]
        return parents, children
