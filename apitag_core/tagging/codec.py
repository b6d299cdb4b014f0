"""Tag codec: find, compare and render API message tags in documentation."""

from __future__ import annotations

import re
from typing import Optional

from apitag_core.config import DEFAULT_TAG_PATTERN

COMMENT_TERMINATOR = "*/"


class TagCodec:
    """Parses tags like ``ACC-Q-001 Get account`` out of documentation blocks.

    The pattern is configuration: it must contain one capturing group holding
    the tag. A match never spans lines, so the tag is the rest of the line
    where the first ``SEG-SEG-SEG`` sequence starts.
    """

    def __init__(self, pattern: str = DEFAULT_TAG_PATTERN) -> None:
        self.pattern = re.compile(pattern)

    def extract(self, doc_text: Optional[str]) -> Optional[str]:
        """Extract the first tag from a documentation block, or None."""
        if not doc_text:
            return None

        match = self.pattern.search(doc_text)
        if not match:
            return None

        tag = match.group(1) if self.pattern.groups else match.group(0)
        tag = tag.rstrip()
        if tag.endswith(COMMENT_TERMINATOR):
            tag = tag[: -len(COMMENT_TERMINATOR)].rstrip()
        return tag or None

    def has_tag(self, doc_text: Optional[str]) -> bool:
        return self.extract(doc_text) is not None

    @staticmethod
    def main_part(tag: Optional[str]) -> str:
        """Return the family prefix of a tag, e.g. ``RET`` for ``RET-B-TAKINGFILE``."""
        if tag is None:
            return ""
        first_hyphen = tag.find("-")
        if first_hyphen > 0:
            return tag[:first_hyphen]
        return tag

    @classmethod
    def same_tag(cls, existing: Optional[str], new: Optional[str]) -> bool:
        """True when both tags share a main part and match exactly."""
        if existing is None or new is None:
            return False
        return cls.main_part(existing) == cls.main_part(new) and existing == new

    @staticmethod
    def format(tag: str, description: Optional[str] = None) -> str:
        """Render a documentation block holding a single tag."""
        lines = ["/**", f" * {tag}"]
        if description:
            lines.extend(f" * {line}" if line else " *" for line in description.splitlines())
        lines.append(" */")
        return "\n".join(lines)
