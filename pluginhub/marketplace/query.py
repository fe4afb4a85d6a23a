"""Turns what the user typed into queries for each source."""

from dataclasses import dataclass

WILDCARD_TERMS = ("plugin", "plugins")

# Keep plugin repositories, drop themes, snippets and vault dumps at the API level
GITHUB_EXCLUSIONS = (
    "NOT theme NOT css NOT vault NOT configuration "
    "-topic:theme -topic:obsidian-theme"
)

# "Share & Showcase"
FORUM_CATEGORY = "category:9"


@dataclass(frozen=True)
class NormalizedQuery:
    """A user query with the forms each source needs.

    Attributes:
        raw: Query as typed, trimmed
        text: Lowercased query used for substring matching
        singular: ``text`` without a trailing "s" (for words longer than 3)
        is_wildcard: Query means "every plugin"
        is_author: Query started with "@"
        author: Author handle for author searches
    """

    raw: str
    text: str
    singular: str
    is_wildcard: bool = False
    is_author: bool = False
    author: str = ""

    @property
    def is_empty(self) -> bool:
        return not self.text

    def mentions(self, word: str) -> bool:
        """Whether the query contains a keyword."""
        return word.lower() in self.text

    def matches(self, *values: str) -> bool:
        """Substring match of either query form against any value.

        Empty and wildcard queries match everything.
        """
        if self.is_empty or self.is_wildcard:
            return True
        for value in values:
            lowered = (value or "").lower()
            if self.text in lowered or self.singular in lowered:
                return True
        return False

    def github_query(self) -> str:
        if self.is_author:
            return f"user:{self.author}"
        return f"{self.raw} obsidian {GITHUB_EXCLUSIONS}".strip()

    def github_sort(self) -> str:
        return "updated" if self.is_author else "stars"

    def forum_query(self) -> str:
        return f"{self.raw} {FORUM_CATEGORY}" if self.raw else FORUM_CATEGORY


def singularize(word: str) -> str:
    """Naive singular form: strip a trailing "s" from words longer than 3."""
    if len(word) > 3 and word.endswith("s"):
        return word[:-1]
    return word


def normalize(raw: str) -> NormalizedQuery:
    """Normalize a free-text query.

    Args:
        raw: Query as typed; may be empty or start with "@"

    Returns:
        NormalizedQuery (never raises)
    """
    raw = (raw or "").strip()
    text = raw.lower()

    if text.startswith("@"):
        author = raw[1:].strip()
        return NormalizedQuery(
            raw=raw,
            text=text,
            singular=text,
            is_author=True,
            author=author,
        )

    return NormalizedQuery(
        raw=raw,
        text=text,
        singular=singularize(text),
        is_wildcard=text in WILDCARD_TERMS,
    )
