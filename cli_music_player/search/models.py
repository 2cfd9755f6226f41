"""
Data models for search queries.
"""

from dataclasses import dataclass
from urllib.parse import quote_plus

from cli_music_player.core.exceptions import SearchError


@dataclass(frozen=True)
class SearchQuery:
    """
    An ordered list of keywords, each free of whitespace.

    Attributes:
        keywords: Words of the query in order, e.g. ("ortopilot", "insomnia").
                  Lists are accepted and stored as a tuple.

    Raises:
        SearchError: If a keyword is empty, not a string or contains whitespace.

    Example:
        query = SearchQuery.from_text("ortopilot  insomnia")
        query.keywords          # ("ortopilot", "insomnia")
        query.to_query_param()  # "ortopilot+insomnia"
    """

    keywords: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        keywords = tuple(self.keywords)
        for keyword in keywords:
            if not isinstance(keyword, str) or not keyword or any(c.isspace() for c in keyword):
                raise SearchError(
                    f"Invalid keyword {keyword!r}: keywords must be non-empty and contain no whitespace",
                    details={"keyword": keyword}
                )
        object.__setattr__(self, "keywords", keywords)

    @classmethod
    def from_text(cls, text: str) -> "SearchQuery":
        """Split free text on whitespace into a query."""
        return cls(tuple(text.split()))

    @property
    def is_empty(self) -> bool:
        return not self.keywords

    def to_query_param(self) -> str:
        """Join the percent-encoded keywords with a literal '+'."""
        return "+".join(quote_plus(keyword) for keyword in self.keywords)

    def __str__(self) -> str:
        return " ".join(self.keywords)
