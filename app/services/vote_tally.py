from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Sequence, Union

JSONCompatibleDict = Dict[str, Any]
IdeaId = Union[int, str]


@dataclass(frozen=True)
class IdeaSnapshot:
    """One idea and its vote count for the round being closed."""

    idea_id: IdeaId
    content: str
    author_id: Optional[str]
    vote_count: int = 0

    def to_payload(self) -> JSONCompatibleDict:
        return {
            "id": self.idea_id,
            "content": self.content,
            "authorId": self.author_id,
            "voteCount": self.vote_count,
        }


def group_by_vote_count(ideas: Iterable[IdeaSnapshot]) -> Dict[int, List[IdeaSnapshot]]:
    """Group ideas by vote count, keeping input order inside each group."""
    groups: Dict[int, List[IdeaSnapshot]] = {}
    for idea in ideas:
        groups.setdefault(idea.vote_count, []).append(idea)
    return groups


def ranked_tiers(ideas: Sequence[IdeaSnapshot]) -> List[List[IdeaSnapshot]]:
    """Return the vote-count groups ordered from the highest count down."""
    groups = group_by_vote_count(ideas)
    return [groups[count] for count in sorted(groups, reverse=True)]
