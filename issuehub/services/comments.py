"""
issuehub Comment Service

Discussion thread on an issue, oldest first.
"""

from typing import Any, Dict, List, Optional

from ..models.issue import Comment, Identity
from .hierarchy import ISSUES
from .profiles import ProfileDirectory
from .store import RowStore

COMMENTS = "issue_comments"


class CommentService:

    def __init__(self, store: RowStore, profiles: Optional[ProfileDirectory] = None):
        self.store = store
        self.profiles = profiles or ProfileDirectory(store)

    async def list_comments(self, issue_id: str) -> List[Dict[str, Any]]:
        rows = await self.store.select(
            COMMENTS, eq={"issue_id": issue_id}, order_by="created_at", descending=False
        )
        return await self.profiles.attach(rows, {"author_id": "author"})

    async def add_comment(self, actor: Identity, issue_id: str, body: str) -> Dict[str, Any]:
        """
        Add a comment authored by ``actor``. The issue must exist.
        """
        await self.store.get(ISSUES, issue_id)

        comment = Comment(issue_id=issue_id, author_id=actor.actor_id, body=body)
        stored = await self.store.insert(COMMENTS, comment.model_dump(mode="json"))

        [created] = await self.profiles.attach([stored], {"author_id": "author"})
        if created["author"]["email"] == "Unknown" and actor.email:
            created["author"] = {"id": actor.actor_id, "email": actor.email}
        return created
