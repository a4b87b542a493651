"""Principal resolution from the X-Token request header."""
import logging
from typing import Optional, Protocol

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from files_manager.models.user import AuthToken, User
from files_manager.records import Principal

logger = logging.getLogger(__name__)


class PrincipalResolver(Protocol):
    async def resolve(self, credential: Optional[str]) -> Optional[Principal]: ...


class TokenPrincipalResolver:
    """Looks the token up in auth_tokens and returns its user.

    A missing or unknown token is a normal outcome and yields None.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def resolve(self, credential: Optional[str]) -> Optional[Principal]:
        if not credential:
            return None
        result = await self.db.execute(
            select(User)
            .join(AuthToken, AuthToken.user_id == User.id)
            .where(AuthToken.token == credential)
        )
        user = result.scalar_one_or_none()
        if not user:
            logger.debug("Unknown auth token presented")
            return None
        return Principal(id=str(user.id), email=user.email)

