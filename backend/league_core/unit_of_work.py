import logging

from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)

_DEPTH_KEY = "league_core.uow_depth"


class UnitOfWork:
    """Explicit transaction boundary around a group of writes.

    The outermost unit commits when its block exits cleanly and rolls back
    when it raises. Units opened inside it share the same transaction and
    leave committing to the outermost one, so a service that opens its own
    unit can be called either standalone or from an orchestrating unit.

        async with UnitOfWork(session):
            session.add(...)
    """

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self._outermost = False

    @property
    def depth(self) -> int:
        return self.session.info.get(_DEPTH_KEY, 0)

    async def __aenter__(self) -> "UnitOfWork":
        self._outermost = self.depth == 0
        self.session.info[_DEPTH_KEY] = self.depth + 1
        return self

    async def __aexit__(self, exc_type, exc, tb) -> bool:
        self.session.info[_DEPTH_KEY] = self.depth - 1
        if not self._outermost:
            if exc_type is None:
                await self.session.flush()
            return False

        if exc_type is None:
            try:
                await self.session.commit()
            except Exception:
                await self.session.rollback()
                raise
        else:
            logger.debug("rolling back unit of work after %s", exc_type.__name__)
            await self.session.rollback()
        return False
