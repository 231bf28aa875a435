"""Target registry — create, update, delete and list monitored URLs."""
import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from urlmonitor.errors import DuplicateAddressError, TargetNotFoundError
from urlmonitor.models.target import Target

logger = logging.getLogger("urlmonitor.registry")


class TargetRegistry:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def list_targets(self, environment: str | None = None) -> list[Target]:
        query = select(Target).order_by(Target.created_at.desc(), Target.id.desc())
        if environment is not None:
            query = query.where(Target.environment == environment)
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def all_in_sweep_order(self) -> list[Target]:
        result = await self.session.execute(select(Target).order_by(Target.id))
        return list(result.scalars().all())

    async def all_by_name(self) -> list[Target]:
        result = await self.session.execute(select(Target).order_by(Target.name, Target.id))
        return list(result.scalars().all())

    async def get(self, target_id: int) -> Target:
        result = await self.session.execute(select(Target).where(Target.id == target_id))
        target = result.scalar_one_or_none()
        if target is None:
            raise TargetNotFoundError(target_id)
        return target

    async def exists(self, target_id: int) -> bool:
        result = await self.session.execute(select(Target.id).where(Target.id == target_id))
        return result.scalar_one_or_none() is not None

    async def _ensure_unique(self, address: str, exclude_id: int | None = None) -> None:
        query = select(Target.id).where(Target.address == address)
        if exclude_id is not None:
            query = query.where(Target.id != exclude_id)
        result = await self.session.execute(query)
        if result.scalar_one_or_none() is not None:
            raise DuplicateAddressError(address)

    async def _commit(self, address: str) -> None:
        try:
            await self.session.commit()
        except IntegrityError:
            # Lost a race with a concurrent insert of the same address
            await self.session.rollback()
            raise DuplicateAddressError(address)

    async def create(self, address: str, name: str, environment: str = "testing") -> Target:
        await self._ensure_unique(address)
        target = Target(address=address, name=name, environment=environment)
        self.session.add(target)
        await self._commit(address)
        await self.session.refresh(target)
        logger.info(f"Registered target {target.id} '{name}' ({address}) [{environment}]")
        return target

    async def update(
        self, target_id: int, address: str, name: str, environment: str
    ) -> Target:
        target = await self.get(target_id)
        await self._ensure_unique(address, exclude_id=target_id)
        target.address = address
        target.name = name
        target.environment = environment
        await self._commit(address)
        await self.session.refresh(target)
        logger.info(f"Updated target {target_id} '{name}' ({address}) [{environment}]")
        return target

    async def delete(self, target_id: int) -> None:
        """Delete a target; its outcomes go with it. Archive entries are kept."""
        target = await self.get(target_id)
        await self.session.delete(target)
        await self.session.commit()
        logger.info(f"Deleted target {target_id} '{target.name}'")
