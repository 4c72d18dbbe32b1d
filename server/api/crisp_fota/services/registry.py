from dataclasses import asdict, dataclass

from sqlalchemy import select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..errors import NotFoundError, RegistryError
from ..models import Firmware
from ..models.firmware import utcnow


@dataclass(frozen=True)
class FirmwareRecord:
    """Metadata for one uploaded firmware binary, as written by an upload."""

    version: str
    storage_key: str
    resolved_url: str | None
    description: str
    size_bytes: int
    checksum: str


class FirmwareRegistry:
    """Durable record of known firmware versions, keyed by version string."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_latest_active(self) -> Firmware:
        try:
            result = await self.db.execute(
                select(Firmware)
                .where(Firmware.is_active.is_(True))
                .order_by(Firmware.created_at.desc(), Firmware.id.desc())
                .limit(1)
            )
            firmware = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            raise RegistryError(f"Failed to query active firmware: {e}") from e

        if not firmware:
            raise NotFoundError("No active firmware")
        return firmware

    async def get_by_version(self, version: str, active_only: bool = False) -> Firmware:
        query = select(Firmware).where(Firmware.version == version)
        if active_only:
            query = query.where(Firmware.is_active.is_(True))
        try:
            result = await self.db.execute(query)
            firmware = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            raise RegistryError(f"Failed to query firmware {version}: {e}") from e

        if not firmware:
            raise NotFoundError("Firmware not found")
        return firmware

    async def list_all(self) -> list[Firmware]:
        try:
            result = await self.db.execute(
                select(Firmware).order_by(Firmware.created_at.desc(), Firmware.id.desc())
            )
        except SQLAlchemyError as e:
            raise RegistryError(f"Failed to list firmware: {e}") from e
        return list(result.scalars().all())

    async def upsert(self, record: FirmwareRecord) -> Firmware:
        """Insert, or replace every field of the row with the same version.

        The row is (re)marked active and its ``created_at`` refreshed, making
        it the latest active firmware.
        """
        values = asdict(record)
        values["is_active"] = True
        values["created_at"] = utcnow()

        try:
            dialect = self.db.get_bind().dialect.name
            if dialect in ("postgresql", "sqlite"):
                insert = postgresql.insert if dialect == "postgresql" else sqlite.insert
                stmt = insert(Firmware).values(**values)
                stmt = stmt.on_conflict_do_update(
                    index_elements=[Firmware.version],
                    set_={k: stmt.excluded[k] for k in values if k != "version"},
                )
                await self.db.execute(stmt)
            else:
                result = await self.db.execute(select(Firmware).where(Firmware.version == record.version))
                firmware = result.scalar_one_or_none()
                if firmware is None:
                    self.db.add(Firmware(**values))
                else:
                    for key, value in values.items():
                        setattr(firmware, key, value)
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise RegistryError(f"Failed to save firmware {record.version}: {e}") from e

        # Bypass the identity map so a replaced row is re-read
        result = await self.db.execute(
            select(Firmware)
            .where(Firmware.version == record.version)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one()
