from datetime import timedelta

import pytest
from sqlalchemy import func, select, update

from crisp_fota.errors import NotFoundError
from crisp_fota.models import Firmware
from crisp_fota.services import FirmwareRecord, FirmwareRegistry


def _record(version: str, **overrides) -> FirmwareRecord:
    values = dict(
        version=version,
        storage_key=f"firmware_v{version}.bin",
        resolved_url=f"blob://firmware_v{version}.bin",
        description=f"build {version}",
        size_bytes=1024,
        checksum="0" * 32,
    )
    values.update(overrides)
    return FirmwareRecord(**values)


@pytest.fixture
def registry(db_session) -> FirmwareRegistry:
    return FirmwareRegistry(db_session)


async def test_latest_active_when_empty(registry):
    with pytest.raises(NotFoundError):
        await registry.get_latest_active()


async def test_get_by_version_missing(registry):
    with pytest.raises(NotFoundError):
        await registry.get_by_version("1.0.0")


async def test_upsert_inserts(registry):
    firmware = await registry.upsert(_record("1.0.0"))

    assert firmware.id is not None
    assert firmware.version == "1.0.0"
    assert firmware.is_active is True
    assert firmware.created_at is not None
    assert (await registry.get_by_version("1.0.0")).storage_key == "firmware_v1.0.0.bin"


async def test_upsert_replaces_all_fields(registry, db_session):
    first = await registry.upsert(_record("1.0.0"))
    first_created = first.created_at
    await db_session.execute(update(Firmware).values(is_active=False))
    await db_session.commit()

    second = await registry.upsert(
        _record("1.0.0", description="hotfix", size_bytes=2048, checksum="f" * 32, resolved_url=None)
    )

    count = (await db_session.execute(select(func.count(Firmware.id)))).scalar()
    assert count == 1
    assert second.id == first.id
    assert second.description == "hotfix"
    assert second.size_bytes == 2048
    assert second.checksum == "f" * 32
    assert second.resolved_url is None
    assert second.is_active is True
    assert second.created_at >= first_created


async def test_latest_active_orders_by_created_at(registry, db_session):
    await registry.upsert(_record("1.0.0"))
    await registry.upsert(_record("2.0.0"))
    await registry.upsert(_record("1.5.0"))

    assert (await registry.get_latest_active()).version == "1.5.0"

    # Backdate 1.5.0 so 2.0.0 is the most recent
    latest = await registry.get_by_version("1.5.0")
    await db_session.execute(
        update(Firmware)
        .where(Firmware.version == "1.5.0")
        .values(created_at=latest.created_at - timedelta(days=1))
    )
    await db_session.commit()

    assert (await registry.get_latest_active()).version == "2.0.0"


async def test_latest_active_skips_inactive(registry, db_session):
    await registry.upsert(_record("1.0.0"))
    await registry.upsert(_record("2.0.0"))
    await db_session.execute(update(Firmware).where(Firmware.version == "2.0.0").values(is_active=False))
    await db_session.commit()

    assert (await registry.get_latest_active()).version == "1.0.0"
    assert (await registry.get_by_version("2.0.0")).version == "2.0.0"
    with pytest.raises(NotFoundError):
        await registry.get_by_version("2.0.0", active_only=True)


async def test_list_all_newest_first(registry):
    for version in ["1.0.0", "1.1.0", "1.2.0"]:
        await registry.upsert(_record(version))

    assert [fw.version for fw in await registry.list_all()] == ["1.2.0", "1.1.0", "1.0.0"]
