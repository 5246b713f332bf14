"""
WifiAtlas Backend — Directory Import Tests
============================================

What we test:
    ✅ Named networks are persisted, unnamed ones discarded
    ✅ Re-importing refreshes last_seen without duplicating
    ✅ User-entered metadata survives an import
    ✅ Directory failures propagate as DependencyError
"""

from datetime import datetime, timezone

import pytest
from sqlalchemy import func, select

from wifiatlas.exceptions import DependencyError, ValidationError
from wifiatlas.models.access_point import AccessPoint
from wifiatlas.schemas.directory import DirectoryNetwork
from wifiatlas.services.import_service import import_service


def _network(ssid="Library", seen=datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)):
    return DirectoryNetwork(
        ssid=ssid,
        bssid="00:11:22:33:44:55",
        security_type="WPA2",
        latitude=51.5,
        longitude=-0.12,
        last_seen=seen,
    )


async def _stored(db_session, ssid="Library"):
    result = await db_session.execute(
        select(AccessPoint)
        .where(AccessPoint.ssid == ssid)
        .execution_options(populate_existing=True)
    )
    return result.scalars().all()


class TestImport:

    @pytest.mark.asyncio
    async def test_skips_unnamed_networks(self, db_session, directory):
        directory.networks = [_network(), _network(ssid="  ")]

        response = await import_service.import_from_external_directory(
            db_session, directory, 51.5, -0.12, 1.0, ssid_filter="Lib"
        )

        assert response.count == 1
        assert [n.ssid for n in response.networks] == ["Library"]
        assert directory.calls == [(51.5, -0.12, 1.0, "Lib")]
        total = await db_session.scalar(select(func.count(AccessPoint.id)))
        assert total == 1

    @pytest.mark.asyncio
    async def test_reimport_refreshes_last_seen(self, db_session, directory):
        directory.networks = [_network()]
        await import_service.import_from_external_directory(db_session, directory, 51.5, -0.12, 1.0)

        later = datetime(2024, 6, 1, 8, 30, tzinfo=timezone.utc)
        directory.networks = [_network(seen=later)]
        await import_service.import_from_external_directory(db_session, directory, 51.5, -0.12, 1.0)

        rows = await _stored(db_session)
        assert len(rows) == 1
        assert rows[0].last_seen.replace(tzinfo=None) == later.replace(tzinfo=None)

    @pytest.mark.asyncio
    async def test_user_metadata_preserved(self, db_session, directory):
        db_session.add(
            AccessPoint(
                ssid="Library",
                bssid="00:11:22:33:44:55",
                security_type="WPA3",
                latitude=51.5,
                longitude=-0.12,
                venue_name="Central Library",
            )
        )
        await db_session.flush()

        directory.networks = [_network()]
        await import_service.import_from_external_directory(db_session, directory, 51.5, -0.12, 1.0)

        (row,) = await _stored(db_session)
        assert row.venue_name == "Central Library"
        assert row.security_type == "WPA3"
        assert row.last_seen is not None

    @pytest.mark.asyncio
    async def test_directory_failure_propagates(self, db_session, directory):
        directory.error = DependencyError()
        with pytest.raises(DependencyError):
            await import_service.import_from_external_directory(
                db_session, directory, 51.5, -0.12, 1.0
            )

    @pytest.mark.asyncio
    @pytest.mark.parametrize("radius", [0.001, 10.5])
    async def test_radius_bounds(self, db_session, directory, radius):
        with pytest.raises(ValidationError):
            await import_service.import_from_external_directory(
                db_session, directory, 51.5, -0.12, radius
            )
        assert directory.calls == []

    @pytest.mark.asyncio
    async def test_site_statistics_passthrough(self, directory):
        stats = await import_service.site_statistics(directory)
        assert stats.statistics == {"success": True, "statistics": {"netwloc": 123}}
