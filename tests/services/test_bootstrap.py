"""Tests for the startup migrations and the expiry purge."""

from unittest.mock import patch

import pytest
from alembic.script import ScriptDirectory
from sqlalchemy import create_engine, inspect, text
from sqlalchemy.orm import sessionmaker

from confichannel.core.capabilities import (
    BIDIRECTIONAL_JOINER_CAPABILITIES,
    CREATOR_CAPABILITIES,
    Capability,
)
from confichannel.core.settings import settings
from confichannel.db.session import Base
from confichannel.models import AppSetting, Channel, ChannelInvite, DeviceChannelEdge
from confichannel.scripts import migrate
from confichannel.services.bootstrap import (
    alembic_config,
    parse_version,
    purge_expired,
    run_data_migrations,
    run_startup_migrations,
    run_upgrade_head,
)
from confichannel.services.permissions import PermissionStore

NOW = 1_700_000_000


def _channel(channel_id: str, updated: int) -> Channel:
    return Channel(
        id=channel_id,
        channel_type="bidirectional",
        name="A1B 2C3 D4E",
        creation_timestamp=updated,
        update_timestamp=updated,
        passcode_hash="hash",
        passcode_hash_salt="salt",
    )


def _invite(invite_id: str, channel_id: str, expires: int, consumed: int | None = None) -> ChannelInvite:
    return ChannelInvite(
        id=invite_id,
        channel_id=channel_id,
        channel_type="bidirectional",
        creation_timestamp=NOW - 10,
        expires=expires,
        channel_passcode="passcode",
        encrypted_encrypt_key="key",
        origin_public_key={},
        passcode_hash="hash",
        passcode_hash_salt="salt",
        invite_accepts_count=0,
        consumed_timestamp=consumed,
    )


def test_parse_version() -> None:
    assert parse_version("0.5.0") == (0, 5, 0)
    assert parse_version("1.12.3") == (1, 12, 3)
    with pytest.raises(ValueError):
        parse_version("1.2")
    with pytest.raises(ValueError):
        parse_version("1.x.0")


def test_upgrade_across_delete_invite_grants_it(db_session) -> None:
    store = PermissionStore(db_session)
    store.create_edge("device-a", "channel-1", CREATOR_CAPABILITIES & ~Capability.DELETE_INVITE)
    store.create_edge("device-b", "channel-1", BIDIRECTIONAL_JOINER_CAPABILITIES)
    db_session.add(AppSetting(key="version", value="0.4.2"))
    db_session.commit()

    previous = run_data_migrations(db_session, current_version="0.6.0")

    assert previous == (0, 4, 2)
    assert Capability.DELETE_INVITE in store.get_edge("device-a", "channel-1").capabilities
    assert Capability.DELETE_INVITE not in store.get_edge("device-b", "channel-1").capabilities
    assert db_session.get(AppSetting, "version").value == "0.6.0"


def test_rerun_is_idempotent(db_session) -> None:
    store = PermissionStore(db_session)
    legacy = CREATOR_CAPABILITIES & ~Capability.DELETE_INVITE
    store.create_edge("device-a", "channel-1", legacy)
    db_session.add(AppSetting(key="version", value="0.6.0"))
    db_session.commit()

    previous = run_data_migrations(db_session, current_version="0.6.0")

    # Already on the running version, so nothing is backfilled
    assert previous == (0, 6, 0)
    assert store.get_edge("device-a", "channel-1").capabilities == legacy


def test_fresh_database_records_version(db_session) -> None:
    previous = run_data_migrations(db_session, current_version=settings.app_version)

    assert previous == parse_version("0.2.0")
    assert db_session.get(AppSetting, "version").value == settings.app_version


def test_purge_expired(db_session) -> None:
    stale_update = NOW - settings.channel_ttl_seconds - 1
    db_session.add_all(
        [
            _channel("stale", stale_update),
            _channel("fresh", NOW - 10),
            DeviceChannelEdge(
                device_id="device-a",
                channel_id="stale",
                capability_bits=CREATOR_CAPABILITIES.value,
                creation_timestamp=stale_update,
            ),
            _invite("stale-invite", "stale", expires=NOW + 100),
            _invite("expired-invite", "fresh", expires=NOW - 1),
            _invite("consumed-invite", "fresh", expires=NOW + 100, consumed=NOW - 5),
            _invite("live-invite", "fresh", expires=NOW + 100),
        ]
    )
    db_session.commit()

    result = purge_expired(db_session, now=NOW)

    assert result.channels == 1
    assert db_session.get(Channel, "stale") is None
    assert db_session.get(Channel, "fresh") is not None
    assert db_session.get(DeviceChannelEdge, ("device-a", "stale")) is None
    remaining = {invite.id for invite in db_session.query(ChannelInvite).all()}
    assert remaining == {"live-invite"}


def _table_names(url: str) -> set[str]:
    engine = create_engine(url)
    try:
        return set(inspect(engine).get_table_names())
    finally:
        engine.dispose()


def _alembic_revision(url: str) -> str:
    engine = create_engine(url)
    try:
        with engine.connect() as connection:
            return connection.execute(text("SELECT version_num FROM alembic_version")).scalar_one()
    finally:
        engine.dispose()


def test_upgrade_head_is_repeatable(tmp_path) -> None:
    url = f"sqlite:///{tmp_path / 'relay.db'}"

    run_upgrade_head(url)
    run_upgrade_head(url)

    assert {"device", "channel", "device_channel", "channel_invite"} <= _table_names(url)
    assert _alembic_revision(url) == ScriptDirectory.from_config(alembic_config(url)).get_current_head()


def test_upgrade_head_stamps_tables_created_without_alembic(tmp_path) -> None:
    url = f"sqlite:///{tmp_path / 'legacy.db'}"
    engine = create_engine(url)
    Base.metadata.create_all(bind=engine)
    engine.dispose()

    run_upgrade_head(url)
    run_upgrade_head(url)

    assert _alembic_revision(url) == ScriptDirectory.from_config(alembic_config(url)).get_current_head()


def test_startup_then_migrate_script(tmp_path) -> None:
    url = f"sqlite:///{tmp_path / 'startup.db'}"
    engine = create_engine(url)
    session_factory = sessionmaker(bind=engine, autoflush=False)

    with patch.object(settings, "database_url", url), patch(
        "confichannel.services.bootstrap.SessionLocal", session_factory
    ), patch("confichannel.scripts.migrate.SessionLocal", session_factory):
        run_startup_migrations()
        migrate.main()

    with session_factory() as db:
        assert db.get(AppSetting, "version").value == settings.app_version
    engine.dispose()
