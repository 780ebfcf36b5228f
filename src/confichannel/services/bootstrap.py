"""Idempotent startup work: schema migrations, data migrations and expiry purge.

Run once before serving traffic, either from the application startup hook or
from the ``confichannel-migrate`` script. Every step is safe to repeat.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from alembic import command
from alembic.config import Config
from sqlalchemy import create_engine, delete, inspect, or_, select
from sqlalchemy.orm import Session

from confichannel.core.capabilities import Capability
from confichannel.core.settings import settings
from confichannel.db.session import SessionLocal
from confichannel.db.time import epoch_seconds
from confichannel.models import AppSetting, Channel, ChannelInvite, DeviceChannelEdge
from confichannel.services.permissions import PermissionStore

logger = logging.getLogger(__name__)

VERSION_SETTING = "version"
# Version assumed for databases that predate version bookkeeping
UNVERSIONED = "0.2.0"
DELETE_INVITE_INTRODUCED = (0, 5, 0)
MIGRATIONS_DIR = Path(__file__).resolve().parents[3] / "migrations"

Version = tuple[int, int, int]


def parse_version(value: str) -> Version:
    """Parse ``major.minor.patch`` into a comparable tuple.

    Raises:
        ValueError: If the string is not a three part numeric version
    """
    parts = value.split(".")
    if len(parts) != 3:
        raise ValueError(f"Could not parse semantic version {value!r}")
    major, minor, patch = (int(part) for part in parts)
    return major, minor, patch


@dataclass(frozen=True)
class PurgeResult:
    channels: int
    invites: int


def record_version(db: Session, current_version: str) -> Version:
    """Store the running version and return the one recorded before it."""
    stored = db.get(AppSetting, VERSION_SETTING)
    previous = parse_version(stored.value if stored is not None else UNVERSIONED)
    current = parse_version(current_version)
    if previous != current:
        logger.info(
            "Detected update from %s to %s",
            ".".join(map(str, previous)),
            current_version,
        )
    else:
        logger.info("No update detected")

    if stored is None:
        db.add(AppSetting(key=VERSION_SETTING, value=current_version))
    else:
        stored.value = current_version
    return previous


def run_data_migrations(db: Session, current_version: str | None = None) -> Version:
    """Apply the data migrations needed to move from the recorded version.

    Returns:
        The previously recorded version
    """
    current_version = current_version or settings.app_version
    previous = record_version(db, current_version)
    current = parse_version(current_version)

    if previous < DELETE_INVITE_INTRODUCED <= current:
        updated = PermissionStore(db).grant(
            Capability.DELETE_INVITE,
            holding=Capability.CREATE_INVITE,
        )
        logger.info("Granted delete-invite to %d existing edges", updated)

    db.commit()
    return previous


def purge_expired(db: Session, now: int | None = None) -> PurgeResult:
    """Delete channels past their time to live and unusable invites."""
    current = epoch_seconds() if now is None else now
    cutoff = current - settings.channel_ttl_seconds

    expired_ids = list(
        db.execute(select(Channel.id).where(Channel.update_timestamp < cutoff)).scalars()
    )
    if expired_ids:
        db.execute(delete(ChannelInvite).where(ChannelInvite.channel_id.in_(expired_ids)))
        db.execute(delete(DeviceChannelEdge).where(DeviceChannelEdge.channel_id.in_(expired_ids)))
        db.execute(delete(Channel).where(Channel.id.in_(expired_ids)))

    invites = db.execute(
        delete(ChannelInvite).where(
            or_(
                ChannelInvite.expires <= current,
                ChannelInvite.consumed_timestamp.is_not(None),
            )
        )
    )
    db.commit()
    result = PurgeResult(channels=len(expired_ids), invites=invites.rowcount or 0)
    logger.info("Purged %d expired channels and %d invites", result.channels, result.invites)
    return result


def alembic_config(database_url: str | None = None) -> Config:
    cfg = Config()
    cfg.set_main_option("script_location", str(MIGRATIONS_DIR))
    # ConfigParser treats % as interpolation
    url = database_url or settings.database_url
    cfg.set_main_option("sqlalchemy.url", url.replace("%", "%%"))
    return cfg


def run_upgrade_head(database_url: str | None = None) -> None:
    """Bring the schema to the latest Alembic revision.

    A database whose tables were created without Alembic is stamped at the
    head revision instead of being re-created.
    """
    cfg = alembic_config(database_url)
    engine = create_engine(cfg.get_main_option("sqlalchemy.url"))
    try:
        tables = set(inspect(engine).get_table_names())
    finally:
        engine.dispose()

    if "alembic_version" not in tables and "channel" in tables:
        logger.info("Stamping unversioned schema at head")
        command.stamp(cfg, "head")
        return
    command.upgrade(cfg, "head")


def run_startup_migrations() -> None:
    """Migrate the schema and data, then purge expired records."""
    run_upgrade_head()
    with SessionLocal() as db:
        run_data_migrations(db)
        purge_expired(db)
