"""relay schema

Revision ID: 5c1f0a7d2e43
Revises:
Create Date: 2026-10-19 09:12:40.513204

"""
from __future__ import annotations

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "5c1f0a7d2e43"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create the device, channel, edge, invite, subscription and setting tables."""
    op.create_table(
        "device",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("creation_timestamp", sa.BigInteger(), nullable=False),
        sa.Column("update_timestamp", sa.BigInteger(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_table(
        "channel",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("channel_type", sa.String(length=16), nullable=False),
        sa.Column("name", sa.String(length=16), nullable=False),
        sa.Column("creation_timestamp", sa.BigInteger(), nullable=False),
        sa.Column("update_timestamp", sa.BigInteger(), nullable=False),
        sa.Column("passcode_hash", sa.String(length=64), nullable=False),
        sa.Column("passcode_hash_salt", sa.String(length=64), nullable=False),
        sa.Column("encryption_mode", sa.String(length=32), nullable=True),
        sa.Column("ciphertext", sa.Text(), nullable=True),
        sa.Column("iv", sa.String(length=16), nullable=True),
        sa.Column("salt", sa.String(length=24), nullable=True),
        sa.Column("sender_public_key", sa.JSON(none_as_null=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_channel_update_timestamp", "channel", ["update_timestamp"])
    op.create_table(
        "device_channel",
        sa.Column("device_id", sa.String(length=36), nullable=False),
        sa.Column("channel_id", sa.String(length=36), nullable=False),
        sa.Column("capabilities", sa.Integer(), nullable=False),
        sa.Column("temp_public_key", sa.JSON(none_as_null=True), nullable=True),
        sa.Column("creation_timestamp", sa.BigInteger(), nullable=False),
        sa.PrimaryKeyConstraint("device_id", "channel_id"),
    )
    op.create_index("ix_device_channel_channel_id", "device_channel", ["channel_id"])
    op.create_table(
        "channel_invite",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("channel_id", sa.String(length=36), nullable=False),
        sa.Column("channel_type", sa.String(length=16), nullable=False),
        sa.Column("creation_timestamp", sa.BigInteger(), nullable=False),
        sa.Column("expires", sa.BigInteger(), nullable=False),
        sa.Column("channel_passcode", sa.String(length=64), nullable=False),
        sa.Column("encrypted_encrypt_key", sa.String(length=128), nullable=False),
        sa.Column("origin_public_key", sa.JSON(), nullable=False),
        sa.Column("passcode_hash", sa.String(length=64), nullable=False),
        sa.Column("passcode_hash_salt", sa.String(length=64), nullable=False),
        sa.Column("invite_accepts_count", sa.Integer(), nullable=False),
        sa.Column("consumed_timestamp", sa.BigInteger(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_channel_invite_channel_id", "channel_invite", ["channel_id"])
    op.create_index("ix_channel_invite_expires", "channel_invite", ["expires"])
    op.create_table(
        "subscription",
        sa.Column("id", sa.String(length=64), nullable=False),
        sa.Column("device_id", sa.String(length=36), nullable=False),
        sa.Column("creation_timestamp", sa.BigInteger(), nullable=False),
        sa.Column("update_timestamp", sa.BigInteger(), nullable=False),
        sa.Column("valid_until", sa.BigInteger(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_subscription_device_id", "subscription", ["device_id"])
    op.create_table(
        "app_setting",
        sa.Column("key", sa.String(length=64), nullable=False),
        sa.Column("value", sa.Text(), nullable=False),
        sa.PrimaryKeyConstraint("key"),
    )


def downgrade() -> None:
    """Drop the relay tables."""
    op.drop_table("app_setting")
    op.drop_index("ix_subscription_device_id", table_name="subscription")
    op.drop_table("subscription")
    op.drop_index("ix_channel_invite_expires", table_name="channel_invite")
    op.drop_index("ix_channel_invite_channel_id", table_name="channel_invite")
    op.drop_table("channel_invite")
    op.drop_index("ix_device_channel_channel_id", table_name="device_channel")
    op.drop_table("device_channel")
    op.drop_index("ix_channel_update_timestamp", table_name="channel")
    op.drop_table("channel")
    op.drop_table("device")
