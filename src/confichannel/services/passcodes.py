"""Passcode authentication for channels and invites."""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy.orm import Session

from confichannel.core.errors import BadInputError, ForbiddenError
from confichannel.core.security import (
    CHANNEL_PASSCODE_LENGTH,
    INVITE_PASSCODE_LENGTH,
    PasscodeHash,
    passcode_matches,
)
from confichannel.models import Channel, ChannelInvite

logger = logging.getLogger(__name__)


class PasscodeAuthenticator:
    """Verify caller supplied secrets against stored salted hashes."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def authenticate_channel(self, channel_id: str, passcode: Any) -> Channel:
        """Check a channel passcode and return the channel it unlocks.

        Args:
            channel_id: Channel being accessed
            passcode: Base64 passcode presented by the caller

        Returns:
            The channel row

        Raises:
            BadInputError: If the passcode is missing, not a string or not 44
                characters long
            ForbiddenError: If the channel does not exist or the passcode does
                not match its stored hash
        """
        if not passcode or not isinstance(passcode, str):
            raise BadInputError("Invalid channel passcode")
        if len(passcode) != CHANNEL_PASSCODE_LENGTH:
            raise BadInputError("Invalid channel passcode")

        channel = self.db.get(Channel, channel_id)
        if channel is None:
            logger.debug("Passcode presented for unknown channel %s", channel_id)
            raise ForbiddenError()
        expected = PasscodeHash(hash=channel.passcode_hash, salt=channel.passcode_hash_salt)
        if not passcode_matches(passcode, expected):
            raise ForbiddenError()
        return channel

    @staticmethod
    def verify_invite(invite: ChannelInvite, passcode: Any) -> None:
        """Check an invite passcode against the invite's stored hash.

        Raises:
            BadInputError: If the passcode is missing, not a string or not 16
                characters long
            ForbiddenError: If the passcode does not match
        """
        if not passcode or not isinstance(passcode, str):
            raise BadInputError("Invalid invite passcode")
        if len(passcode) != INVITE_PASSCODE_LENGTH:
            raise BadInputError("Invalid invite passcode")
        expected = PasscodeHash(hash=invite.passcode_hash, salt=invite.passcode_hash_salt)
        if not passcode_matches(passcode, expected):
            raise ForbiddenError()
