"""Tests for channel and invite passcode authentication."""

import pytest

from confichannel.core.errors import BadInputError, ForbiddenError
from confichannel.core.security import generate_hmac, random_passcode
from confichannel.models import Channel, ChannelInvite
from confichannel.services.passcodes import PasscodeAuthenticator


@pytest.fixture()
def stored_channel(db_session):
    passcode = random_passcode()
    hashed = generate_hmac(passcode)
    channel = Channel(
        id="5b0f3f2c-6c1e-4b0e-9a53-3c1a3a3f0c11",
        channel_type="bidirectional",
        name="A1B 2C3 D4E",
        creation_timestamp=1,
        update_timestamp=1,
        passcode_hash=hashed.hash,
        passcode_hash_salt=hashed.salt,
    )
    db_session.add(channel)
    db_session.commit()
    return channel, passcode


def test_correct_passcode_returns_channel(db_session, stored_channel) -> None:
    channel, passcode = stored_channel

    assert PasscodeAuthenticator(db_session).authenticate_channel(channel.id, passcode) is channel


def test_wrong_passcode_is_forbidden(db_session, stored_channel) -> None:
    channel, _ = stored_channel

    with pytest.raises(ForbiddenError):
        PasscodeAuthenticator(db_session).authenticate_channel(channel.id, random_passcode())


def test_unknown_channel_is_forbidden(db_session) -> None:
    with pytest.raises(ForbiddenError):
        PasscodeAuthenticator(db_session).authenticate_channel("missing", random_passcode())


@pytest.mark.parametrize("passcode", [None, "", "short", "a" * 45, 12345])
def test_malformed_passcode_is_bad_input(db_session, stored_channel, passcode) -> None:
    channel, _ = stored_channel

    with pytest.raises(BadInputError):
        PasscodeAuthenticator(db_session).authenticate_channel(channel.id, passcode)


def test_passcode_of_right_length_but_not_base64_is_bad_input(db_session, stored_channel) -> None:
    channel, _ = stored_channel

    with pytest.raises(BadInputError):
        PasscodeAuthenticator(db_session).authenticate_channel(channel.id, "!" * 44)


def test_verify_invite() -> None:
    passcode = random_passcode(12)
    hashed = generate_hmac(passcode)
    invite = ChannelInvite(passcode_hash=hashed.hash, passcode_hash_salt=hashed.salt)

    PasscodeAuthenticator.verify_invite(invite, passcode)
    with pytest.raises(ForbiddenError):
        PasscodeAuthenticator.verify_invite(invite, random_passcode(12))
    with pytest.raises(BadInputError):
        PasscodeAuthenticator.verify_invite(invite, None)
