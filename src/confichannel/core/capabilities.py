"""Capability vocabulary granted to a device on a channel."""

from __future__ import annotations

from enum import Flag, auto


class Capability(Flag):
    """Fixed set of operations a device may perform on a channel.

    Stored on an edge as an integer bit set; authorization is superset
    containment (``required in granted``).
    """

    NONE = 0
    DELETE_CHANNEL = auto()
    DELETE_OWN_EDGE = auto()
    PUSH_MESSAGE = auto()
    CREATE_INVITE = auto()
    DELETE_INVITE = auto()
    READ_INVITE_LIST = auto()
    PULL_MESSAGE = auto()
    POP_PUBLIC_KEY = auto()

    @classmethod
    def from_bits(cls, bits: int) -> Capability:
        """Rebuild a capability set from its stored integer form."""
        return cls(bits & cls.all().value)

    @classmethod
    def all(cls) -> Capability:
        """Return every capability in the vocabulary."""
        granted = cls.NONE
        for member in cls:
            granted |= member
        return granted


CREATOR_CAPABILITIES = Capability.all()

BIDIRECTIONAL_JOINER_CAPABILITIES = (
    Capability.DELETE_OWN_EDGE | Capability.PUSH_MESSAGE | Capability.PULL_MESSAGE
)

UNIDIRECTIONAL_JOINER_CAPABILITIES = Capability.DELETE_OWN_EDGE | Capability.PUSH_MESSAGE
