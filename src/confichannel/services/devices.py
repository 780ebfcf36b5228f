"""Device registration."""

from __future__ import annotations

import logging
import uuid

from sqlalchemy.orm import Session

from confichannel.core.security import create_device_token
from confichannel.db.time import epoch_seconds
from confichannel.models import Device

logger = logging.getLogger(__name__)


class DeviceService:
    """Create devices and issue their tokens."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def register_device(self) -> tuple[Device, str]:
        """Persist a new device and return it together with its token."""
        now = epoch_seconds()
        device = Device(id=str(uuid.uuid4()), creation_timestamp=now, update_timestamp=now)
        self.db.add(device)
        self.db.commit()
        logger.debug("Registered device %s", device.id)
        return device, create_device_token(device.id, now=now)
