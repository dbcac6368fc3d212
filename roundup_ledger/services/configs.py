"""Micro-saving configuration: the per-owner round-up switch"""

import logging
import uuid
from typing import Optional

from sqlalchemy.orm import Session

from roundup_ledger.domain.exceptions import (
    ConfigAlreadyActiveError,
    ConfigNotFoundError,
    ConfigStateError,
    OwnerNotFoundError,
)
from roundup_ledger.domain.models import MicroSavingConfig
from roundup_ledger.infrastructure.database.repositories import MicroSavingConfigRepository, OwnerRepository
from roundup_ledger.services.base import LedgerService, transactional

logger = logging.getLogger(__name__)


class MicroSavingConfigService(LedgerService):
    """At most one configuration per owner is active at any time"""

    def __init__(self, db: Session):
        super().__init__(db)
        self.configs = MicroSavingConfigRepository(db)
        self.owners = OwnerRepository(db)

    @transactional
    def create_default_config(self, owner_id: uuid.UUID) -> MicroSavingConfig:
        """
        Create the owner's first configuration, active at version 1.

        Raises:
            OwnerNotFoundError: Unknown owner
            ConfigAlreadyActiveError: Owner already has an active configuration
        """
        self._lock_owner(owner_id)
        if self.configs.find_active_by_owner(owner_id) is not None:
            raise ConfigAlreadyActiveError(owner_id)

        config = self.configs.save(MicroSavingConfig(owner_id=owner_id))
        logger.info(
            "Micro-saving configuration created",
            extra={"owner_id": str(owner_id), "config_id": str(config.id)},
        )
        return config

    @transactional
    def activate_config(self, config_id: uuid.UUID) -> MicroSavingConfig:
        """
        Switch round-ups back on.

        Raises:
            ConfigNotFoundError: Unknown configuration
            ConfigStateError: Configuration is already active
            ConfigAlreadyActiveError: Another configuration of the owner is active
        """
        config = self._get_for_update(config_id)
        if config.active:
            raise ConfigStateError("Configuration is already active")

        self._lock_owner(config.owner_id)
        current = self.configs.find_active_by_owner(config.owner_id)
        if current is not None and current.id != config.id:
            raise ConfigAlreadyActiveError(config.owner_id)

        config.activate()
        self.configs.save(config)
        logger.info(
            "Micro-saving configuration activated",
            extra={"config_id": str(config.id), "version": config.version},
        )
        return config

    @transactional
    def deactivate_config(self, config_id: uuid.UUID) -> MicroSavingConfig:
        """
        Switch round-ups off; later expenses are recorded at face value.

        Raises:
            ConfigNotFoundError: Unknown configuration
            ConfigStateError: Configuration is already inactive
        """
        config = self._get_for_update(config_id)
        if not config.active:
            raise ConfigStateError("Configuration is already inactive")

        config.deactivate()
        self.configs.save(config)
        logger.info(
            "Micro-saving configuration deactivated",
            extra={"config_id": str(config.id), "version": config.version},
        )
        return config

    def get_config(self, config_id: uuid.UUID) -> MicroSavingConfig:
        config = self.configs.get(config_id)
        if config is None:
            raise ConfigNotFoundError(config_id)
        return config

    def get_active_config(self, owner_id: uuid.UUID) -> Optional[MicroSavingConfig]:
        return self.configs.find_active_by_owner(owner_id)

    def _get_for_update(self, config_id: uuid.UUID) -> MicroSavingConfig:
        config = self.configs.get_for_update(config_id)
        if config is None:
            raise ConfigNotFoundError(config_id)
        return config

    def _lock_owner(self, owner_id: uuid.UUID) -> None:
        if self.owners.get_for_update(owner_id) is None:
            raise OwnerNotFoundError(owner_id)
