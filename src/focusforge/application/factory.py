"""
Card Store Factory
Centralizes the logic for selecting the appropriate storage adapter.
"""

import logging

from focusforge.application.config import AppConfig
from focusforge.domain.cards.ports import CardStore
from focusforge.infrastructure.adapters.firestore import FirestoreCardStore
from focusforge.infrastructure.adapters.local_store import LocalCardStore

logger = logging.getLogger(__name__)


def get_card_store(config: AppConfig) -> CardStore:
    """
    Returns the CardStore implementation selected by config.backend.
    """
    if config.backend == "firestore":
        if not config.firestore_project or not config.firestore_user_id:
            raise ValueError(
                "Firestore backend needs 'firestore_project' and 'firestore_user_id' "
                "(set them in config.toml or FOCUSFORGE_FIRESTORE_* env vars)."
            )
        logger.debug(f"Backend: Firestore (project={config.firestore_project})")
        return FirestoreCardStore(
            project=config.firestore_project,
            user_id=config.firestore_user_id,
            app_id=config.firestore_app_id,
            url=config.firestore_url,
            api_key=config.firestore_api_key,
            token=config.firestore_token,
            timeout=config.request_timeout,
            timezone=config.timezone,
        )

    logger.debug(f"Backend: local ({config.data_file})")
    return LocalCardStore(config.data_file, timezone=config.timezone)
