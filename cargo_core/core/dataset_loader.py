"""Load rate card data from disk."""

import json
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from cargo_core.config.logging_config import get_logger
from cargo_core.config.messages import ERROR_INVALID_RATE_CARD, ERROR_RATE_CARD_FILE_NOT_FOUND
from cargo_core.config.settings import get_settings
from cargo_core.exceptions import RateCardConfigurationError
from cargo_core.models.schema import RateCardDatabase, Tariff

logger = get_logger(__name__)


class RateCardLoader:
    """Load rate cards from JSON files.

    All methods are static. Every card is validated (tiers contiguous and
    non-overlapping, non-negative fees); a single invalid card aborts loading,
    since it indicates a bug in the upstream rate card data.
    """

    @staticmethod
    def load_from_json(json_path: Path) -> RateCardDatabase:
        """
        Load rate cards from a JSON file.

        The file holds an object with a ``rate_cards`` list and an optional
        ``version``.

        Args:
            json_path: Path to the JSON file

        Returns:
            RateCardDatabase with the loaded cards

        Raises:
            FileNotFoundError: If the file does not exist
            RateCardConfigurationError: If a card fails validation
        """
        json_path = Path(json_path) if isinstance(json_path, str) else json_path
        if not json_path.exists():
            raise FileNotFoundError(ERROR_RATE_CARD_FILE_NOT_FOUND.format(path=json_path))

        logger.info(f"Loading rate cards from: {json_path}")

        with open(json_path, "r", encoding="utf-8") as f:
            data = json.load(f)

        cards = []
        for index, card_dict in enumerate(data.get("rate_cards", [])):
            try:
                cards.append(Tariff(**card_dict))
            except (ValidationError, ValueError) as e:
                logger.error(f"Rejected rate card {index}: {e}")
                logger.debug(f"Rate card data: {card_dict}")
                raise RateCardConfigurationError(
                    ERROR_INVALID_RATE_CARD.format(index=index, reason=e)
                ) from e

        database = RateCardDatabase(
            rate_cards=cards,
            version=str(data.get("version", "1")),
        )

        logger.info(f"Loaded {len(cards)} rate cards across {len(database.lanes())} lanes")
        return database

    @staticmethod
    def get_default_path() -> Path:
        """Get default path to the rate card file.

        Returns:
            Path object pointing to the rate card JSON file from config.
        """
        project_dir = Path(__file__).parent.parent.parent
        settings = get_settings()
        return settings.get_rate_cards_path(project_dir)

    @staticmethod
    def load_default() -> Optional[RateCardDatabase]:
        """
        Load rate cards from the default location.

        Returns:
            RateCardDatabase if the file exists, None otherwise
        """
        default_path = RateCardLoader.get_default_path()
        if default_path.exists():
            return RateCardLoader.load_from_json(default_path)
        logger.warning(f"No rate card file at {default_path}")
        return None
