"""Script to validate the rate card file and print a lane summary."""

import sys
from pathlib import Path

# Add project root to path (scripts/ -> project root)
sys.path.insert(0, str(Path(__file__).parent.parent))

from cargo_core.core.dataset_loader import RateCardLoader
from cargo_core.exceptions import RateCardConfigurationError


def main():
    """Load every rate card, validate it and summarize the lanes."""
    print("=" * 60)
    print("Rate Card Validation")
    print("=" * 60)
    print()

    path = Path(sys.argv[1]) if len(sys.argv) > 1 else RateCardLoader.get_default_path()
    if not path.exists():
        print(f"Error: rate card file not found at {path}")
        sys.exit(1)

    print(f"Rate card file: {path}")
    print()

    try:
        database = RateCardLoader.load_from_json(path)
    except RateCardConfigurationError as e:
        print(f"Validation failed: {e}")
        sys.exit(1)

    print(f"Version: {database.version}")
    print(f"Rate cards: {len(database.rate_cards)}")
    print()

    for origin_zone, destination_zone in database.lanes():
        cards = database.get_rate_cards(origin_zone, destination_zone)
        levels = ", ".join(
            f"{card.service_level.value} ({card.transit_days if card.transit_days is not None else '?'}d)"
            for card in cards
        )
        print(f"  {origin_zone:>4} -> {destination_zone:<4}  {levels}")

    print()
    print("=" * 60)
    print("All rate cards valid")
    print("=" * 60)


if __name__ == "__main__":
    main()
