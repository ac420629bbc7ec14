"""Map addresses to tariff zones and detect remote delivery areas."""

import json
import re
from pathlib import Path
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from cargo_core.config.logging_config import get_logger
from cargo_core.config.settings import get_settings
from cargo_core.models.quote_models import Address

logger = get_logger(__name__)


DEFAULT_ZONE = "INT"


class PostalZoneOverride(BaseModel):
    """A postal-code pattern that moves an address into another zone.

    Attributes:
        pattern: Regular expression searched (case-insensitive) in the postal code
        zone: Zone assigned when the pattern matches
    """
    model_config = ConfigDict(frozen=True)

    pattern: str
    zone: str


class RemoteAreaRule(BaseModel):
    """A postal-code or city pattern that triggers the remote-area surcharge.

    A rule matches when its postal pattern matches the postal code, or its city
    pattern matches the city. Remote rules never change the zone.
    """
    model_config = ConfigDict(frozen=True)

    postal: Optional[str] = None
    city: Optional[str] = None
    label: str = ""


class ZoneTable(BaseModel):
    """Geography used for zone resolution.

    Immutable; pass a custom table to ``ZoneResolver`` to rate against a
    different carrier network.

    Attributes:
        country_aliases: Lower-case, whitespace-free country names to ISO-2 codes
        country_zones: ISO-2 code to zone code
        postal_overrides: Per-country postal patterns that change the zone
        remote_rules: Per-country remote-area rules
        default_zone: Zone for countries missing from ``country_zones``
    """
    model_config = ConfigDict(frozen=True)

    country_aliases: Dict[str, str] = Field(default_factory=dict)
    country_zones: Dict[str, str] = Field(default_factory=dict)
    postal_overrides: Dict[str, List[PostalZoneOverride]] = Field(default_factory=dict)
    remote_rules: Dict[str, List[RemoteAreaRule]] = Field(default_factory=dict)
    default_zone: str = DEFAULT_ZONE

    @classmethod
    def load_from_json(cls, json_path: Path) -> "ZoneTable":
        """Load a zone table from a JSON file with the same keys as the model."""
        json_path = Path(json_path)
        if not json_path.exists():
            raise FileNotFoundError(f"Zone table file not found: {json_path}")

        logger.info(f"Loading zone table from: {json_path}")
        with open(json_path, "r", encoding="utf-8") as f:
            data = json.load(f)
        return cls.model_validate(data)


DEFAULT_ZONE_TABLE = ZoneTable(
    country_aliases={
        "germany": "DE",
        "deutschland": "DE",
        "france": "FR",
        "espana": "ES",
        "spain": "ES",
        "italia": "IT",
        "italy": "IT",
        "belgium": "BE",
        "belgique": "BE",
        "nederland": "NL",
        "netherlands": "NL",
        "austria": "AT",
        "poland": "PL",
        "unitedkingdom": "GB",
        "uk": "GB",
        "ireland": "IE",
        "portugal": "PT",
        "cameroon": "CM",
        "senegal": "SN",
        "nigeria": "NG",
        "kenya": "KE",
        "morocco": "MA",
        "southafrica": "ZA",
        "usa": "US",
        "unitedstates": "US",
        "canada": "CA",
    },
    country_zones={
        # Core EU
        "DE": "EU1",
        "FR": "EU1",
        "IT": "EU1",
        "NL": "EU1",
        "BE": "EU1",
        "AT": "EU1",
        # Wider Europe
        "PL": "EU2",
        "GB": "EU2",
        "IE": "EU2",
        "PT": "EU2",
        "ES": "EU2",
        # Africa
        "CM": "AFR1",
        "SN": "AFR1",
        "NG": "AFR1",
        "KE": "AFR1",
        "MA": "AFR1",
        "ZA": "AFR1",
        # Rest of world
        "US": "INT",
        "CA": "INT",
    },
    postal_overrides={
        "FR": [
            PostalZoneOverride(pattern=r"^97[1-6]\d{2}$", zone="INT"),
            PostalZoneOverride(pattern=r"^98[46-8]\d{2}$", zone="INT"),
        ],
        "PT": [PostalZoneOverride(pattern=r"^9\d{3}(-?\d{3})?$", zone="INT")],
        "ES": [PostalZoneOverride(pattern=r"^(35|38)\d{3}$", zone="INT")],
        "GB": [PostalZoneOverride(pattern=r"^(GY|JE|IM)", zone="INT")],
    },
    remote_rules={
        "DE": [
            RemoteAreaRule(postal=r"^27498$", label="Helgoland"),
            RemoteAreaRule(postal=r"^78266$", label="Büsingen am Hochrhein"),
        ],
        "ES": [
            RemoteAreaRule(postal=r"^(35|38)\d{3}$", label="Islas Canarias"),
            RemoteAreaRule(postal=r"^07\d{3}$", label="Islas Baleares"),
        ],
        "FR": [
            RemoteAreaRule(postal=r"^97[1-6]\d{2}$", label="DROM"),
            RemoteAreaRule(postal=r"^98[46-8]\d{2}$", label="COM/TOM"),
        ],
        "GB": [
            RemoteAreaRule(postal=r"^(GY|JE|IM)", label="Channel Islands / Isle of Man"),
            RemoteAreaRule(postal=r"^(HS|IV|KW|ZE|FK|PA|PH)", label="Highlands & Islands"),
        ],
        "PT": [RemoteAreaRule(postal=r"^9\d{3}(-?\d{3})?$", label="Azores/Madeira")],
        "IT": [RemoteAreaRule(city=r"venice|venezia|capri", label="Lagoon/Island")],
    },
)


def _matches(pattern: Optional[str], value: str) -> bool:
    if not pattern or not value:
        return False
    try:
        return re.search(pattern, value, re.IGNORECASE) is not None
    except re.error as e:
        logger.warning(f"Ignoring invalid zone pattern {pattern!r}: {e}")
        return False


class ZoneResolver:
    """Resolve tariff zones and remote-area flags for addresses.

    Resolution order for the zone: postal override for the country, then the
    country table, then the table's default zone. Remote-area detection is
    independent of the zone, so an overridden address can still be remote.
    Never raises for unknown countries.
    """

    def __init__(self, table: Optional[ZoneTable] = None):
        """Initialize the resolver.

        Args:
            table: Zone geography. Defaults to the JSON table named in the
                settings, or the built-in table when none is configured.
        """
        self.table = table if table is not None else self.load_default_table()

    @staticmethod
    def load_default_table() -> ZoneTable:
        """Return the configured zone table, falling back to the built-in one."""
        project_dir = Path(__file__).parent.parent.parent
        path = get_settings().get_zone_table_path(project_dir)
        if path is not None:
            return ZoneTable.load_from_json(path)
        return DEFAULT_ZONE_TABLE

    def normalize_country(self, country: Optional[str]) -> str:
        """Normalize a country name or code to an upper-case ISO-2 code.

        Inputs are looked up in the alias table lower-cased with whitespace
        removed ("United Kingdom", "uk"); anything else, including plain ISO-2
        codes, is upper-cased as-is.
        """
        value = str(country or "").strip()
        if not value:
            return ""
        key = re.sub(r"\s+", "", value.lower())
        return self.table.country_aliases.get(key, value.upper())

    def resolve_zone(self, address: Address) -> str:
        """Map an address to its tariff zone code."""
        country = self.normalize_country(address.country)
        postal = (address.postal_code or "").strip()

        for override in self.table.postal_overrides.get(country, []):
            if _matches(override.pattern, postal):
                logger.debug(f"Postal override {country} {postal} -> {override.zone}")
                return override.zone

        return self.table.country_zones.get(country, self.table.default_zone)

    def remote_area_label(self, address: Address) -> Optional[str]:
        """Label of the first matching remote-area rule, or None."""
        country = self.normalize_country(address.country)
        postal = (address.postal_code or "").strip()
        city = (address.city or "").strip()

        for rule in self.table.remote_rules.get(country, []):
            if _matches(rule.postal, postal) or _matches(rule.city, city):
                return rule.label
        return None

    def is_remote_area(self, address: Address) -> bool:
        """Whether a delivery to this address carries the remote-area surcharge."""
        return self.remote_area_label(address) is not None

    def zone_meta(self, address: Address) -> Dict[str, object]:
        """Zone and remote flag in one call.

        Returns:
            Dictionary with keys ``zone`` and ``remote``
        """
        return {
            "zone": self.resolve_zone(address),
            "remote": self.is_remote_area(address),
        }
