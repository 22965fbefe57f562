"""
Klaviyo Event Model

Normalises JSON:API event resources into flat, read-only records. Event
properties arrive as an arbitrary string-keyed bag, so every read goes
through EventProperties with an explicit fallback.
"""

import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional

UNKNOWN = "Unknown"


def parse_event_datetime(value: str) -> datetime:
    """Parse an API timestamp, treating offset-less values as UTC."""
    text = str(value)
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _first_string(value: Any) -> str:
    if isinstance(value, list) and value:
        return str(value[0])
    return UNKNOWN


@dataclass(frozen=True)
class EventProperties:
    """
    Typed accessor over an event's property bag.

    Keys follow Klaviyo's Placed Order payload ($value, Discounted,
    ProductCategories, ProductNames, ItemCount).
    """
    raw: Mapping[str, Any] = field(default_factory=dict)

    @property
    def value(self) -> float:
        """Order value; absent, non-numeric or non-finite values count as 0."""
        value = self.raw.get("$value")
        if value is None or isinstance(value, bool):
            return 0.0
        try:
            parsed = float(value)
        except (TypeError, ValueError):
            return 0.0
        return parsed if math.isfinite(parsed) else 0.0

    @property
    def discounted(self) -> bool:
        return bool(self.raw.get("Discounted"))

    @property
    def product_categories(self) -> Optional[List[Any]]:
        categories = self.raw.get("ProductCategories")
        return categories if isinstance(categories, list) else None

    @property
    def product_names(self) -> Optional[List[Any]]:
        names = self.raw.get("ProductNames")
        return names if isinstance(names, list) else None

    @property
    def category(self) -> str:
        """First product category, or "Unknown"."""
        return _first_string(self.product_categories)

    @property
    def variant(self) -> str:
        """First product name, or "Unknown"."""
        return _first_string(self.product_names)

    @property
    def item_count(self) -> int:
        """
        Explicit ItemCount when set and non-zero, else the number of product
        names, else 1. An empty ProductNames list yields 0.
        """
        explicit = self.raw.get("ItemCount")
        if explicit:
            try:
                return int(float(explicit))
            except (TypeError, ValueError, OverflowError):
                pass
        names = self.product_names
        if names is not None:
            return len(names)
        return 1


@dataclass(frozen=True)
class Event:
    """A single metric event, flattened from the JSON:API resource."""
    id: str
    profile_id: str
    metric_id: Optional[str]
    raw_datetime: str
    timestamp: datetime
    properties: EventProperties

    @classmethod
    def from_api(cls, resource: Dict[str, Any]) -> "Event":
        """
        Build an Event from an API resource.

        Raises:
            ValueError: if the id, profile relationship or datetime is missing
                or unparseable
        """
        try:
            attributes = resource.get("attributes") or {}
            relationships = resource.get("relationships") or {}
            profile = (relationships.get("profile") or {}).get("data") or {}
            metric = (relationships.get("metric") or {}).get("data") or {}
            raw_datetime = attributes["datetime"]
            profile_id = profile["id"]
            event_id = resource["id"]
        except (AttributeError, KeyError, TypeError) as e:
            raise ValueError(f"Malformed event resource: missing {e}") from e

        return cls(
            id=str(event_id),
            profile_id=str(profile_id),
            metric_id=metric.get("id"),
            raw_datetime=raw_datetime,
            timestamp=parse_event_datetime(raw_datetime),
            properties=EventProperties(attributes.get("event_properties") or {}),
        )
