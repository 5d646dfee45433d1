"""
Plan data models: the structured itinerary produced by the assistant.

Defines Item, Day and Plan dataclasses. A Plan is received wholesale
from the Itinerary Source and never mutated afterwards; a new Plan fully
replaces the old one.

Usage:
    plan = Plan.from_dict(tool_arguments)
    json_data = plan.to_dict()
"""

from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, Optional, Tuple

VALID_TIMES = ("morning", "noon", "afternoon", "evening", "night")
VALID_CATEGORIES = ("sight", "food", "shopping", "activity")


class PlanValidationError(ValueError):
    """Raised when an itinerary payload is not valid structured data."""


@dataclass(frozen=True)
class Item:
    """Single timed stop within a day."""

    time: str                           # morning|noon|afternoon|evening|night
    name: str
    category: str                       # sight|food|shopping|activity
    note: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Item":
        if not isinstance(data, dict):
            raise PlanValidationError(f"Item must be an object, got {type(data).__name__}")

        time = str(data.get("time", "")).strip().lower()
        if time not in VALID_TIMES:
            raise PlanValidationError(f"Invalid item time: {data.get('time')!r}")

        # The model sometimes uses "type" (older prompt) instead of "category"
        category = str(data.get("category") or data.get("type") or "").strip().lower()
        if category not in VALID_CATEGORIES:
            raise PlanValidationError(f"Invalid item category: {category!r}")

        name = data.get("name")
        if not isinstance(name, str):
            raise PlanValidationError("Item name must be a string")

        note = data.get("note")
        return cls(
            time=time,
            name=name,
            category=category,
            note=str(note) if note else None,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "time": self.time,
            "name": self.name,
            "category": self.category,
            "note": self.note,
        }


@dataclass(frozen=True)
class Day:
    """One day of the plan; item order is the visit order."""

    day_number: int
    title: Optional[str] = None
    items: Tuple[Item, ...] = field(default_factory=tuple)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Day":
        if not isinstance(data, dict):
            raise PlanValidationError(f"Day must be an object, got {type(data).__name__}")

        raw_number = data.get("day_number", data.get("dayNumber", data.get("day")))
        try:
            day_number = int(raw_number)
        except (TypeError, ValueError):
            raise PlanValidationError(f"Invalid day number: {raw_number!r}")
        if day_number < 1:
            raise PlanValidationError(f"Day number must be >= 1, got {day_number}")

        items = data.get("items") or []
        if not isinstance(items, list):
            raise PlanValidationError("Day items must be a list")

        title = data.get("title")
        return cls(
            day_number=day_number,
            title=str(title) if title else None,
            items=tuple(Item.from_dict(i) for i in items),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "day_number": self.day_number,
            "title": self.title,
            "items": [i.to_dict() for i in self.items],
        }


@dataclass(frozen=True)
class Plan:
    """Complete itinerary as emitted by the assistant's itinerary tool."""

    summary: str
    city: str
    days: Tuple[Day, ...] = field(default_factory=tuple)
    start_date: Optional[date] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Plan":
        """Build a Plan from loosely-shaped JSON, raising PlanValidationError."""
        if not isinstance(data, dict):
            raise PlanValidationError(f"Plan must be an object, got {type(data).__name__}")

        days = data.get("days")
        if days is None:
            days = []
        if not isinstance(days, list):
            raise PlanValidationError("Plan days must be a list")

        raw_start = data.get("start_date") or data.get("startDate")
        start_date = None
        if raw_start:
            try:
                start_date = date.fromisoformat(str(raw_start)[:10])
            except ValueError:
                raise PlanValidationError(f"Invalid start date: {raw_start!r}")

        return cls(
            summary=str(data.get("summary") or ""),
            city=str(data.get("city") or ""),
            days=tuple(Day.from_dict(d) for d in days),
            start_date=start_date,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON-serialisable dictionary."""
        return {
            "summary": self.summary,
            "city": self.city,
            "start_date": self.start_date.isoformat() if self.start_date else None,
            "days": [d.to_dict() for d in self.days],
        }
