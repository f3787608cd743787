"""Structured output schema for menu extraction results."""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class MenuItem(BaseModel):
    """One dish on a menu."""

    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    name: str = Field(min_length=1)
    description: Optional[str] = None
    price: Optional[str] = None
    diets: List[str] = Field(default_factory=list)


class DailyMenu(BaseModel):
    """Menu items served on one day.

    ``day`` is an ISO date (``YYYY-MM-DD``) when the page states one,
    otherwise the weekday name as printed on the page.
    """

    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    day: str = Field(min_length=1)
    items: List[MenuItem] = Field(default_factory=list)


class MenuExtractionOutput(BaseModel):
    """Only allowed output contract for the extraction layer."""

    model_config = ConfigDict(
        extra="forbid",
        frozen=True,
        str_strip_whitespace=True,
    )

    restaurant_name: Optional[str] = None
    lunch_hours: Optional[str] = None
    menus: List[DailyMenu] = Field(default_factory=list)
    notes: List[str] = Field(default_factory=list)
