"""Farmer profile model for Niti-Setu.

The profile is built up incrementally: from the web form, from a voice
transcript, or from chat messages. Every field is optional until an
eligibility analysis is requested, at which point ``name`` and ``state``
are required.

Python code uses snake_case field names; the browser front-end speaks
camelCase (``landHolding``, ``cropType``, ``isMarginal``), so the model
accepts and emits both through an alias generator.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Final

from pydantic import BaseModel, Field, field_validator
from pydantic.alias_generators import to_camel

from nitisetu.models.enums import SocialCategory

# Fields that must be present before an eligibility analysis is attempted.
REQUIRED_FOR_ANALYSIS: Final[tuple[str, ...]] = ("name", "state")

# PM-KUSUM guidelines give preference to small and marginal farmers
# "with landholding below 5 acres".
MARGINAL_LAND_LIMIT_ACRES: Final[float] = 5.0


class FarmerProfile(BaseModel):
    """A single farmer's (possibly partial) profile."""

    model_config = {
        "alias_generator": to_camel,
        "populate_by_name": True,
        "extra": "ignore",
    }

    name: str | None = None
    state: str | None = None
    district: str | None = None
    land_holding: float | None = Field(default=None, ge=0)  # acres
    crop_type: str | None = None
    category: SocialCategory | None = None
    is_marginal: bool | None = None

    @field_validator("category", mode="before")
    @classmethod
    def _normalise_category(cls, value: Any) -> Any:
        if value is None or value == "":
            return None
        parsed = SocialCategory.parse(value)
        if parsed is None:
            msg = f"Unknown category: {value!r}. Must be one of {[c.value for c in SocialCategory]}"
            raise ValueError(msg)
        return parsed

    @classmethod
    def initial(cls) -> FarmerProfile:
        """The profile a fresh (or reset) session starts from."""
        return cls(category=SocialCategory.GENERAL, land_holding=0)

    @property
    def marginal(self) -> bool | None:
        """Explicit ``is_marginal`` if set, otherwise derived from land holding."""
        if self.is_marginal is not None:
            return self.is_marginal
        if self.land_holding is None:
            return None
        return self.land_holding < MARGINAL_LAND_LIMIT_ACRES

    def missing_required_fields(self) -> list[str]:
        return [field for field in REQUIRED_FOR_ANALYSIS if not getattr(self, field)]

    @property
    def is_ready_for_analysis(self) -> bool:
        return not self.missing_required_fields()

    def merged(self, updates: Mapping[str, Any]) -> FarmerProfile:
        """Return a new profile with *updates* applied on top of this one.

        Merging is additive: keys that are absent from *updates*, or whose
        value is ``None``, leave the existing value untouched.
        """
        data = self.model_dump()
        for key, value in updates.items():
            if value is None:
                continue
            data[key] = value
        return FarmerProfile.model_validate(data)

    def to_wire(self) -> dict[str, Any]:
        """camelCase dict with unset fields dropped, as the front-end expects."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
