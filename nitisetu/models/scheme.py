from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field, field_validator
from pydantic.alias_generators import to_camel


class Scheme(BaseModel):
    """A government welfare scheme from the static catalog."""

    model_config = {"frozen": True, "alias_generator": to_camel, "populate_by_name": True}

    id: str
    name: str
    description: str
    category: str
    benefit: str
    guidelines_url: str | None = None
    required_documents: tuple[str, ...] = ()
    steps: tuple[str, ...] = ()


class EligibilityResult(BaseModel):
    """The model's verdict for one scheme.

    ``benefit`` and ``next_steps`` are only meaningful when
    ``is_eligible`` is true. Optional fields the model leaves out, or
    sends as ``null``, default to empty values so the front-end can
    render every card uniformly.
    """

    model_config = {"alias_generator": to_camel, "populate_by_name": True, "extra": "ignore"}

    scheme_id: str
    scheme_name: str
    is_eligible: bool
    benefit: str
    proof_citation: str = ""
    proof_snippet: str = ""
    next_steps: list[str] = Field(default_factory=list)
    required_documents: list[str] = Field(default_factory=list)

    @field_validator("proof_citation", "proof_snippet", mode="before")
    @classmethod
    def _null_text_to_empty(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("next_steps", "required_documents", mode="before")
    @classmethod
    def _null_list_to_empty(cls, value: Any) -> Any:
        return [] if value is None else value
