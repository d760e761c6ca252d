"""
Schemas for payloads to/from TheCatAPI, checked at the proxy boundary.

Includes:
- Category: /categories entries
- Breed: breed attributes attached to an image (read-only, verbatim from upstream)
- CatImage: /images/search entries and /images/{id}
- Page: one page of CatImage results

Unknown upstream fields are kept (extra="allow") so the proxy can hand the
payload back unchanged after validating it.
"""

from __future__ import annotations
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

# 1..5 trait score, absent when upstream omits it
Score = Optional[int]

# GET /categories
class Category(BaseModel):
    model_config = ConfigDict(extra="allow", frozen=True)

    id: int
    name: str

class Breed(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: Optional[str] = None
    name: str
    description: Optional[str] = None
    origin: Optional[str] = None
    temperament: Optional[str] = None
    life_span: Optional[str] = None
    wikipedia_url: Optional[str] = None

    adaptability: Score = Field(None, ge=1, le=5)
    affection_level: Score = Field(None, ge=1, le=5)
    child_friendly: Score = Field(None, ge=1, le=5)
    dog_friendly: Score = Field(None, ge=1, le=5)
    energy_level: Score = Field(None, ge=1, le=5)
    grooming: Score = Field(None, ge=1, le=5)
    health_issues: Score = Field(None, ge=1, le=5)
    intelligence: Score = Field(None, ge=1, le=5)
    shedding_level: Score = Field(None, ge=1, le=5)
    social_needs: Score = Field(None, ge=1, le=5)
    stranger_friendly: Score = Field(None, ge=1, le=5)
    vocalisation: Score = Field(None, ge=1, le=5)

    def traits(self) -> dict[str, int]:
        """Scored traits that upstream filled in, in declaration order."""
        return {name: getattr(self, name) for name in TRAIT_FIELDS if getattr(self, name) is not None}

TRAIT_FIELDS = (
    "adaptability", "affection_level", "child_friendly", "dog_friendly",
    "energy_level", "grooming", "health_issues", "intelligence",
    "shedding_level", "social_needs", "stranger_friendly", "vocalisation",
)

# GET /images/search (items), GET /images/{id}
class CatImage(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str = Field(min_length=1)
    url: str
    width: Optional[int] = None
    height: Optional[int] = None
    breeds: List[Breed] = Field(default_factory=list)

Page = List[CatImage]

CATEGORIES = TypeAdapter(List[Category])
PAGE = TypeAdapter(Page)
