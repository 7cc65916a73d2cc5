"""Upstream records consumed by the layout engine.

Contacts and interactions are owned by the relational store of the web
application; the layout service only reads them to decide which nodes and
edges exist and how edges are colored.
"""

from typing import List, Literal, Optional

from pydantic import BaseModel, Field

Sentiment = Literal["good", "bad", "neutral"]


class Contact(BaseModel):
    """A person in the user's network.

    Attributes:
        id: Stable contact identifier
        name: Display name (used for initials)
        introducer_id: Contact credited with the introduction, if any
    """

    id: str = Field(..., min_length=1, description="Stable contact identifier")
    name: str = Field(default="", description="Display name")
    introducer_id: Optional[str] = Field(
        default=None, description="Contact who introduced this person"
    )
    role: Optional[str] = Field(default=None)
    company: Optional[str] = Field(default=None)
    notes: Optional[str] = Field(default=None)


class Interaction(BaseModel):
    """A logged interaction with a contact."""

    person_id: str = Field(..., min_length=1, description="Contact the interaction concerns")
    sentiment: Sentiment = Field(..., description="How the interaction went")
    description: str = Field(default="")


class NetworkPayload(BaseModel):
    """Full data set delivered on every (re)load."""

    contacts: List[Contact] = Field(default_factory=list)
    interactions: List[Interaction] = Field(default_factory=list)


__all__ = [
    "Sentiment",
    "Contact",
    "Interaction",
    "NetworkPayload",
]
