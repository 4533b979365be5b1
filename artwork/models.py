"""Pydantic models for the artwork API."""

from pydantic import BaseModel

from artwork.dispatcher import EnrichmentStatus


class TriggerRequest(BaseModel):
    """Placeholders of one render the client already knows to be inside the observation region."""

    render_id: int
    placeholder_ids: list[str]


class TriggerResponse(BaseModel):
    """Placeholders triggered by this call and artwork applied to the render so far."""

    render_id: int
    triggered: list[str] = []
    artwork: dict[str, str] = {}


class ArtworkResponse(BaseModel):
    """Enrichment state of a single song."""

    title: str
    artist: str
    status: EnrichmentStatus
    artwork_url: str | None = None
