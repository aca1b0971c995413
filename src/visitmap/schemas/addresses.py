"""Address and visit-history API schemas."""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field

from ..models.domain import AddressRecord, VisitEntry
from ..services.classifier import classify


class CoordinatesModel(BaseModel):
    lat: float = Field(..., ge=-90.0, le=90.0)
    lon: float = Field(..., ge=-180.0, le=180.0)


class AddressFieldsModel(BaseModel):
    houseNumber: str = ""
    streetName: str = ""
    city: str = ""
    state: str = ""
    zip: str = ""


class VisitEntryRequest(BaseModel):
    results: List[str] = Field(default_factory=list, description="Outcome tags selected for this visit.")
    visitedBy: str = Field("", description="Volunteer who made the visit.")
    firstName: Optional[str] = None
    lastName: Optional[str] = None
    comment: Optional[str] = None

    def to_entry(self) -> VisitEntry:
        return VisitEntry.create(
            self.results,
            self.visitedBy,
            first_name=self.firstName,
            last_name=self.lastName,
            comment=self.comment,
        )


class AddressCreateRequest(AddressFieldsModel, VisitEntryRequest):
    coordinates: Optional[CoordinatesModel] = Field(
        default=None,
        description="Clicked map location; geocoded from the address when omitted.",
    )


class VisitEntryModel(BaseModel):
    timestamp: int
    firstName: str = ""
    lastName: str = ""
    results: List[str]
    visitedBy: str
    comment: str = ""
    color: str

    @classmethod
    def from_entry(cls, entry: VisitEntry) -> "VisitEntryModel":
        return cls(color=classify(entry.outcomes).value, **entry.to_document())


class CurrentVisitModel(BaseModel):
    results: List[str]
    firstName: str = ""
    lastName: str = ""
    visitedBy: str
    comment: str = ""
    color: str


class AddressModel(AddressFieldsModel):
    id: str
    coordinates: Optional[CoordinatesModel] = None
    updatedAt: Optional[int] = None
    results: List[str]
    firstName: str = ""
    lastName: str = ""
    visitedBy: str = ""
    color: str
    history: List[VisitEntryModel]

    @classmethod
    def from_record(cls, record: AddressRecord) -> "AddressModel":
        return cls(
            id=record.id,
            houseNumber=record.house_number,
            streetName=record.street_name,
            city=record.city,
            state=record.state,
            zip=record.zip,
            coordinates=(
                CoordinatesModel(lat=record.coordinates.lat, lon=record.coordinates.lon)
                if record.coordinates
                else None
            ),
            updatedAt=record.updated_at,
            results=list(record.current_outcomes),
            firstName=record.current_first_name or "",
            lastName=record.current_last_name or "",
            visitedBy=record.current_visited_by or "",
            color=classify(record.current_outcomes).value,
            history=[VisitEntryModel.from_entry(entry) for entry in record.history],
        )


class LoadSummaryModel(BaseModel):
    total: int
    migrated: int
    backfilled: int
    backfillFailed: int


class SuggestionsResponse(BaseModel):
    field: str
    query: str
    suggestions: List[str]
