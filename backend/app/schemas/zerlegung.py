"""
Pydantic Schemas für Zerlegeaufträge
"""
from datetime import datetime
from decimal import Decimal
from uuid import UUID
from pydantic import BaseModel, ConfigDict

from app.models.enums import ZerlegeStatus


class ZerlegePositionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    artikel_position_id: UUID
    artikel_name: str | None
    menge: Decimal | None
    bemerkung: str | None
    status: ZerlegeStatus
    erledigt_am: datetime | None


class ZerlegeAuftragResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    auftrag_id: UUID
    kunden_name: str | None
    zerleger_id: UUID | None
    zerleger_name: str | None
    erstellt_am: datetime
    archiviert: bool
    ist_erledigt: bool
    positionen: list[ZerlegePositionResponse] = []


class ZerlegeAuftragListResponse(BaseModel):
    items: list[ZerlegeAuftragResponse]
    total: int


class ZerlegePositionUpdate(BaseModel):
    """Ohne Status wird zwischen offen und erledigt umgeschaltet"""
    status: ZerlegeStatus | None = None
