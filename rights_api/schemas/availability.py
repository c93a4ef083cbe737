from datetime import date
from typing import Optional

from pydantic import BaseModel, Field, ValidationInfo, field_validator

from rights_api.schemas.contract import ContractResponse

ISO_DATE_PATTERN = r"^\d{4}-\d{2}-\d{2}$"


class AvailabilityRequest(BaseModel):
    partner: str = Field(..., min_length=1, max_length=255)
    territory: Optional[str] = Field(None, max_length=255)
    platform: Optional[str] = Field(None, max_length=255)
    start_date: str = Field(..., pattern=ISO_DATE_PATTERN)
    end_date: str = Field(..., pattern=ISO_DATE_PATTERN)

    @field_validator("partner")
    @classmethod
    def validate_partner(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Partner is required")
        return v

    @field_validator("territory", "platform")
    @classmethod
    def blank_to_none(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        return v.strip() or None

    @field_validator("start_date", "end_date")
    @classmethod
    def validate_calendar_date(cls, v: str, info: ValidationInfo) -> str:
        try:
            date.fromisoformat(v)
        except ValueError:
            raise ValueError(f"{info.field_name} is not a valid calendar date")
        # Fixed-width ISO dates compare correctly as strings
        start = info.data.get("start_date")
        if info.field_name == "end_date" and start and v < start:
            raise ValueError("end_date must be on or after start_date")
        return v

    @property
    def start(self) -> date:
        return date.fromisoformat(self.start_date)

    @property
    def end(self) -> date:
        return date.fromisoformat(self.end_date)


class SuggestionsResponse(BaseModel):
    territories: list[str]
    platforms: list[str]


class AvailabilityResponse(BaseModel):
    available: bool
    conflicts: list[ContractResponse] = []
    suggestions: Optional[SuggestionsResponse] = None
