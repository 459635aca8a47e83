from datetime import datetime

from pydantic import BaseModel, EmailStr, field_validator, model_validator

from tutordesk.services.slot_resolver import as_utc

MAX_BOOKING_REASON_LENGTH = 500


class SlotSelection(BaseModel):
    start_ts: datetime
    end_ts: datetime

    @field_validator('start_ts', 'end_ts')
    @classmethod
    def normalize_instant(cls, value: datetime) -> datetime:
        return as_utc(value)

    @model_validator(mode='after')
    def validate_interval(self) -> 'SlotSelection':
        if self.start_ts >= self.end_ts:
            raise ValueError('Slot end must be after slot start.')
        return self


class ProspectDetails(BaseModel):
    name: str
    email: EmailStr
    reason: str | None = None

    @field_validator('name')
    @classmethod
    def validate_name(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError('Enter your name.')
        return normalized

    @field_validator('email', mode='before')
    @classmethod
    def normalize_email(cls, value):
        if isinstance(value, str):
            return value.strip().lower()
        return value

    @field_validator('reason')
    @classmethod
    def validate_reason(cls, value: str | None) -> str | None:
        if value is None:
            return None

        normalized = value.strip()
        if not normalized:
            return None

        if len(normalized) > MAX_BOOKING_REASON_LENGTH:
            raise ValueError(f'Reason must be {MAX_BOOKING_REASON_LENGTH} characters or fewer.')

        return normalized


class CreateBookingRequest(BaseModel):
    start_ts: datetime
    end_ts: datetime
    prospect_name: str
    prospect_email: str
    reason: str | None = None

    def slot(self) -> dict:
        return {'start_ts': self.start_ts, 'end_ts': self.end_ts}

    def prospect(self) -> dict:
        return {'name': self.prospect_name, 'email': self.prospect_email, 'reason': self.reason}


class BookingResponse(BaseModel):
    id: int
    start_ts: datetime
    end_ts: datetime
    prospect_name: str
    prospect_email: str
    reason: str | None = None
    status: str

    class Config:
        from_attributes = True

    @field_validator('start_ts', 'end_ts')
    @classmethod
    def normalize_instant(cls, value: datetime) -> datetime:
        return as_utc(value)


class SlotProposalResponse(BaseModel):
    start_ts: datetime
    end_ts: datetime
