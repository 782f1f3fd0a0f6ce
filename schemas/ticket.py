from pydantic import BaseModel, Field, field_validator


class TicketCreate(BaseModel):
    booking_id: int = Field(gt=0)


class TicketVerify(BaseModel):
    ticket_number: str = Field(min_length=1, max_length=20)

    @field_validator("ticket_number", mode="before")
    @classmethod
    def strip(cls, v):
        return v.strip() if isinstance(v, str) else v
