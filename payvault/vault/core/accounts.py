from pydantic import BaseModel, Field


class Participant(BaseModel):
    address: str
    weight: int = Field(default=0, ge=0)
    # Accumulator value as of the participant's last settlement
    checkpoint: int = Field(default=0, ge=0)
    # Next delegated-claim nonce
    nonce: int = Field(default=0, ge=0)
