from decimal import Decimal
from typing import Optional
from pydantic import BaseModel, Field


class ProofLocation(BaseModel):
    section: Optional[str] = None
    bay: Optional[str] = None
    warehouse: Optional[str] = None


class ProofDimensions(BaseModel):
    width: Optional[int] = None
    height: Optional[int] = None


class ProofMetadata(BaseModel):
    file_size: Optional[int] = None
    mime_type: Optional[str] = None
    dimensions: Optional[ProofDimensions] = None


class DeliveryProofRequest(BaseModel):
    image_url: str = Field(min_length=1, max_length=500)
    image_id: str = Field(min_length=1, max_length=200)
    delivery_notes: Optional[str] = Field(default=None, max_length=500)
    location: Optional[ProofLocation] = None
    metadata: Optional[ProofMetadata] = None


class PayoutRequest(BaseModel):
    amount: Decimal = Field(gt=0)
    description: Optional[str] = Field(default=None, max_length=200)


class AddEarningsRequest(BaseModel):
    amount: Decimal = Field(gt=0)
    description: Optional[str] = Field(default=None, max_length=200)


class MinimumPayoutRequest(BaseModel):
    minimum_payout_amount: Decimal = Field(ge=Decimal("1.00"), le=Decimal("1000.00"))
