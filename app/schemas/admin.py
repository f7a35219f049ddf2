from typing import Literal, Optional
from pydantic import BaseModel, Field


class OrderStatusRequest(BaseModel):
    status: Literal["pending", "processing", "shipped", "delivered", "cancelled"]
    admin_notes: Optional[str] = Field(default=None, max_length=1000)


class ProofReviewRequest(BaseModel):
    action: Literal["approve", "reject", "requires_review"]
    admin_notes: Optional[str] = Field(default=None, max_length=1000)


class EscrowActionRequest(BaseModel):
    reason: Optional[str] = Field(default=None, max_length=500)
