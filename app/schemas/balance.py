from decimal import Decimal
from typing import Optional
from pydantic import BaseModel, Field


class BalanceChangeRequest(BaseModel):
    amount: Decimal = Field(gt=0)
    description: Optional[str] = Field(default=None, max_length=200)
