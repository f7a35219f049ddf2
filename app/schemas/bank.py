from typing import Literal, Optional
from pydantic import BaseModel, constr


class ConnectBankRequest(BaseModel):
    card_holder_name: constr(strip_whitespace=True, min_length=2, max_length=100)
    card_number: constr(strip_whitespace=True, min_length=13, max_length=23)
    expiry_month: constr(strip_whitespace=True, pattern=r"^[0-9]{1,2}$")
    expiry_year: constr(strip_whitespace=True, pattern=r"^([0-9]{2}|[0-9]{4})$")
    cvv: constr(strip_whitespace=True, pattern=r"^[0-9]{3,4}$")
    bank_name: constr(strip_whitespace=True, min_length=2, max_length=100)
    type: Optional[Literal["customer", "vendor"]] = None


class UpdateBankRequest(BaseModel):
    card_holder_name: Optional[constr(strip_whitespace=True, min_length=2, max_length=100)] = None
    card_number: Optional[constr(strip_whitespace=True, min_length=13, max_length=23)] = None
    expiry_month: Optional[constr(strip_whitespace=True, pattern=r"^[0-9]{1,2}$")] = None
    expiry_year: Optional[constr(strip_whitespace=True, pattern=r"^([0-9]{2}|[0-9]{4})$")] = None
    cvv: Optional[constr(strip_whitespace=True, pattern=r"^[0-9]{3,4}$")] = None
    bank_name: Optional[constr(strip_whitespace=True, min_length=2, max_length=100)] = None
