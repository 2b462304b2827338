from typing import Optional

from hcpos.schemas.common import CamelModel

class RedeemIn(CamelModel):
    customer_id: Optional[int] = None
    points: Optional[int] = None

class AddPointsIn(CamelModel):
    customer_id: Optional[int] = None
    amount: Optional[float] = None

class AccountOut(CamelModel):
    id: int
    customer_id: int
    points: int
    tier: str

class BalanceOut(CamelModel):
    customer_id: int
    points: int
    tier: str
    discount_value: int

class AccountRowOut(AccountOut):
    customer_name: Optional[str] = None
    customer_email: Optional[str] = None

class RedeemOut(CamelModel):
    success: bool = True
    points_redeemed: int
    discount_amount: int
    new_balance: int
    tier: str
    message: str

class AddPointsOut(CamelModel):
    success: bool = True
    points_added: int
    new_balance: int
    tier: str
    message: str
