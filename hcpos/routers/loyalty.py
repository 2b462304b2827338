from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from hcpos.db import get_db
from hcpos.deps import get_loyalty
from hcpos.errors import ValidationError
from hcpos.schemas.loyalty import AccountOut, AccountRowOut, AddPointsIn, AddPointsOut, BalanceOut, RedeemIn, RedeemOut
from hcpos.services.catalog import CustomerDirectory
from hcpos.services.loyalty import LoyaltyLedger

router = APIRouter(prefix="/loyalty", tags=["loyalty"])


@router.get("/")
def list_accounts(loyalty: LoyaltyLedger = Depends(get_loyalty)):
    return {"success": True, "accounts": [AccountRowOut.model_validate(r) for r in loyalty.list_accounts()]}

@router.get("/top")
def top_members(limit: int = 10, loyalty: LoyaltyLedger = Depends(get_loyalty)):
    rows = [AccountRowOut.model_validate(r) for r in loyalty.top_members(limit)]
    return {"success": True, "topMembers": rows, "count": len(rows)}

@router.get("/customer/{customer_id}")
def customer_account(customer_id: int, loyalty: LoyaltyLedger = Depends(get_loyalty), db: Session = Depends(get_db)):
    CustomerDirectory(db).get(customer_id)
    account = loyalty.get_or_create(customer_id)
    balance = loyalty.balance(customer_id)
    db.commit()
    return {"success": True, "account": AccountOut.model_validate(account), "balance": BalanceOut.model_validate(balance)}

@router.get("/check-balance/{customer_id}")
def check_balance(customer_id: int, loyalty: LoyaltyLedger = Depends(get_loyalty), db: Session = Depends(get_db)):
    CustomerDirectory(db).get(customer_id)
    balance = loyalty.balance(customer_id)
    db.commit()
    return {"success": True, **BalanceOut.model_validate(balance).model_dump(by_alias=True)}

@router.post("/redeem", response_model=RedeemOut)
def redeem(body: RedeemIn, loyalty: LoyaltyLedger = Depends(get_loyalty), db: Session = Depends(get_db)):
    if not body.customer_id or body.points is None:
        raise ValidationError("Missing required fields: customerId or points")
    CustomerDirectory(db).get(body.customer_id)
    result = loyalty.redeem(body.customer_id, body.points)
    db.commit()
    return {**result, "message": f"Successfully redeemed {body.points} points for {result['discount_amount']} discount"}

@router.post("/add-points", response_model=AddPointsOut)
def add_points(body: AddPointsIn, loyalty: LoyaltyLedger = Depends(get_loyalty), db: Session = Depends(get_db)):
    if not body.customer_id or body.amount is None:
        raise ValidationError("Missing required fields: customerId or amount")
    if body.amount <= 0:
        raise ValidationError("Amount must be greater than 0")
    CustomerDirectory(db).get(body.customer_id)
    result = loyalty.accrue(body.customer_id, body.amount)
    db.commit()
    return {**result, "message": f"Successfully added {result['points_added']} points"}

@router.put("/update-tier/{customer_id}")
def update_tier(customer_id: int, loyalty: LoyaltyLedger = Depends(get_loyalty), db: Session = Depends(get_db)):
    CustomerDirectory(db).get(customer_id)
    result = loyalty.refresh_tier(customer_id)
    db.commit()
    return result
