import logging
from decimal import Decimal

from sqlalchemy import case, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from hcpos.errors import InsufficientPointsError, ValidationError
from hcpos.models.common import utcnow
from hcpos.models.core import Customer, LoyaltyAccount, LoyaltyTier

logger = logging.getLogger(__name__)

SPEND_PER_POINT = 10_000    # currency units spent per point earned
POINT_VALUE = 1_000         # currency units of discount per point redeemed
GOLD_THRESHOLD = 500
SILVER_THRESHOLD = 200


def tier_for(points: int) -> LoyaltyTier:
    if points >= GOLD_THRESHOLD:
        return LoyaltyTier.GOLD
    if points >= SILVER_THRESHOLD:
        return LoyaltyTier.SILVER
    return LoyaltyTier.BRONZE


def tier_expression(points_expr):
    """SQL twin of tier_for(), so points and tier change in one statement."""
    return case(
        (points_expr >= GOLD_THRESHOLD, LoyaltyTier.GOLD.value),
        (points_expr >= SILVER_THRESHOLD, LoyaltyTier.SILVER.value),
        else_=LoyaltyTier.BRONZE.value,
    )


def points_for(amount) -> int:
    return int(Decimal(str(amount or 0)) // SPEND_PER_POINT)


class LoyaltyLedger:
    """Point balances per customer. Like StockLedger, it leaves commits to the caller."""

    def __init__(self, db: Session):
        self.db = db

    def _fetch(self, customer_id: int) -> LoyaltyAccount | None:
        stmt = (
            select(LoyaltyAccount)
            .where(LoyaltyAccount.customer_id == customer_id)
            .execution_options(populate_existing=True)
        )
        return self.db.execute(stmt).scalar_one_or_none()

    def get_or_create(self, customer_id: int) -> LoyaltyAccount:
        acct = self._fetch(customer_id)
        if acct:
            return acct
        try:
            with self.db.begin_nested():
                acct = LoyaltyAccount(customer_id=customer_id, points=0, tier=LoyaltyTier.BRONZE.value)
                self.db.add(acct)
            logger.info("opened loyalty account for customer %s", customer_id)
            return acct
        except IntegrityError:
            # another request opened it first
            return self._fetch(customer_id)

    def _apply(self, customer_id: int, delta: int, guard=None) -> int:
        new_points = LoyaltyAccount.points + delta
        stmt = (
            update(LoyaltyAccount)
            .where(LoyaltyAccount.customer_id == customer_id)
            .values(points=new_points, tier=tier_expression(new_points), updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        if guard is not None:
            stmt = stmt.where(guard)
        return self.db.execute(stmt).rowcount

    def accrue(self, customer_id: int, charged_amount) -> dict:
        points_added = points_for(charged_amount)
        self.get_or_create(customer_id)
        if points_added:
            self._apply(customer_id, points_added)
        acct = self._fetch(customer_id)
        return {
            "success": True,
            "points_added": points_added,
            "new_balance": acct.points,
            "tier": acct.tier,
        }

    def redeem(self, customer_id: int, points: int) -> dict:
        if points is None or points <= 0:
            raise ValidationError("Points must be greater than 0")
        self.get_or_create(customer_id)
        if self._apply(customer_id, -points, guard=LoyaltyAccount.points >= points) == 0:
            acct = self._fetch(customer_id)
            raise InsufficientPointsError(available=acct.points, requested=points)
        acct = self._fetch(customer_id)
        logger.info("customer %s redeemed %s points (balance %s)", customer_id, points, acct.points)
        return {
            "success": True,
            "points_redeemed": points,
            "discount_amount": points * POINT_VALUE,
            "new_balance": acct.points,
            "tier": acct.tier,
        }

    def balance(self, customer_id: int) -> dict:
        acct = self.get_or_create(customer_id)
        return {
            "customer_id": customer_id,
            "points": acct.points,
            "tier": acct.tier,
            "discount_value": acct.points * POINT_VALUE,
        }

    def refresh_tier(self, customer_id: int) -> dict:
        self.get_or_create(customer_id)
        self._apply(customer_id, 0)
        acct = self._fetch(customer_id)
        return {"success": True, "tier": acct.tier}

    def list_accounts(self, limit: int | None = None) -> list[dict]:
        q = (
            self.db.query(LoyaltyAccount, Customer.name, Customer.email)
            .join(Customer, Customer.id == LoyaltyAccount.customer_id)
            .order_by(LoyaltyAccount.points.desc(), LoyaltyAccount.id)
        )
        if limit is not None:
            q = q.limit(limit)
        return [
            {
                "id": acct.id,
                "customer_id": acct.customer_id,
                "points": acct.points,
                "tier": acct.tier,
                "customer_name": name,
                "customer_email": email,
            }
            for acct, name, email in q.all()
        ]

    def top_members(self, limit: int = 10) -> list[dict]:
        return self.list_accounts(limit=limit)
