from fastapi import APIRouter, Depends

from hcpos.deps import get_workflow
from hcpos.errors import ValidationError
from hcpos.schemas.common import Msg
from hcpos.schemas.orders import (
    LoyaltyResultOut, OrderCreateIn, OrderCreateOut, OrderOut, OrderStatisticsOut, OrderStatusIn,
    OrderSummaryOut,
)
from hcpos.services.orders import OrderWorkflow

router = APIRouter(prefix="/orders", tags=["orders"])


@router.get("/")
def list_orders(wf: OrderWorkflow = Depends(get_workflow)):
    rows = wf.list_orders()
    return {"success": True, "orders": [OrderSummaryOut.model_validate(r) for r in rows]}


@router.post("/", status_code=201, response_model=OrderCreateOut)
def create_order(body: OrderCreateIn, wf: OrderWorkflow = Depends(get_workflow)):
    """
    Cart -> confirmed order.

    Body (camelCase or snake_case keys):
      { customerId, branchId, items: [{menuItemId, quantity}], paymentType,
        paymentDetails: {...}, loyaltyPointsToRedeem }

    Failures come back as {success: false, error} with 400 (validation,
    stock, points, payment), 404 (unknown customer/branch/item) or 500.
    """
    if not body.payment_type:
        raise ValidationError("Missing required fields: customerId, branchId, or paymentType")
    result = wf.create_order(
        customer_id=body.customer_id,
        branch_id=body.branch_id,
        items=body.items,
        payment_type=body.payment_type,
        payment_details=body.payment_details,
        loyalty_points_to_redeem=body.loyalty_points_to_redeem,
    )
    return OrderCreateOut(
        order=OrderOut.model_validate(result["order"]),
        payment=result["payment"],
        loyalty=LoyaltyResultOut.model_validate(result["loyalty"]),
        loyalty_discount=result["loyalty_discount"],
        message=result["message"],
    )


@router.get("/statistics/summary")
def order_statistics(wf: OrderWorkflow = Depends(get_workflow)):
    return {"success": True, "statistics": OrderStatisticsOut.model_validate(wf.get_order_statistics())}


@router.get("/customer/{customer_id}")
def orders_by_customer(customer_id: int, wf: OrderWorkflow = Depends(get_workflow)):
    return {"success": True, "orders": [OrderSummaryOut.model_validate(r) for r in wf.orders_by_customer(customer_id)]}


@router.get("/branch/{branch_id}")
def orders_by_branch(branch_id: int, wf: OrderWorkflow = Depends(get_workflow)):
    return {"success": True, "orders": [OrderSummaryOut.model_validate(r) for r in wf.orders_by_branch(branch_id)]}


@router.get("/{order_id}")
def get_order(order_id: int, wf: OrderWorkflow = Depends(get_workflow)):
    return {"success": True, "order": OrderOut.model_validate(wf.get_order_by_id(order_id))}


@router.put("/{order_id}/status", response_model=Msg)
def update_status(order_id: int, body: OrderStatusIn, wf: OrderWorkflow = Depends(get_workflow)):
    if not body.status:
        raise ValidationError("Status is required")
    return wf.update_order_status(order_id, body.status)


@router.delete("/{order_id}", response_model=Msg)
def cancel_order(order_id: int, wf: OrderWorkflow = Depends(get_workflow)):
    return wf.cancel_order(order_id)
