from fastapi import APIRouter, Depends, Body, status
from core.authorization import require_role
from core.dependencies import CurrentUser
from models.cart import CartAdd, CartUpdate, CartOut, CheckoutRequest
from models.order import OrderOut
from models.response import SuccessResponse, ok
from services import cart_service
from utils.logger import get_logger

logger = get_logger("Cart_Route")

router = APIRouter(prefix="/cart", tags=["Cart"])

customer_only = require_role("customer")

@router.get("", response_model=SuccessResponse[CartOut])
async def api_get_cart(current_user: CurrentUser = Depends(customer_only)):
    return ok(await cart_service.get_cart(current_user))

@router.post("/add", response_model=SuccessResponse[CartOut])
async def api_add_to_cart(payload: CartAdd = Body(...), current_user: CurrentUser = Depends(customer_only)):
    return ok(await cart_service.add_item(current_user, payload.product_id, payload.quantity), "Item added to cart")

@router.put("/update", response_model=SuccessResponse[CartOut])
async def api_update_cart(payload: CartUpdate = Body(...), current_user: CurrentUser = Depends(customer_only)):
    return ok(await cart_service.update_item(current_user, payload.product_id, payload.quantity))

@router.delete("/remove/{product_id}", response_model=SuccessResponse[CartOut])
async def api_remove_from_cart(product_id: str, current_user: CurrentUser = Depends(customer_only)):
    return ok(await cart_service.remove_item(current_user, product_id))

@router.delete("/clear", response_model=SuccessResponse[CartOut])
async def api_clear_cart(current_user: CurrentUser = Depends(customer_only)):
    return ok(await cart_service.clear_cart(current_user), "Cart cleared")

@router.post("/checkout", response_model=SuccessResponse[OrderOut], status_code=status.HTTP_201_CREATED)
async def api_checkout(payload: CheckoutRequest = Body(...), current_user: CurrentUser = Depends(customer_only)):
    logger.info(f"Checkout requested by {current_user.email}")
    order = await cart_service.checkout(current_user, payload)
    return ok(order, "Order placed successfully")
