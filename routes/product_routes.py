from typing import List
from fastapi import APIRouter, Depends, Body, status
from core.authorization import require_role
from core.dependencies import CurrentUser
from models.product import ProductCreate, ProductUpdate, ProductOut
from models.response import SuccessResponse, ok
from services.product_service import (
    create_product, list_products, list_own_products, get_product, update_product, delete_product,
)

router = APIRouter(prefix="/products", tags=["Products"])

@router.post("", response_model=SuccessResponse[ProductOut], status_code=status.HTTP_201_CREATED)
async def api_create_product(payload: ProductCreate = Body(...),
                             current_user: CurrentUser = Depends(require_role("restaurant"))):
    return ok(await create_product(current_user, payload), "Product created")

@router.get("/mine", response_model=SuccessResponse[List[ProductOut]])
async def api_my_products(current_user: CurrentUser = Depends(require_role("restaurant"))):
    return ok(await list_own_products(current_user))

@router.get("/restaurant/{restaurant_id}", response_model=SuccessResponse[List[ProductOut]])
async def api_restaurant_products(restaurant_id: str):
    return ok(await list_products(restaurant_id))

@router.get("/{product_id}", response_model=SuccessResponse[ProductOut])
async def api_get_product(product_id: str):
    return ok(await get_product(product_id))

@router.put("/{product_id}", response_model=SuccessResponse[ProductOut])
async def api_update_product(product_id: str, payload: ProductUpdate = Body(...),
                             current_user: CurrentUser = Depends(require_role("restaurant"))):
    return ok(await update_product(current_user, product_id, payload), "Product updated")

@router.delete("/{product_id}", response_model=SuccessResponse[dict])
async def api_delete_product(product_id: str, current_user: CurrentUser = Depends(require_role("restaurant"))):
    return ok(await delete_product(current_user, product_id), "Product deleted")
