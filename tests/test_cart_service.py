import asyncio
import pytest
from unittest.mock import MagicMock
from bson import ObjectId
from pymongo.errors import DuplicateKeyError, PyMongoError
from core.exceptions import Conflict, InvalidCart, NotFound, ValidationError
from models.cart import CheckoutRequest
from services import cart_service
from conftest import make_cursor


def product(restaurant_id, name="Burger", price=150.0, available=True):
    return {"_id": ObjectId(), "restaurant": restaurant_id, "name": name, "price": price, "is_available": available}


def cart_with(user_id, restaurant_id, *lines):
    return {
        "_id": ObjectId(user_id),
        "restaurant_id": restaurant_id,
        "items": [
            {"product_id": p["_id"], "restaurant_id": p["restaurant"], "product_name": p["name"],
             "price": p["price"], "quantity": qty}
            for p, qty in lines
        ],
    }


class TestAddItem:
    @pytest.mark.asyncio
    async def test_first_item_snapshots_price(self, fake_db, customer):
        restaurant_id = ObjectId()
        burger = product(restaurant_id)
        fake_db.products.find_one.return_value = burger
        fake_db.carts.find_one_and_update.side_effect = [None, cart_with(customer.id, restaurant_id, (burger, 2))]

        cart = await cart_service.add_item(customer, str(burger["_id"]), 2)

        assert cart["restaurant_id"] == str(restaurant_id)
        assert cart["items"][0]["price"] == 150.0
        assert cart["subtotal"] == 300.0
        push = fake_db.carts.find_one_and_update.call_args_list[1].args[1]["$push"]["items"]
        assert push["price"] == 150.0
        assert push["quantity"] == 2

    @pytest.mark.asyncio
    async def test_other_restaurant_is_rejected_and_cart_untouched(self, fake_db, customer):
        burger = product(ObjectId())
        fake_db.products.find_one.return_value = burger
        # no line for this product, and the guarded push collides with the existing cart
        fake_db.carts.find_one_and_update.side_effect = [None, DuplicateKeyError("E11000 duplicate key")]

        with pytest.raises(InvalidCart):
            await cart_service.add_item(customer, str(burger["_id"]), 1)

        fake_db.carts.update_one.assert_not_awaited()
        fake_db.carts.delete_one.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unavailable_product(self, fake_db, customer):
        fake_db.products.find_one.return_value = product(ObjectId(), available=False)
        with pytest.raises(ValidationError):
            await cart_service.add_item(customer, str(ObjectId()), 1)

    @pytest.mark.asyncio
    async def test_missing_product(self, fake_db, customer):
        with pytest.raises(NotFound):
            await cart_service.add_item(customer, str(ObjectId()), 1)


class TestUpdate:
    @pytest.mark.asyncio
    async def test_zero_quantity_removes_line(self, fake_db, customer):
        restaurant_id = ObjectId()
        fries = product(restaurant_id, "Fries", 60.0)
        fake_db.carts.find_one_and_update.return_value = cart_with(customer.id, restaurant_id, (fries, 1))
        await cart_service.update_item(customer, str(ObjectId()), 0)
        update = fake_db.carts.find_one_and_update.call_args.args[1]
        assert "$pull" in update

    @pytest.mark.asyncio
    async def test_unknown_line(self, fake_db, customer):
        with pytest.raises(NotFound):
            await cart_service.update_item(customer, str(ObjectId()), 3)


class TestCheckout:
    @pytest.mark.asyncio
    async def test_burger_checkout_creates_pending_order(self, fake_db, customer):
        restaurant_id = ObjectId()
        burger = product(restaurant_id)
        cart = cart_with(customer.id, restaurant_id, (burger, 1))
        fake_db.carts.find_one.return_value = cart
        fake_db.carts.find_one_and_delete.return_value = cart
        fake_db.restaurants.aggregate.return_value = make_cursor(
            [{"_id": restaurant_id, "name": "Grill House", "is_active": True, "is_approved": True}]
        )
        fake_db.orders.insert_one.return_value = MagicMock(inserted_id=ObjectId())

        order = await cart_service.checkout(customer, CheckoutRequest(delivery_address="12 Main St"))

        assert order["subtotal"] == 150.0
        assert order["delivery_fee"] == 35.0
        assert order["service_fee"] == 10.0
        assert order["total"] == 195.0
        assert order["status"] == "pending"
        assert order["rider"] is None
        assert order["order_number"].startswith("FX")
        fake_db.carts.find_one_and_delete.assert_awaited_once_with({"_id": cart["_id"], "items": cart["items"]})

    @pytest.mark.asyncio
    async def test_empty_cart(self, fake_db, customer):
        with pytest.raises(ValidationError):
            await cart_service.checkout(customer, CheckoutRequest(delivery_address="12 Main St"))

    @pytest.mark.asyncio
    async def test_mixed_restaurants_leave_cart_alone(self, fake_db, customer):
        first, second = ObjectId(), ObjectId()
        cart = cart_with(customer.id, first, (product(first), 1), (product(second, "Tea", 20.0), 1))
        fake_db.carts.find_one.return_value = cart

        with pytest.raises(InvalidCart):
            await cart_service.checkout(customer, CheckoutRequest(delivery_address="12 Main St"))

        fake_db.orders.insert_one.assert_not_awaited()
        fake_db.carts.find_one_and_delete.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unapproved_restaurant(self, fake_db, customer):
        restaurant_id = ObjectId()
        fake_db.carts.find_one.return_value = cart_with(customer.id, restaurant_id, (product(restaurant_id), 1))
        fake_db.restaurants.aggregate.return_value = make_cursor(
            [{"_id": restaurant_id, "is_active": True, "is_approved": False}]
        )
        with pytest.raises(ValidationError):
            await cart_service.checkout(customer, CheckoutRequest(delivery_address="12 Main St"))
        fake_db.orders.insert_one.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_double_submit_places_one_order(self, fake_db, customer):
        restaurant_id = ObjectId()
        cart = cart_with(customer.id, restaurant_id, (product(restaurant_id), 1))
        fake_db.carts.find_one.return_value = cart
        fake_db.restaurants.aggregate.side_effect = lambda pipeline: make_cursor(
            [{"_id": restaurant_id, "is_active": True, "is_approved": True}]
        )
        # only the first claim finds the cart
        fake_db.carts.find_one_and_delete.side_effect = [cart, None]
        fake_db.orders.insert_one.return_value = MagicMock(inserted_id=ObjectId())
        payload = CheckoutRequest(delivery_address="12 Main St")

        results = await asyncio.gather(
            cart_service.checkout(customer, payload),
            cart_service.checkout(customer, payload),
            return_exceptions=True,
        )

        orders = [r for r in results if isinstance(r, dict)]
        conflicts = [r for r in results if isinstance(r, Conflict)]
        assert len(orders) == 1
        assert len(conflicts) == 1
        fake_db.orders.insert_one.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_failed_order_insert_puts_cart_back(self, fake_db, customer):
        restaurant_id = ObjectId()
        cart = cart_with(customer.id, restaurant_id, (product(restaurant_id), 2))
        fake_db.carts.find_one.return_value = cart
        fake_db.carts.find_one_and_delete.return_value = cart
        fake_db.restaurants.aggregate.return_value = make_cursor(
            [{"_id": restaurant_id, "is_active": True, "is_approved": True}]
        )
        fake_db.orders.insert_one.side_effect = PyMongoError("write failed")

        with pytest.raises(PyMongoError):
            await cart_service.checkout(customer, CheckoutRequest(delivery_address="12 Main St"))

        fake_db.carts.insert_one.assert_awaited_once_with(cart)
