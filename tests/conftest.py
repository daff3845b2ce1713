import pytest
from datetime import datetime
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch
from bson import ObjectId
from db.db_operation import mongo_conn
from core.dependencies import CurrentUser
from memory_db import MemoryDatabase

# --- CORE MOCKING UTILITIES ---

def make_cursor(docs=None):
    """
    Mocks a Motor cursor: sort/skip/limit chain back to the cursor itself
    and to_list is awaitable, returning the given documents.
    """
    cursor = MagicMock()
    cursor.sort.return_value = cursor
    cursor.skip.return_value = cursor
    cursor.limit.return_value = cursor
    cursor.to_list = AsyncMock(return_value=list(docs or []))
    return cursor

def make_collection():
    collection = MagicMock()
    for name in ("insert_one", "update_one", "update_many", "delete_one", "delete_many", "create_index"):
        setattr(collection, name, AsyncMock())
    collection.find_one = AsyncMock(return_value=None)
    collection.find_one_and_update = AsyncMock(return_value=None)
    collection.find_one_and_delete = AsyncMock(return_value=None)
    collection.count_documents = AsyncMock(return_value=0)
    collection.find.return_value = make_cursor()
    collection.aggregate.return_value = make_cursor()
    return collection

@pytest.fixture
def fake_db():
    """Replaces every collection on the shared connection with a mock."""
    db = SimpleNamespace(
        users=make_collection(),
        restaurants=make_collection(),
        products=make_collection(),
        orders=make_collection(),
        reviews=make_collection(),
        riders=make_collection(),
        carts=make_collection(),
        audit_logs=make_collection(),
    )
    with patch.multiple(
        mongo_conn,
        users_collection=db.users,
        restaurants_collection=db.restaurants,
        products_collection=db.products,
        orders_collection=db.orders,
        reviews_collection=db.reviews,
        riders_collection=db.riders,
        carts_collection=db.carts,
        audit_logs=db.audit_logs,
    ):
        yield db

@pytest.fixture
def memory_db():
    """Stateful collections sharing one database, for flows that read back their own writes."""
    db = MemoryDatabase()
    with patch.multiple(
        mongo_conn,
        users_collection=db.users,
        restaurants_collection=db.restaurants,
        products_collection=db.products,
        orders_collection=db.orders,
        reviews_collection=db.reviews,
        riders_collection=db.riders,
        carts_collection=db.carts,
        audit_logs=db.audit_logs,
    ):
        yield db

# --- SAMPLE ACCOUNTS ---

def make_user(role="customer", approved=True, **extra) -> CurrentUser:
    return CurrentUser(
        id=str(ObjectId()),
        email=f"{role}@example.com",
        name=f"Test {role}",
        role=role,
        is_approved=approved,
        **extra,
    )

@pytest.fixture
def customer():
    return make_user("customer")

@pytest.fixture
def restaurant_owner():
    return make_user("restaurant")

@pytest.fixture
def rider():
    return make_user("rider")

@pytest.fixture
def admin():
    return make_user("admin")

def order_doc(status="pending", **overrides) -> dict:
    now = datetime.utcnow()
    doc = {
        "_id": ObjectId(),
        "order_number": "FX1700000000000ABCD1234",
        "user": ObjectId(),
        "restaurant": ObjectId(),
        "items": [{"product": ObjectId(), "product_name": "Burger", "quantity": 1, "price": 150.0}],
        "subtotal": 150.0,
        "delivery_fee": 35.0,
        "service_fee": 10.0,
        "total": 195.0,
        "delivery_address": "12 Main St",
        "payment_method": "cash",
        "special_instructions": "",
        "status": status,
        "rider": None,
        "version": 0,
        "created_at": now,
        "updated_at": now,
    }
    doc.update(overrides)
    return doc
