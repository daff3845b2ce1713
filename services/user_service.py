from datetime import datetime
from typing import Optional
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError, PyMongoError
from db.db_operation import mongo_conn
from core.exceptions import Conflict, ValidationError, Unauthorized, Forbidden, PendingApproval, NotFound
from core.authorization import APPROVAL_REQUIRED_ROLES
from models.user import UserCreate, UserLogin
from services.common import to_object_id, write_audit_log, paginate
from services.rider_service import create_rider_profile
from utils.hash import hash_password, verify_password, MIN_PASSWORD_LENGTH
from utils.jwt_handler import create_access_token
from utils.storage import get_storage, decode_upload
from utils.logger import get_logger

logger = get_logger("USER_SERVICE")

SELF_REGISTER_ROLES = ("customer", "restaurant", "rider")

def serialize_user(user: dict) -> dict:
    return {
        "id": str(user["_id"]),
        "name": user.get("name", ""),
        "email": user["email"],
        "phone": user.get("phone"),
        "address": user.get("address"),
        "role": user.get("role", "customer"),
        "is_approved": bool(user.get("is_approved", False)),
        "is_active": bool(user.get("is_active", True)),
        "vehicle_type": user.get("vehicle_type"),
        "license_number": user.get("license_number"),
        "created_at": user.get("created_at"),
    }

def default_approval(role: str) -> bool:
    """Customers and admins are approved on creation; restaurants and riders wait for an admin."""
    return role not in APPROVAL_REQUIRED_ROLES

def _validate_registration(user: UserCreate):
    if user.role not in SELF_REGISTER_ROLES:
        raise ValidationError("Role cannot be self-registered")
    if len(user.password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
    if user.role == "rider":
        if not user.license_number or not user.license_number.strip():
            raise ValidationError("License number is required for riders")
        if not user.license_photo:
            raise ValidationError("License photo is required for riders")
    if user.role == "restaurant":
        if not user.restaurant_name or not user.cuisine:
            raise ValidationError("Restaurant name and cuisine are required")

def _discard_blob(key):
    if key:
        get_storage().delete(key)

async def create_user(user: UserCreate) -> dict:
    logger.info(f"User create request received for email: {user.email}")
    _validate_registration(user)
    users_collection = mongo_conn.users_collection
    if await users_collection.find_one({"email": user.email}):
        raise Conflict("Email already registered")
    if user.role == "restaurant" and await mongo_conn.restaurants_collection.find_one({"email": user.email}):
        raise Conflict("Restaurant already exists with this email")

    license_key = None
    if user.role == "rider":
        try:
            data, extension = decode_upload(user.license_photo)
        except ValueError as e:
            raise ValidationError(f"License photo: {e}")
        license_key = get_storage().save(data, prefix="license", extension=extension)

    now = datetime.utcnow()
    user_dict = {
        "name": user.name,
        "email": user.email,
        "password": hash_password(user.password),
        "phone": user.phone,
        "address": user.address,
        "role": user.role,
        "is_approved": default_approval(user.role),
        "is_active": True,
        "token_version": 0,
        "created_at": now,
        "updated_at": now,
    }
    if user.role == "rider":
        user_dict.update({
            "vehicle_type": user.vehicle_type,
            "license_number": user.license_number.strip(),
            "license_photo": license_key,
        })
    try:
        result = await users_collection.insert_one(user_dict)
    except PyMongoError as e:
        _discard_blob(license_key)
        if isinstance(e, DuplicateKeyError):
            raise Conflict("Email already registered")
        raise
    user_dict["_id"] = result.inserted_id
    logger.info(f"User inserted into database with id: {result.inserted_id}")

    try:
        if user.role == "restaurant":
            await mongo_conn.restaurants_collection.insert_one({
                "owner": result.inserted_id,
                "name": user.restaurant_name,
                "email": user.email,
                "phone": user.restaurant_phone or user.phone,
                "address": user.restaurant_address or user.address,
                "cuisine": user.cuisine,
                "description": user.description or "",
                "delivery_time": "20-30 min",
                "opening_hours": {"open": "08:00", "close": "22:00"},
                "image": "",
                "rating": 0,
                "review_count": 0,
                "is_active": True,
                "created_at": now,
                "updated_at": now,
            })
            logger.info("Restaurant created for owner", extra={"owner": str(result.inserted_id)})
        elif user.role == "rider":
            await create_rider_profile(result.inserted_id)
    except PyMongoError as e:
        # undo the user insert so the email can be registered again
        logger.warning(f"Registration of {user.email} failed after user insert, rolling back: {e}")
        await users_collection.delete_one({"_id": result.inserted_id})
        _discard_blob(license_key)
        if isinstance(e, DuplicateKeyError):
            raise Conflict("Restaurant already exists with this email")
        raise

    return serialize_user(user_dict)

async def authenticate(credentials: UserLogin) -> dict:
    logger.info(f"Login attempt for: {credentials.email}")
    db_user = await mongo_conn.users_collection.find_one({"email": credentials.email})
    if not db_user:
        logger.warning(f"Login failed: user not found {credentials.email}")
        raise Unauthorized("Invalid credentials")
    if not verify_password(credentials.password, db_user["password"]):
        logger.warning(f"Login failed: wrong password {credentials.email}")
        raise Unauthorized("Invalid credentials")
    if not db_user.get("is_active", True):
        raise Forbidden("Account disabled")
    if db_user.get("role") in APPROVAL_REQUIRED_ROLES and not db_user.get("is_approved", False):
        logger.info(f"Login blocked pending approval: {credentials.email}")
        raise PendingApproval()

    access_token = create_access_token({
        "userId": str(db_user["_id"]),
        "sub": db_user["email"],
        "role": db_user.get("role", "customer"),
        "token_version": int(db_user.get("token_version", 0)),
    })
    logger.info(f"Login successful: {credentials.email}")
    return {"access_token": access_token, "token_type": "bearer", "user": serialize_user(db_user)}

async def get_user(user_id: str) -> dict:
    user = await mongo_conn.users_collection.find_one({"_id": to_object_id(user_id, "user")}, {"password": 0})
    if not user:
        raise NotFound("User not found")
    return serialize_user(user)

async def list_users(role: Optional[str] = None, approved: Optional[bool] = None, page: int = 1, limit: int = 50):
    query = {}
    if role:
        query["role"] = role
    if approved is not None:
        query["is_approved"] = approved
    skip, limit = paginate(page, limit)
    cursor = mongo_conn.users_collection.find(query, {"password": 0}).sort("created_at", -1).skip(skip).limit(limit)
    users = await cursor.to_list(length=limit)
    return [serialize_user(u) for u in users]

async def approve_user(user_id: str, actor_email: str) -> dict:
    """
    Approve a restaurant or rider account. The owner's flag is the only
    approval fact: restaurant approval is read through the owner, so one
    write keeps both views consistent.
    """
    oid = to_object_id(user_id, "user")
    users_col = mongo_conn.users_collection
    before = await users_col.find_one({"_id": oid}, {"password": 0})
    if not before:
        raise NotFound("User not found")
    updated = await users_col.find_one_and_update(
        {"_id": oid},
        {"$set": {"is_approved": True, "updated_at": datetime.utcnow()}},
        projection={"password": 0},
        return_document=ReturnDocument.AFTER,
    )
    if updated is None:
        raise NotFound("User not found")
    await write_audit_log(actor_email, "approve_user", "user", user_id,
                          before={"is_approved": before.get("is_approved", False)},
                          after={"is_approved": True})
    logger.info(f"{actor_email} approved {before.get('role')} account {user_id}")
    return serialize_user(updated)

async def toggle_user_active(user_id: str, actor_email: str) -> dict:
    oid = to_object_id(user_id, "user")
    users_col = mongo_conn.users_collection
    user = await users_col.find_one({"_id": oid}, {"password": 0})
    if not user:
        raise NotFound("User not found")
    new_state = not user.get("is_active", True)
    # deactivation also revokes outstanding tokens
    updated = await users_col.find_one_and_update(
        {"_id": oid},
        {"$set": {"is_active": new_state, "updated_at": datetime.utcnow()}, "$inc": {"token_version": 1}},
        projection={"password": 0},
        return_document=ReturnDocument.AFTER,
    )
    await write_audit_log(actor_email, "toggle_user_active", "user", user_id,
                          before={"is_active": not new_state}, after={"is_active": new_state})
    logger.info(f"{actor_email} set is_active={new_state} for user {user_id}")
    return serialize_user(updated)

async def revoke_user_tokens(user_id: str, actor_email: str, reason: Optional[str] = None) -> dict:
    """
    Increment token_version to revoke tokens and create audit log.
    """
    oid = to_object_id(user_id, "user")
    users_col = mongo_conn.users_collection
    user = await users_col.find_one({"_id": oid}, {"password": 0})
    if not user:
        raise NotFound("User not found")
    result = await users_col.update_one({"_id": oid}, {"$inc": {"token_version": 1}})
    if result.matched_count == 0:
        raise NotFound("User not found during revoke")
    version = int(user.get("token_version", 0))
    await write_audit_log(actor_email, "revoke_tokens", "user", user_id,
                          before={"token_version": version}, after={"token_version": version + 1},
                          reason=reason)
    logger.info(f"{actor_email} revoked tokens for {user_id}")
    return {"user_id": user_id, "token_version": version + 1}

async def delete_user(user_id: str, actor_email: str) -> dict:
    """Delete a user together with everything that only exists through them."""
    oid = to_object_id(user_id, "user")
    user = await mongo_conn.users_collection.find_one({"_id": oid}, {"password": 0})
    if not user:
        raise NotFound("User not found")

    restaurant = await mongo_conn.restaurants_collection.find_one({"owner": oid})
    if restaurant:
        await mongo_conn.products_collection.delete_many({"restaurant": restaurant["_id"]})
        await mongo_conn.restaurants_collection.delete_one({"_id": restaurant["_id"]})
        logger.info("Cascade deleted restaurant", extra={"restaurant_id": str(restaurant["_id"])})
    await mongo_conn.riders_collection.delete_one({"_id": oid})
    await mongo_conn.carts_collection.delete_one({"_id": oid})
    if user.get("license_photo"):
        get_storage().delete(user["license_photo"])
    await mongo_conn.users_collection.delete_one({"_id": oid})

    await write_audit_log(actor_email, "delete_user", "user", user_id,
                          before={"email": user["email"], "role": user.get("role")})
    logger.info(f"{actor_email} deleted user {user_id}")
    return {"user_id": user_id, "restaurant_deleted": restaurant is not None}
