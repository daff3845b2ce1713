# client/api_client.py
import json
from pathlib import Path
from typing import Any, Optional
import httpx
from pydantic import BaseModel
from utils.logger import get_logger

logger = get_logger("Api_Client")


class ApiError(Exception):
    """Failure envelope returned by the API, carrying its error code."""

    def __init__(self, status_code: int, code: str, message: str, details: Any = None):
        super().__init__(message)
        self.status_code = status_code
        self.code = code
        self.message = message
        self.details = details

class UnauthorizedError(ApiError):
    pass

class InvalidCredentialsError(UnauthorizedError):
    pass

class PendingApprovalError(ApiError):
    pass

class ForbiddenError(ApiError):
    pass

class NotFoundError(ApiError):
    pass

class ConflictError(ApiError):
    pass

class InvalidCartError(ConflictError):
    pass

class InvalidTransitionError(ConflictError):
    pass

class RequestValidationFailed(ApiError):
    pass

class ServiceUnavailableError(ApiError):
    pass

ERRORS_BY_CODE = {
    "unauthorized": UnauthorizedError,
    "pending_approval": PendingApprovalError,
    "forbidden": ForbiddenError,
    "not_found": NotFoundError,
    "conflict": ConflictError,
    "invalid_cart": InvalidCartError,
    "invalid_transition": InvalidTransitionError,
    "validation_error": RequestValidationFailed,
    "service_unavailable": ServiceUnavailableError,
}


class Session(BaseModel):
    """Token and user of the signed-in account, persisted as JSON."""
    token: Optional[str] = None
    user: Optional[dict] = None

    @property
    def is_authenticated(self) -> bool:
        return bool(self.token)

    @classmethod
    def hydrate(cls, path) -> "Session":
        path = Path(path)
        if not path.exists():
            return cls()
        try:
            return cls.model_validate(json.loads(path.read_text()))
        except (ValueError, OSError) as e:
            # a corrupt session file means signed out
            logger.warning(f"Ignoring unreadable session file {path}: {e}")
            return cls()

    def save(self, path):
        Path(path).write_text(self.model_dump_json())

    def clear(self):
        self.token = None
        self.user = None


class FoodDeliveryClient:
    def __init__(self, base_url: str, session: Optional[Session] = None,
                 transport: Optional[httpx.BaseTransport] = None, timeout: float = 15.0):
        self.session = session or Session()
        self._http = httpx.Client(base_url=base_url, transport=transport, timeout=timeout)

    def close(self):
        self._http.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()

    def _request(self, method: str, path: str, **kwargs) -> Any:
        headers = kwargs.pop("headers", {})
        if self.session.token:
            headers["Authorization"] = f"Bearer {self.session.token}"
        response = self._http.request(method, path, headers=headers, **kwargs)
        try:
            body = response.json()
        except ValueError:
            raise ApiError(response.status_code, "invalid_response", response.text or "Empty response")
        if response.is_success and body.get("success", True):
            return body.get("data")
        error = body.get("error") or {}
        code = error.get("code", "http_error")
        error_class = ERRORS_BY_CODE.get(code, ApiError)
        logger.debug(f"{method} {path} failed with {code}")
        raise error_class(response.status_code, code, error.get("message", ""), error.get("details"))

    # auth
    def register(self, **payload) -> dict:
        return self._request("POST", "/auth/register", json=payload)

    def login(self, email: str, password: str) -> dict:
        try:
            data = self._request("POST", "/auth/login", json={"email": email, "password": password})
        except UnauthorizedError as e:
            raise InvalidCredentialsError(e.status_code, e.code, e.message, e.details)
        self.session.token = data["access_token"]
        self.session.user = data["user"]
        return data["user"]

    def logout(self):
        self.session.clear()

    def me(self) -> dict:
        return self._request("GET", "/auth/me")

    # catalog
    def list_restaurants(self) -> list:
        return self._request("GET", "/restaurants")

    def get_restaurant(self, restaurant_id: str) -> dict:
        return self._request("GET", f"/restaurants/{restaurant_id}")

    def list_products(self, restaurant_id: str) -> list:
        return self._request("GET", f"/products/restaurant/{restaurant_id}")

    def create_product(self, **payload) -> dict:
        return self._request("POST", "/products", json=payload)

    # cart
    def get_cart(self) -> dict:
        return self._request("GET", "/cart")

    def add_to_cart(self, product_id: str, quantity: int = 1) -> dict:
        return self._request("POST", "/cart/add", json={"product_id": product_id, "quantity": quantity})

    def clear_cart(self) -> dict:
        return self._request("DELETE", "/cart/clear")

    def checkout(self, delivery_address: str, payment_method: str = "cash", special_instructions: str = "") -> dict:
        return self._request("POST", "/cart/checkout", json={
            "delivery_address": delivery_address,
            "payment_method": payment_method,
            "special_instructions": special_instructions,
        })

    # orders
    def my_orders(self, status: Optional[str] = None, page: int = 1) -> dict:
        params = {"page": page}
        if status:
            params["status"] = status
        return self._request("GET", "/orders/user", params=params)

    def get_order(self, order_id: str) -> dict:
        return self._request("GET", f"/orders/{order_id}")

    def update_order_status(self, order_id: str, status: str, reason: Optional[str] = None) -> dict:
        return self._request("PATCH", f"/orders/{order_id}/status", json={"status": status, "reason": reason})

    def cancel_order(self, order_id: str, reason: Optional[str] = None) -> dict:
        return self._request("PUT", f"/orders/{order_id}/cancel", json={"reason": reason})

    # admin
    def dashboard_stats(self) -> dict:
        return self._request("GET", "/admin/dashboard/stats")

    def analytics(self) -> dict:
        return self._request("GET", "/admin/analytics")

    def approve_user(self, user_id: str) -> dict:
        return self._request("PUT", f"/auth/users/{user_id}/approve")
