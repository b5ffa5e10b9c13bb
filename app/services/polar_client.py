"""
Polar API client.
Thin wrapper around Polar's REST API. Construct one explicitly and pass it to the
code that needs it; there is no process-wide instance.
"""
import logging
from typing import Any, Dict, List, Optional, Type, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from app.schemas.polar import (
    PolarCheckoutSession,
    PolarOrder,
    PolarPrice,
    PolarProduct,
    PolarSubscription,
)

logger = logging.getLogger(__name__)

DEFAULT_POLAR_API_URL = "https://api.polar.sh/v1"

ModelT = TypeVar("ModelT", bound=BaseModel)


class PolarAPIError(Exception):
    """Polar answered with a non-2xx status, or could not be reached (status_code is None)."""

    def __init__(self, message: str, status_code: Optional[int] = None, body: Optional[str] = None):
        self.status_code = status_code
        self.body = body
        super().__init__(message)


class PolarClient:
    def __init__(
        self,
        access_token: str,
        organization_id: str,
        base_url: str = DEFAULT_POLAR_API_URL,
        timeout: float = 30.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        if not access_token:
            raise ValueError("Polar access token is required")
        if not organization_id:
            raise ValueError("Polar organization id is required")
        self.organization_id = organization_id
        self._http = httpx.Client(
            base_url=base_url.rstrip("/"),
            headers={
                "Authorization": f"Bearer {access_token}",
                "Content-Type": "application/json",
            },
            timeout=timeout,
            transport=transport,
        )

    def close(self) -> None:
        self._http.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()

    def _request(
        self,
        method: str,
        endpoint: str,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Dict[str, Any]] = None,
    ) -> Any:
        """Make an authenticated request to the Polar API and return the decoded JSON body"""
        try:
            response = self._http.request(method, endpoint, params=params, json=json)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.error(
                f"[POLAR] {method} {endpoint} failed: {e.response.status_code} {e.response.text}"
            )
            raise PolarAPIError(
                f"Polar API error: {e.response.status_code}",
                status_code=e.response.status_code,
                body=e.response.text,
            ) from e
        except httpx.RequestError as e:
            logger.error(f"[POLAR] {method} {endpoint} request error: {str(e)}")
            raise PolarAPIError(f"Failed to connect to Polar API: {str(e)}") from e

        if not response.content:
            return None
        return response.json()

    def _parse(self, model: Type[ModelT], body: Any, endpoint: str) -> ModelT:
        """Validate a response body; a shape we do not understand is an upstream failure"""
        try:
            return model.model_validate(body)
        except ValidationError as e:
            logger.error(f"[POLAR] Unexpected {model.__name__} from {endpoint}: {str(e)} body={body!r}")
            raise PolarAPIError(f"Unexpected Polar response from {endpoint}", body=repr(body)) from e

    def _list(self, endpoint: str, params: Optional[Dict[str, Any]] = None) -> List[dict]:
        """List endpoints wrap results in an {items, pagination} envelope"""
        body = self._request("GET", endpoint, params=params) or {}
        return body.get("items", [])

    # Products

    def get_products(self) -> List[PolarProduct]:
        endpoint = f"/organizations/{self.organization_id}/products"
        return [self._parse(PolarProduct, item, endpoint) for item in self._list(endpoint)]

    def get_product(self, product_id: str) -> PolarProduct:
        endpoint = f"/products/{product_id}"
        return self._parse(PolarProduct, self._request("GET", endpoint), endpoint)

    def get_prices_for_product(self, product_id: str) -> List[PolarPrice]:
        endpoint = f"/products/{product_id}/prices"
        return [self._parse(PolarPrice, item, endpoint) for item in self._list(endpoint)]

    # Checkouts

    def create_checkout_session(
        self,
        product_id: str,
        price_id: str,
        success_url: str,
        customer_email: Optional[str] = None,
        cancel_url: Optional[str] = None,
        metadata: Optional[Dict[str, str]] = None,
    ) -> PolarCheckoutSession:
        payload = {
            "product_id": product_id,
            "price_id": price_id,
            "customer_email": customer_email,
            "success_url": success_url,
            "cancel_url": cancel_url,
            "metadata": metadata,
        }
        body = self._request("POST", "/checkouts", json={k: v for k, v in payload.items() if v is not None})
        return self._parse(PolarCheckoutSession, body, "/checkouts")

    def get_checkout(self, checkout_id: str) -> PolarCheckoutSession:
        endpoint = f"/checkouts/{checkout_id}"
        return self._parse(PolarCheckoutSession, self._request("GET", endpoint), endpoint)

    # Subscriptions

    def get_subscription(self, subscription_id: str) -> PolarSubscription:
        endpoint = f"/subscriptions/{subscription_id}"
        return self._parse(PolarSubscription, self._request("GET", endpoint), endpoint)

    def cancel_subscription(self, subscription_id: str) -> PolarSubscription:
        endpoint = f"/subscriptions/{subscription_id}"
        return self._parse(PolarSubscription, self._request("DELETE", endpoint), endpoint)

    def update_subscription(
        self,
        subscription_id: str,
        price_id: Optional[str] = None,
        metadata: Optional[Dict[str, str]] = None,
    ) -> PolarSubscription:
        payload = {"price_id": price_id, "metadata": metadata}
        endpoint = f"/subscriptions/{subscription_id}"
        body = self._request("PATCH", endpoint, json={k: v for k, v in payload.items() if v is not None})
        return self._parse(PolarSubscription, body, endpoint)

    def get_customer_subscriptions(self, customer_email: str) -> List[PolarSubscription]:
        items = self._list("/subscriptions", params={"customer_email": customer_email})
        return [self._parse(PolarSubscription, item, "/subscriptions") for item in items]

    # Orders

    def list_orders(self, customer_id: Optional[str] = None, limit: Optional[int] = None) -> List[PolarOrder]:
        params = {}
        if customer_id:
            params["customer_id"] = customer_id
        if limit:
            params["limit"] = limit
        items = self._list("/orders", params=params or None)
        return [self._parse(PolarOrder, item, "/orders") for item in items]

    def get_order(self, order_id: str) -> PolarOrder:
        endpoint = f"/orders/{order_id}"
        return self._parse(PolarOrder, self._request("GET", endpoint), endpoint)
