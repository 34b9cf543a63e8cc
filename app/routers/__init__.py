# =============================================================================
# app/routers/ - API Route Groups
# =============================================================================
# The five API route groups the storefront exposes:
# - /api/auth: sign-in, sign-up, sessions
# - /api/products: catalogue
# - /api/orders: order placement and history
# - /api/customers: customer records
# - /api/settings: store settings
#
# The handlers behind each prefix are supplied by the deployment. A group
# is just a prefix plus a FastAPI APIRouter; main.py mounts every group on
# the API application and the dispatcher delegates to it by prefix.
#
# Usage:
#   groups = default_route_groups()
#
#   @groups["products"].router.get("/")
#   async def list_products():
#       return {"products": []}
# =============================================================================

from dataclasses import dataclass, field

from fastapi import APIRouter

API_GROUP_PREFIXES: dict[str, str] = {
    "auth": "/api/auth",
    "products": "/api/products",
    "orders": "/api/orders",
    "customers": "/api/customers",
    "settings": "/api/settings",
}


@dataclass(frozen=True)
class RouteGroup:
    """A URL prefix and the router whose handlers serve it."""
    name: str
    prefix: str
    router: APIRouter = field(default_factory=APIRouter, compare=False)

    def matches(self, path: str) -> bool:
        """
        True when `path` is the prefix itself or lies below it.

        Example: "/api/orders" and "/api/orders/7" match, "/api/ordersx" does not.
        """
        return path == self.prefix or path.startswith(self.prefix + "/")


def default_route_groups() -> dict[str, RouteGroup]:
    """
    Build one empty group per API prefix.

    Returns a fresh set on every call so each application gets its own
    routers.
    """
    return {
        name: RouteGroup(name=name, prefix=prefix, router=APIRouter(tags=[name.capitalize()]))
        for name, prefix in API_GROUP_PREFIXES.items()
    }


__all__ = [
    "API_GROUP_PREFIXES",
    "RouteGroup",
    "default_route_groups",
]
