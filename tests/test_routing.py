# =============================================================================
# tests/test_routing.py - Dispatcher & Static Asset Tests
# =============================================================================
# Tests for how a request finds the one thing that serves it:
# - Static files from the public directory (and traversal rejection)
# - API route group delegation by prefix
# - The seven HTML pages
# - The fallback: API 404 vs the root document
#
# Run with: pytest tests/test_routing.py -v
# =============================================================================

from pathlib import Path

from starlette.datastructures import Headers

from app.pipeline.context import InboundRequest
from app.pipeline.dispatcher import ApiRoute, PageRoute, build_route_table
from app.pipeline.static import StaticAssetServer
from app.routers import API_GROUP_PREFIXES, default_route_groups


def inbound(method: str, path: str) -> InboundRequest:
    return InboundRequest(
        method=method,
        path=path,
        query_string=b"",
        headers=Headers(),
        client_host="127.0.0.1",
    )


# =============================================================================
# Static Asset Server
# =============================================================================

class TestStaticAssetResolve:
    """Tests for StaticAssetServer.resolve()."""

    def test_resolves_nested_file(self, public_dir):
        server = StaticAssetServer(public_dir)

        assert server.resolve("/css/site.css") == (public_dir / "css" / "site.css").resolve()

    def test_directory_serves_index(self, public_dir):
        server = StaticAssetServer(public_dir)

        assert server.resolve("/docs/") == (public_dir / "docs" / "index.html").resolve()
        assert server.resolve("/") == (public_dir / "index.html").resolve()

    def test_traversal_is_not_found(self, public_dir):
        """Test that paths escaping the root are treated as misses."""
        server = StaticAssetServer(public_dir)

        assert server.resolve("/../secret.txt") is None
        assert server.resolve("/css/../../secret.txt") is None

    def test_null_byte_is_not_found(self, public_dir):
        server = StaticAssetServer(public_dir)

        assert server.resolve("/index.html\x00.png") is None

    def test_hidden_files_are_ignored(self, public_dir):
        server = StaticAssetServer(public_dir)

        assert server.resolve("/.env") is None

    def test_missing_file_is_not_found(self, public_dir):
        server = StaticAssetServer(public_dir)

        assert server.resolve("/img/logo.png") is None

    def test_symlink_out_of_root_is_not_found(self, public_dir):
        """Test that a link pointing outside the root is not followed."""
        link = public_dir / "leak.txt"
        link.symlink_to(Path(public_dir).parent / "secret.txt")
        server = StaticAssetServer(public_dir)

        assert server.resolve("/leak.txt") is None


class TestStaticAssetServing:
    """Tests for static assets through the full application."""

    def test_serves_stylesheet(self, client):
        response = client.get("/css/site.css")

        assert response.status_code == 200
        assert response.text == "body { color: #333; }"
        assert response.headers["content-type"].startswith("text/css")
        assert response.headers["cache-control"] == "public, max-age=0"

    def test_serves_script(self, client):
        response = client.get("/js/app.js")

        assert response.status_code == 200
        assert "storefront" in response.text

    def test_hidden_file_falls_back_to_root_document(self, client):
        """Test that a dotfile is never served; the SPA document is."""
        response = client.get("/.env")

        assert response.status_code == 200
        assert "SECRET" not in response.text
        assert response.text == "<h1>Storefront</h1>"

    def test_post_skips_static_files(self, client):
        """Test that only GET/HEAD are served from disk."""
        response = client.post("/css/site.css")

        assert response.status_code == 404
        assert response.json() == {"error": "Not found"}


# =============================================================================
# Route Table
# =============================================================================

class TestRouteTable:
    """Tests for build_route_table() and route matching."""

    def test_api_routes_come_first(self):
        table = build_route_table(default_route_groups().values())

        api = [route for route in table if isinstance(route, ApiRoute)]
        pages = [route for route in table if isinstance(route, PageRoute)]

        assert table[: len(api)] == tuple(api)
        assert [route.group.prefix for route in api] == list(API_GROUP_PREFIXES.values())
        assert [route.path for route in pages] == [
            "/", "/admin", "/login", "/register", "/profile", "/cart", "/orders",
        ]

    def test_api_prefix_matching(self):
        route = ApiRoute(default_route_groups()["orders"])

        assert route.matches(inbound("GET", "/api/orders"))
        assert route.matches(inbound("POST", "/api/orders/42"))
        assert not route.matches(inbound("GET", "/api/ordersx"))
        assert not route.matches(inbound("GET", "/orders"))

    def test_page_matching(self):
        route = PageRoute("/admin", "admin.html")

        assert route.matches(inbound("GET", "/admin"))
        assert route.matches(inbound("HEAD", "/admin/"))
        assert not route.matches(inbound("POST", "/admin"))
        assert not route.matches(inbound("GET", "/admin/users"))

    def test_orders_page_and_api_do_not_collide(self):
        """Test that /orders is a page and /api/orders is a group."""
        table = build_route_table(default_route_groups().values())

        page_hits = [r for r in table if r.matches(inbound("GET", "/orders"))]
        api_hits = [r for r in table if r.matches(inbound("GET", "/api/orders"))]

        assert len(page_hits) == 1 and isinstance(page_hits[0], PageRoute)
        assert len(api_hits) == 1 and isinstance(api_hits[0], ApiRoute)


# =============================================================================
# Dispatcher
# =============================================================================

class TestPages:
    """Tests for the HTML page routes."""

    def test_every_page(self, client):
        expected = {
            "/": "<h1>Storefront</h1>",
            "/admin": "<h1>Admin Portal</h1>",
            "/login": "<h1>Login</h1>",
            "/register": "<h1>Register</h1>",
            "/profile": "<h1>Profile</h1>",
            "/cart": "<h1>Cart</h1>",
            "/orders": "<h1>Orders</h1>",
        }
        for path, body in expected.items():
            response = client.get(path)
            assert response.status_code == 200, path
            assert response.text == body, path
            assert response.headers["content-type"].startswith("text/html")

    def test_trailing_slash(self, client):
        response = client.get("/cart/")

        assert response.status_code == 200
        assert response.text == "<h1>Cart</h1>"

    def test_head_request(self, client):
        response = client.head("/login")

        assert response.status_code == 200
        assert response.content == b""

    def test_missing_page_document_is_server_error(self, client, public_dir):
        """Test that a configured page without its file yields a 500."""
        (public_dir / "profile.html").unlink()

        response = client.get("/profile")

        assert response.status_code == 500
        assert "error" in response.json()


class TestApiDelegation:
    """Tests for delegation to the API route groups."""

    def test_group_handler_serves_request(self, client, handler_calls):
        response = client.get("/api/products/")

        assert response.status_code == 200
        assert response.json() == {"products": []}
        assert handler_calls == ["list_products"]

    def test_handler_receives_app_settings(self, production_client):
        response = production_client.get("/api/settings/mode")

        assert response.json() == {"production": True}

    def test_unknown_path_inside_group(self, client):
        """Test that a miss inside a mounted group is the API 404."""
        response = client.get("/api/products/does-not-exist")

        assert response.status_code == 404
        assert response.json() == {"error": "API endpoint not found"}

    def test_wrong_method_inside_group(self, client):
        response = client.delete("/api/products/")

        assert response.status_code == 405
        assert response.json() == {"error": "Method Not Allowed"}
        assert "GET" in response.headers["allow"]


class TestFallback:
    """Tests for requests no route matches."""

    def test_unknown_api_path(self, client):
        response = client.get("/api/unknown")

        assert response.status_code == 404
        assert response.content == b'{"error":"API endpoint not found"}'

    def test_unknown_api_path_any_method(self, client):
        response = client.post("/api/unknown", json={"a": 1})

        assert response.status_code == 404
        assert response.json() == {"error": "API endpoint not found"}

    def test_bare_api_path_serves_root_document(self, client):
        """Test that /api itself is rate limited but falls back like a page."""
        response = client.get("/api")

        assert response.status_code == 200
        assert response.text == "<h1>Storefront</h1>"
        assert "x-ratelimit-limit" in response.headers

    def test_unknown_page_serves_root_document(self, client):
        """Test client-side routing: unknown non-API paths get index.html."""
        response = client.get("/unknown")

        assert response.status_code == 200
        assert response.text == "<h1>Storefront</h1>"

    def test_deep_unknown_page(self, client):
        response = client.get("/products/42/reviews")

        assert response.status_code == 200
        assert response.text == "<h1>Storefront</h1>"

    def test_unknown_page_with_other_method(self, client):
        response = client.put("/unknown")

        assert response.status_code == 404
        assert response.json() == {"error": "Not found"}
