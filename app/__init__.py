# =============================================================================
# app/ - Storefront Server Package
# =============================================================================
# This package contains the storefront web server:
# - main.py: App factory, lifespan, entry point
# - config.py: Environment variable loading and settings
# - exceptions.py: Error taxonomy shared by the pipeline and handlers
# - dependencies.py: Dependencies for route group handlers
# - pipeline/: The ordered request stages (headers, limits, body, routing)
# - routers/: The five API route groups
#
# Business logic lives behind the route groups; this layer only handles
# HTTP concerns.
# =============================================================================
