# =============================================================================
# tests/ - Test Suite
# =============================================================================
# This package contains all tests for the storefront server:
# - test_config.py: Settings defaults and environment loading
# - test_policies.py: Security headers and CORS
# - test_rate_limit.py: Fixed window limiter and its pipeline stage
# - test_body.py: JSON / form body decoding
# - test_routing.py: Static assets, route groups, pages, fallback
# - test_errors.py: Error normalization and the app lifespan
#
# Run tests with: pytest
# =============================================================================
