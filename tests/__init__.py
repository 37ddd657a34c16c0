# =============================================================================
# tests/ - Test Suite
# =============================================================================
# - test_config.py: load_config sources, merging and environment fallback
# - test_routing.py: route module discovery and startup failures
# - test_server.py: the request pipeline end to end
# - test_tokens.py: token helpers and the optional-auth dependency
# - test_upload.py: upload storage and completion handlers
# - test_cli.py: python -m portico
#
# Run tests with: pytest
# =============================================================================
