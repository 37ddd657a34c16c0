# =============================================================================
# tests/test_routing.py - Route Injection Tests
# =============================================================================
# Discovery order, handler resolution, handler lists and startup failures.
# =============================================================================

import pytest
from fastapi import APIRouter

from portico import ConfigurationError, RouteConfigurationError, create_app
from portico.routing import HTTP_METHODS, RouteInjector


# =============================================================================
# Discovery
# =============================================================================

class TestRouteDiscovery:
    """Test scanning directories for route modules."""

    def test_modules_injected_in_name_order(self, site):
        """Test that files register sorted by name, paths in declaration order."""
        injector = RouteInjector(APIRouter())

        records = injector.inject(site / "routes")

        sources = [record.source.rsplit("/", 1)[-1] for record in records]
        assert sources == sorted(sources)
        users = [(r.method, r.path) for r in records if r.source.endswith("users.py")]
        assert users == [
            ("GET", "/users"),
            ("POST", "/users"),
            ("GET", "/users/{user_id}"),
            ("POST", "/login"),
            ("GET", "/me"),
        ]

    def test_underscore_modules_skipped(self, site):
        """Test that _helpers are not scanned."""
        injector = RouteInjector(APIRouter())

        records = injector.inject(site / "routes")

        assert "/never" not in {record.path for record in records}

    def test_single_file(self, site):
        """Test that a single module path can be injected."""
        injector = RouteInjector(APIRouter())

        records = injector.inject(site / "routes" / "users.py")

        assert {record.source for record in records} == {str(site / "routes" / "users.py")}

    def test_string_handler_resolves_to_export(self, site):
        """Test that a handler name maps to the module's function."""
        router = APIRouter()
        RouteInjector(router).inject(site / "routes" / "users.py")

        route = next(r for r in router.routes if r.path == "/users" and "GET" in r.methods)
        assert route.endpoint.__name__ == "list_users"

    def test_all_verb_expands(self, site):
        """Test that `all` registers every method."""
        injector = RouteInjector(APIRouter())

        injector.inject(site / "routes" / "misc.py")

        echo = sorted(r.method for r in injector.records if r.path == "/echo")
        assert echo == sorted(HTTP_METHODS)

    def test_handler_list_becomes_dependencies(self, site):
        """Test that leading list entries run as dependencies."""
        router = APIRouter()
        RouteInjector(router).inject(site / "routes" / "users.py")

        route = next(r for r in router.routes if r.path == "/me")
        assert route.endpoint.__name__ == "me"
        assert len(route.dependencies) == 1

    def test_directories_in_declared_order(self, make_settings, site, bad_routes):
        """Test that directories are injected in the order configured."""
        settings = make_settings(routes=[str(bad_routes / "duplicate" / "a_first.py"), "routes"])

        app = create_app(settings)

        assert app.state.routes[0].path == "/same"


# =============================================================================
# Startup Failures
# =============================================================================

class TestRouteFailures:
    """Test that bad declarations stop the app from being built."""

    def test_missing_handler(self, bad_routes):
        """Test that an undeclared handler name fails at injection."""
        with pytest.raises(RouteConfigurationError) as exc_info:
            RouteInjector(APIRouter()).inject(bad_routes / "missing_handler")

        assert "handler_that_does_not_exist" in exc_info.value.message
        assert exc_info.value.suggestion

    def test_missing_handler_fails_app_startup(self, make_settings, bad_routes):
        """Test that create_app surfaces the error."""
        settings = make_settings(routes=[str(bad_routes / "missing_handler")])

        with pytest.raises(RouteConfigurationError):
            create_app(settings)

    def test_duplicate_path_and_method(self, bad_routes):
        """Test that the same path + method from two modules is rejected."""
        with pytest.raises(RouteConfigurationError) as exc_info:
            RouteInjector(APIRouter()).inject(bad_routes / "duplicate")

        assert "a_first.py" in exc_info.value.message
        assert "b_second.py" in exc_info.value.message

    def test_duplicate_across_directories(self, bad_routes):
        """Test that duplicates are caught between separate inject calls."""
        injector = RouteInjector(APIRouter())
        injector.inject(bad_routes / "duplicate" / "a_first.py")

        with pytest.raises(RouteConfigurationError):
            injector.inject(bad_routes / "duplicate" / "b_second.py")

    def test_unknown_verb(self, bad_routes):
        """Test that an unknown verb is rejected."""
        with pytest.raises(RouteConfigurationError) as exc_info:
            RouteInjector(APIRouter()).inject(bad_routes / "bad_verb")

        assert "fetch" in exc_info.value.message

    def test_non_callable_handler(self, bad_routes):
        """Test that a name pointing at a non-callable is rejected."""
        with pytest.raises(RouteConfigurationError):
            RouteInjector(APIRouter()).inject(bad_routes / "not_callable")

    def test_missing_directory(self, tmp_path):
        """Test that a missing route directory is a configuration error."""
        with pytest.raises(ConfigurationError):
            RouteInjector(APIRouter()).inject(tmp_path / "nope")

    def test_path_without_leading_slash(self, bad_routes):
        """Test that a relative route path is rejected with a suggestion."""
        with pytest.raises(RouteConfigurationError) as exc_info:
            RouteInjector(APIRouter()).inject(bad_routes / "no_slash")

        assert "'users'" in exc_info.value.message
        assert exc_info.value.suggestion == "Declare it as '/users'"
