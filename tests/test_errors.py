"""Tests for waypoint.errors — exception hierarchy and navigation failures."""

import pytest

from waypoint.errors import (
    ConfigurationError,
    ErrorTypes,
    InvalidRedirectError,
    MatcherNotFound,
    NavigationFailure,
    ParamError,
    WaypointError,
    is_navigation_failure,
)
from waypoint.location import RouteLocation

A = RouteLocation(path="/a", full_path="/a")
B = RouteLocation(path="/b", full_path="/b")


class TestHierarchy:
    def test_configuration_error_is_waypoint_error(self) -> None:
        assert issubclass(ConfigurationError, WaypointError)

    def test_invalid_redirect_is_configuration_error(self) -> None:
        assert issubclass(InvalidRedirectError, ConfigurationError)

    def test_param_error_is_value_error(self) -> None:
        assert issubclass(ParamError, WaypointError)
        assert issubclass(ParamError, ValueError)

    def test_matcher_not_found_is_waypoint_error(self) -> None:
        assert issubclass(MatcherNotFound, WaypointError)


class TestMatcherNotFound:
    def test_type(self) -> None:
        assert MatcherNotFound({"path": "/x"}).type is ErrorTypes.MATCHER_NOT_FOUND

    def test_str(self) -> None:
        assert str(MatcherNotFound({"path": "/x"})) == "No match for {'path': '/x'}"

    def test_frozen(self) -> None:
        err = MatcherNotFound({"path": "/x"})
        with pytest.raises(AttributeError):
            err.location = {}  # type: ignore[misc]


class TestInvalidRedirectError:
    def test_message(self) -> None:
        err = InvalidRedirectError({"query": {}}, "/old")
        assert err.target == {"query": {}}
        assert err.from_path == "/old"
        assert "must contain a name or path" in str(err)


class TestNavigationFailure:
    def test_aborted_message(self) -> None:
        failure = NavigationFailure(ErrorTypes.NAVIGATION_ABORTED, to=B, from_=A)
        assert str(failure) == "Navigation aborted from '/a' to '/b' via a navigation guard."

    def test_cancelled_message(self) -> None:
        failure = NavigationFailure(ErrorTypes.NAVIGATION_CANCELLED, to=B, from_=A)
        assert "cancelled" in str(failure)

    def test_duplicated_message(self) -> None:
        failure = NavigationFailure(ErrorTypes.NAVIGATION_DUPLICATED, to=A, from_=A)
        assert str(failure) == "Avoided redundant navigation to current location: '/a'."

    def test_redirect_message(self) -> None:
        failure = NavigationFailure(
            ErrorTypes.NAVIGATION_GUARD_REDIRECT, to=B, from_=A, redirect_to="/login"
        )
        assert "'/login'" in str(failure)


class TestIsNavigationFailure:
    def test_any_failure(self) -> None:
        failure = NavigationFailure(ErrorTypes.NAVIGATION_ABORTED, to=B, from_=A)
        assert is_navigation_failure(failure)

    def test_matching_type(self) -> None:
        failure = NavigationFailure(ErrorTypes.NAVIGATION_ABORTED, to=B, from_=A)
        assert is_navigation_failure(failure, ErrorTypes.NAVIGATION_ABORTED)
        assert not is_navigation_failure(failure, ErrorTypes.NAVIGATION_CANCELLED)

    def test_combined_flags(self) -> None:
        failure = NavigationFailure(ErrorTypes.NAVIGATION_CANCELLED, to=B, from_=A)
        types = ErrorTypes.NAVIGATION_ABORTED | ErrorTypes.NAVIGATION_CANCELLED
        assert is_navigation_failure(failure, types)

    def test_not_a_failure(self) -> None:
        assert not is_navigation_failure(None)
        assert not is_navigation_failure(ValueError("x"))
        assert not is_navigation_failure(MatcherNotFound({"path": "/x"}))
