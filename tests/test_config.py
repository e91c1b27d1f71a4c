"""Tests for waypoint.config — RouterConfig frozen dataclass."""

import pytest

from waypoint.config import RouterConfig
from waypoint.errors import MatcherNotFound
from waypoint.history.memory import MemoryHistory
from waypoint.router import Router
from waypoint.routing.route import Route


class TestRouterConfig:
    def test_defaults(self) -> None:
        cfg = RouterConfig()

        assert cfg.sensitive is False
        assert cfg.strict is False
        assert cfg.end is True
        assert cfg.warn_absolute_params is True

    def test_override(self) -> None:
        cfg = RouterConfig(sensitive=True, strict=True)

        assert cfg.sensitive is True
        assert cfg.strict is True
        assert cfg.end is True

    def test_frozen(self) -> None:
        cfg = RouterConfig()

        with pytest.raises(AttributeError):
            cfg.strict = True  # type: ignore[misc]


class TestConfigOnRouter:
    def test_default_config(self) -> None:
        router = Router(MemoryHistory())
        assert router.config == RouterConfig()

    def test_sensitive_applies_to_routes(self) -> None:
        router = Router(MemoryHistory(), [Route("/About", name="about")], RouterConfig(sensitive=True))
        assert router.resolve("/About").name == "about"
        with pytest.raises(MatcherNotFound):
            router.resolve("/about")

    def test_route_overrides_config(self) -> None:
        router = Router(
            MemoryHistory(),
            [Route("/About", name="about", sensitive=False)],
            RouterConfig(sensitive=True),
        )
        assert router.resolve("/about").name == "about"
