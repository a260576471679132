"""Tests for the middleware pipeline and the alias registry."""

import pytest

from switchyard.errors import ConfigurationError, InvalidMiddlewareContract
from switchyard.http.response import Response
from switchyard.middleware.builtin import CORSMiddleware
from switchyard.middleware.pipeline import build_pipeline
from switchyard.middleware.registry import DEFAULT_ALIASES, MiddlewareRegistry
from switchyard.middleware.throttle import ThrottleMiddleware, default_throttle


class Recorder:
    """Middleware that records entry and exit in a shared log."""

    def __init__(self, name: str, log: list[str]) -> None:
        self.name = name
        self.log = log

    async def handle(self, request, response, next):
        self.log.append(f"{self.name}:before")
        outcome = await next(request, response)
        self.log.append(f"{self.name}:after")
        return outcome


class SyncPassThrough:
    def handle(self, request, response, next):
        return next(request, response.with_header("X-Sync", "1"))


class Blocker:
    def handle(self, request, response, next):
        return response.with_status(403).with_body("blocked")


class NoHandle:
    pass


class TestBuildPipeline:
    async def test_onion_order(self) -> None:
        log: list[str] = []

        async def terminal(request, response):
            log.append("handler")
            return response

        chain = build_pipeline([Recorder("a", log), Recorder("b", log), Recorder("c", log)], terminal)
        await chain(None, Response())
        assert log == [
            "a:before",
            "b:before",
            "c:before",
            "handler",
            "c:after",
            "b:after",
            "a:after",
        ]

    async def test_empty_chain_is_terminal(self) -> None:
        async def terminal(request, response):
            return "done"

        assert await build_pipeline([], terminal)(None, Response()) == "done"

    async def test_short_circuit(self) -> None:
        log: list[str] = []

        async def terminal(request, response):
            log.append("handler")
            return response

        chain = build_pipeline([Recorder("a", log), Blocker(), Recorder("c", log)], terminal)
        result = await chain(None, Response())
        assert result.status == 403
        assert log == ["a:before", "a:after"]

    async def test_sync_middleware_passes_modified_response(self) -> None:
        async def terminal(request, response):
            return response

        result = await build_pipeline([SyncPassThrough()], terminal)(None, Response())
        assert result.header("X-Sync") == "1"

    async def test_normalize_applies_to_every_layer(self) -> None:
        seen: list[object] = []

        async def normalize(outcome, request, response):
            seen.append(outcome)
            return response.with_body(str(outcome)) if isinstance(outcome, str) else outcome

        async def terminal(request, response):
            return "hello"

        log: list[str] = []
        result = await build_pipeline([Recorder("a", log)], terminal, normalize=normalize)(None, Response())
        assert result.text == "hello"
        assert seen[0] == "hello"
        assert isinstance(seen[1], Response)


class TestRegistryResolution:
    def test_default_aliases_present(self) -> None:
        registry = MiddlewareRegistry()
        for name in ("auth", "guest", "jwt", "cors", "throttle"):
            assert name in registry.aliases
        assert registry.aliases["cors"] == DEFAULT_ALIASES["cors"]

    def test_builtin_aliases_import(self) -> None:
        registry = MiddlewareRegistry()
        assert registry.resolve("cors") is CORSMiddleware
        assert registry.resolve("throttle") is default_throttle

    def test_custom_alias_overrides(self) -> None:
        registry = MiddlewareRegistry({"cors": Blocker})
        assert registry.resolve("cors") is Blocker

    def test_alias_replaces_cached_resolution(self) -> None:
        registry = MiddlewareRegistry({"x": Blocker})
        assert registry.resolve("x") is Blocker
        registry.alias("x", SyncPassThrough)
        assert registry.resolve("x") is SyncPassThrough

    def test_import_string_identifier(self) -> None:
        registry = MiddlewareRegistry()
        assert registry.resolve("switchyard.middleware.throttle:ThrottleMiddleware") is ThrottleMiddleware

    def test_objects_pass_through(self) -> None:
        blocker = Blocker()
        assert MiddlewareRegistry().resolve(blocker) is blocker

    def test_unknown_alias(self) -> None:
        with pytest.raises(ConfigurationError, match="Unknown middleware alias 'nope'"):
            MiddlewareRegistry().resolve("nope")

    def test_unimportable_target(self) -> None:
        registry = MiddlewareRegistry()
        with pytest.raises(ConfigurationError, match="Cannot import middleware 'auth'"):
            registry.resolve("auth")

    def test_validate_fails_on_first_bad_identifier(self) -> None:
        registry = MiddlewareRegistry({"ok": Blocker})
        with pytest.raises(ConfigurationError, match="bad"):
            registry.validate(["ok", "bad"])


class TestRegistryInstantiation:
    def test_class_instantiated_per_call(self) -> None:
        registry = MiddlewareRegistry({"block": Blocker})
        first = registry.instantiate("block")
        assert isinstance(first, Blocker)
        assert registry.instantiate("block") is not first

    def test_instance_reused(self) -> None:
        blocker = Blocker()
        registry = MiddlewareRegistry({"block": blocker})
        assert registry.instantiate("block") is blocker

    def test_factory_called(self) -> None:
        registry = MiddlewareRegistry({"rec": lambda: Recorder("f", [])})
        assert isinstance(registry.instantiate("rec"), Recorder)

    def test_class_without_handle(self) -> None:
        registry = MiddlewareRegistry({"broken": NoHandle})
        with pytest.raises(InvalidMiddlewareContract, match="handle"):
            registry.instantiate("broken")

    def test_non_callable_object(self) -> None:
        registry = MiddlewareRegistry({"broken": 42})
        with pytest.raises(InvalidMiddlewareContract):
            registry.instantiate("broken")

    def test_contract_error_is_configuration_error(self) -> None:
        assert issubclass(InvalidMiddlewareContract, ConfigurationError)

    def test_instantiate_all_keeps_order(self) -> None:
        registry = MiddlewareRegistry({"block": Blocker, "sync": SyncPassThrough})
        instances = registry.instantiate_all(["sync", "block", "sync"])
        assert [type(mw) for mw in instances] == [SyncPassThrough, Blocker, SyncPassThrough]
