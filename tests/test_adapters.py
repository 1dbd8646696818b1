"""Tests for Injector.call, Injector.call_tagged and Injector.populate."""

from dataclasses import dataclass
from typing import Annotated

import pytest

from injectwire.exceptions import (
    InjectWireDependencyNotRegisteredError,
    InjectWireInvalidRegistrationError,
)
from injectwire.injector import Injector
from injectwire.markers import Tag
from injectwire.module import Module


class Database:
    pass


class Cache:
    pass


class Mailer:
    pass


@dataclass
class Handlers:
    database: Database
    region: Annotated[str, Tag("region")]


@dataclass(frozen=True)
class FrozenHandlers:
    database: Database


@dataclass
class Report:
    database: Database
    cache: Cache


def create_injector(module: Module) -> Injector:
    module.bind(Database).to_singleton(Database())
    module.bind_tagged_str("region").to_singleton("eu-west-1")
    return Injector(module)


class TestCall:
    def test_call_resolves_parameters(self, module: Module) -> None:
        injector = create_injector(module)

        def describe(database: Database, region: Annotated[str, Tag("region")], suffix: str = "!") -> str:
            assert database is injector.get(Database)
            return region + suffix

        assert injector.call(describe) == "eu-west-1!"

    def test_call_with_positional_only_parameter(self, module: Module) -> None:
        injector = create_injector(module)

        def first(database: Database, /) -> Database:
            return database

        assert injector.call(first) is injector.get(Database)

    def test_call_checks_every_key_before_building(self, module: Module) -> None:
        built: list[int] = []

        def build_cache() -> Cache:
            built.append(1)
            return Cache()

        module.bind(Cache).to_singleton_constructor(build_cache)
        injector = Injector(module)

        def send(cache: Cache, mailer: Mailer) -> None:
            pass

        with pytest.raises(InjectWireDependencyNotRegisteredError) as exc_info:
            injector.call(send)

        assert built == []
        assert "send" in exc_info.value.get_tag("function")

    def test_call_rejects_unannotated_parameters(self, module: Module) -> None:
        injector = create_injector(module)

        def untyped(database):  # noqa: ANN001, ANN202
            return database

        with pytest.raises(InjectWireInvalidRegistrationError):
            injector.call(untyped)

    def test_call_tagged_assembles_bundle(self, module: Module) -> None:
        injector = create_injector(module)

        def handle(handlers: Handlers) -> str:
            return handlers.region

        assert injector.call_tagged(handle) == "eu-west-1"


class TestPopulate:
    def test_populate_assigns_every_field(self, module: Module) -> None:
        injector = create_injector(module)
        handlers = Handlers(database=Database(), region="unset")

        injector.populate(handlers)

        assert handlers.database is injector.get(Database)
        assert handlers.region == "eu-west-1"

    def test_populate_missing_binding_leaves_instance_untouched(self, module: Module) -> None:
        injector = create_injector(module)
        database = Database()
        cache = Cache()
        report = Report(database=database, cache=cache)

        with pytest.raises(InjectWireDependencyNotRegisteredError):
            injector.populate(report)

        assert report.database is database
        assert report.cache is cache

    def test_populate_rejects_frozen_dataclass(self, module: Module) -> None:
        injector = create_injector(module)

        with pytest.raises(InjectWireInvalidRegistrationError, match="frozen"):
            injector.populate(FrozenHandlers(database=Database()))

    @pytest.mark.parametrize("target", [Database(), Handlers, "text"])
    def test_populate_rejects_non_dataclass_instances(self, module: Module, target: object) -> None:
        injector = create_injector(module)

        with pytest.raises(InjectWireInvalidRegistrationError, match="dataclass instance"):
            injector.populate(target)
