"""Tests for tagged bindings, tagged constants and tagged constructors."""

from dataclasses import dataclass
from typing import Annotated

import pytest

from injectwire.exceptions import InjectWireDependencyNotRegisteredError
from injectwire.injector import Injector
from injectwire.keys import BindingKey
from injectwire.markers import Tag, tagged
from injectwire.module import Module


class Greeter:
    def __init__(self, greeting: str) -> None:
        self.greeting = greeting


class Database:
    pass


class Welcome:
    def __init__(
        self,
        english: Annotated[Greeter, Tag("english")],
        german: Annotated[Greeter, Tag("german")],
    ) -> None:
        self.english = english
        self.german = german


@dataclass
class ServerSettings:
    host: Annotated[str, Tag("host")]
    port: Annotated[int, Tag("port")]
    database: Database


class Server:
    def __init__(self, settings: ServerSettings) -> None:
        self.settings = settings


def make_server(settings: ServerSettings) -> Server:
    return Server(settings)


def make_english() -> Annotated[Greeter, Tag("english")]:
    return Greeter("hello")


def bind_greeters(module: Module) -> None:
    module.bind_tagged("english", Greeter).to_singleton(Greeter("hello"))
    module.bind_tagged("german", Greeter).to_singleton(Greeter("hallo"))


def bind_server_settings(module: Module) -> None:
    module.bind_tagged_str("host").to_singleton("localhost")
    module.bind_tagged_int("port").to_singleton(8080)
    module.bind(Database).to_singleton(Database())


class TestTaggedBindings:
    def test_tags_are_independent(self, module: Module) -> None:
        bind_greeters(module)

        injector = Injector(module)

        assert injector.get_tagged("english", Greeter).greeting == "hello"
        assert injector.get_tagged("german", Greeter).greeting == "hallo"

    def test_tagged_binding_does_not_satisfy_untagged_key(self, module: Module) -> None:
        bind_greeters(module)

        injector = Injector(module)

        with pytest.raises(InjectWireDependencyNotRegisteredError):
            injector.get(Greeter)

    def test_other_tag_of_same_type_is_missing(self, module: Module) -> None:
        module.bind_tagged("one", Greeter).to_singleton(Greeter("hello"))

        with pytest.raises(InjectWireDependencyNotRegisteredError) as exc_info:
            Injector(module).get_tagged("two", Greeter)

        assert exc_info.value.binding_key == BindingKey(Greeter, "two")

    def test_annotated_parameters_resolve_tagged_keys(self, module: Module) -> None:
        bind_greeters(module)
        module.bind_constructor(Welcome)

        welcome = Injector(module).get(Welcome)

        assert welcome.english.greeting == "hello"
        assert welcome.german.greeting == "hallo"

    def test_get_accepts_tagged_annotation(self, module: Module) -> None:
        bind_greeters(module)

        injector = Injector(module)

        assert injector.get(tagged(Greeter, "german")) is injector.get_tagged("german", Greeter)
        assert injector.get(Annotated[Greeter, Tag("english")]) is injector.get_tagged("english", Greeter)

    def test_return_annotation_tag_names_the_key(self, module: Module) -> None:
        module.bind_constructor(make_english)

        assert module.binding(BindingKey(Greeter, "english")) is not None

    def test_empty_tag_in_annotation_is_recorded(self, module: Module) -> None:
        def make(greeter: Annotated[Greeter, Tag("")]) -> Database:
            return Database()

        module.bind_constructor(make)

        assert len(module.errors) == 1
        assert "Tag empty" in str(module.errors[0])


class TestTaggedConstants:
    def test_constant_getters(self, module: Module) -> None:
        module.bind_tagged_bool("debug").to_singleton(True)
        module.bind_tagged_int("workers").to_singleton(4)
        module.bind_tagged_float("ratio").to_singleton(0.25)
        module.bind_tagged_complex("phase").to_singleton(1j)
        module.bind_tagged_str("region").to_singleton("eu-west-1")
        module.bind_tagged_bytes("key").to_singleton(b"\x00\x01")

        injector = Injector(module)

        assert injector.get_tagged_bool("debug") is True
        assert injector.get_tagged_int("workers") == 4
        assert injector.get_tagged_float("ratio") == 0.25
        assert injector.get_tagged_complex("phase") == 1j
        assert injector.get_tagged_str("region") == "eu-west-1"
        assert injector.get_tagged_bytes("key") == b"\x00\x01"

    def test_same_tag_different_kinds_are_independent(self, module: Module) -> None:
        module.bind_tagged_int("limit").to_singleton(10)
        module.bind_tagged_str("limit").to_singleton("ten")

        injector = Injector(module)

        assert injector.get_tagged_int("limit") == 10
        assert injector.get_tagged_str("limit") == "ten"

    def test_missing_constant_raises(self) -> None:
        with pytest.raises(InjectWireDependencyNotRegisteredError) as exc_info:
            Injector().get_tagged_str("region")

        assert exc_info.value.binding_key == BindingKey(str, "region")


class TestTaggedConstructors:
    def test_bundle_is_assembled_from_keys(self, module: Module) -> None:
        bind_server_settings(module)
        module.bind(Server).to_tagged_constructor(make_server)

        injector = Injector(module)
        server = injector.get(Server)

        assert server.settings == ServerSettings(host="localhost", port=8080, database=injector.get(Database))
        assert injector.get(Server) is not server

    def test_tagged_singleton_constructor(self, module: Module) -> None:
        bind_server_settings(module)
        module.bind(Server).to_tagged_singleton_constructor(make_server)

        injector = Injector(module)

        assert injector.get(Server) is injector.get(Server)

    def test_missing_bundle_field_fails_construction(self, module: Module) -> None:
        module.bind_tagged_str("host").to_singleton("localhost")
        module.bind(Database).to_singleton(Database())
        module.bind(Server).to_tagged_constructor(make_server)

        with pytest.raises(InjectWireDependencyNotRegisteredError) as exc_info:
            Injector(module)

        assert exc_info.value.binding_key == BindingKey(int, "port")

    def test_tagged_constructor_needs_single_dataclass_parameter(self, module: Module) -> None:
        def two_parameters(settings: ServerSettings, other: Database) -> Server:
            return Server(settings)

        def not_a_dataclass(database: Database) -> Server:
            return Server(ServerSettings("h", 1, database))

        module.bind(Server).to_tagged_constructor(two_parameters)
        module.bind_tagged("other", Server).to_tagged_singleton_constructor(not_a_dataclass).eager()

        assert len(module.errors) == 2
        assert all("exactly one dataclass parameter" in str(error) for error in module.errors)
        assert module.eager == []
