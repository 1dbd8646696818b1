from injectwire.bindings import BindingKind, BindingSpec, EagerBinding
from injectwire.context import DependencyTree
from injectwire.exceptions import (
    InjectWireAlreadyBoundError,
    InjectWireBindingErrors,
    InjectWireCircularDependencyError,
    InjectWireConstructorCallError,
    InjectWireDependencyNotRegisteredError,
    InjectWireEagerBindingError,
    InjectWireError,
    InjectWireInvalidRegistrationError,
    InjectWireNoFinalBindingError,
)
from injectwire.injector import Injector
from injectwire.keys import BindingKey
from injectwire.lock_mode import LockMode
from injectwire.markers import Tag, tagged
from injectwire.module import Builder, InterfaceBuilder, Module, SingletonBuilder, override

__all__ = [
    "BindingKey",
    "BindingKind",
    "BindingSpec",
    "Builder",
    "DependencyTree",
    "EagerBinding",
    "InjectWireAlreadyBoundError",
    "InjectWireBindingErrors",
    "InjectWireCircularDependencyError",
    "InjectWireConstructorCallError",
    "InjectWireDependencyNotRegisteredError",
    "InjectWireEagerBindingError",
    "InjectWireError",
    "InjectWireInvalidRegistrationError",
    "InjectWireNoFinalBindingError",
    "Injector",
    "InterfaceBuilder",
    "LockMode",
    "Module",
    "SingletonBuilder",
    "Tag",
    "tagged",
    "override",
]
