"""Tests for thread safety of Injector resolution."""

import threading
import time
from concurrent.futures import ThreadPoolExecutor, as_completed

import pytest

from injectwire.exceptions import InjectWireConstructorCallError
from injectwire.injector import Injector
from injectwire.lock_mode import LockMode
from injectwire.module import Module

THREADS = 16


class ExpensiveService:
    pass


class Consumer:
    def __init__(self, service: ExpensiveService) -> None:
        self.service = service


class TestConcurrentLazySingletons:
    def test_factory_runs_once_under_concurrent_gets(self, module: Module) -> None:
        """N concurrent gets build the lazy singleton exactly once."""
        calls: list[int] = []
        calls_lock = threading.Lock()
        barrier = threading.Barrier(THREADS)

        def build() -> ExpensiveService:
            with calls_lock:
                calls.append(1)
            time.sleep(0.05)
            return ExpensiveService()

        module.bind(ExpensiveService).to_singleton_constructor(build)
        injector = Injector(module)

        def resolve() -> ExpensiveService:
            barrier.wait()
            return injector.get(ExpensiveService)

        with ThreadPoolExecutor(max_workers=THREADS) as executor:
            futures = [executor.submit(resolve) for _ in range(THREADS)]
            results = [future.result() for future in as_completed(futures)]

        assert len(calls) == 1
        assert len(results) == THREADS
        assert all(result is results[0] for result in results)

    def test_concurrent_dependents_share_singleton(self, module: Module) -> None:
        module.bind_singleton_constructor(ExpensiveService)
        module.bind_constructor(Consumer)
        injector = Injector(module)

        with ThreadPoolExecutor(max_workers=THREADS) as executor:
            consumers = list(executor.map(lambda _: injector.get(Consumer), range(THREADS * 4)))

        assert len({id(consumer) for consumer in consumers}) == THREADS * 4
        assert all(consumer.service is consumers[0].service for consumer in consumers)

    def test_concurrent_failures_are_reported_to_every_caller(self, module: Module) -> None:
        barrier = threading.Barrier(THREADS)

        def build() -> ExpensiveService:
            time.sleep(0.05)
            msg = "unavailable"
            raise RuntimeError(msg)

        module.bind(ExpensiveService).to_singleton_constructor(build)
        injector = Injector(module)
        errors: list[Exception] = []
        errors_lock = threading.Lock()

        def resolve() -> None:
            barrier.wait()
            try:
                injector.get(ExpensiveService)
            except Exception as e:
                with errors_lock:
                    errors.append(e)

        threads = [threading.Thread(target=resolve) for _ in range(THREADS)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(errors) == THREADS
        assert all(isinstance(error, InjectWireConstructorCallError) for error in errors)

    def test_concurrent_failures_keep_per_caller_tags(self, module: Module) -> None:
        """Dependents failing on one lazy singleton each tag their own error."""
        barrier = threading.Barrier(THREADS)

        def build() -> ExpensiveService:
            time.sleep(0.05)
            msg = "unavailable"
            raise RuntimeError(msg)

        module.bind(ExpensiveService).to_singleton_constructor(build)
        module.bind_constructor(Consumer)
        injector = Injector(module)

        def resolve() -> InjectWireConstructorCallError:
            barrier.wait()
            with pytest.raises(InjectWireConstructorCallError) as exc_info:
                injector.get(Consumer)
            return exc_info.value

        with ThreadPoolExecutor(max_workers=THREADS) as executor:
            errors = list(executor.map(lambda _: resolve(), range(THREADS)))

        assert len({id(error) for error in errors}) == THREADS
        for error in errors:
            assert [key for key, _ in error.tags].count("constructor") == 2
            assert error.get_tag("err") == "RuntimeError: unavailable"

    def test_injectors_built_concurrently_are_independent(self) -> None:
        module = Module()
        module.bind_singleton_constructor(ExpensiveService)

        def build_and_resolve() -> ExpensiveService:
            return Injector(module).get(ExpensiveService)

        with ThreadPoolExecutor(max_workers=8) as executor:
            services = list(executor.map(lambda _: build_and_resolve(), range(8)))

        assert len({id(service) for service in services}) == 8


@pytest.mark.parametrize("lock_mode", [LockMode.THREAD, LockMode.NONE])
def test_sequential_resolution_in_every_lock_mode(lock_mode: LockMode) -> None:
    module = Module()
    module.bind_singleton_constructor(ExpensiveService)
    injector = Injector(module, lock_mode=lock_mode)

    assert injector.get(ExpensiveService) is injector.get(ExpensiveService)
