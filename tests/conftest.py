"""
Shared test fixtures for the slim_memory test suite.
"""

import pytest

from slim_memory import Mem, register_driver, set_default_mem, unregister_driver
from slim_memory.testing import InMemoryBackend, memory_drivers


MEMORY_MASTER = {"driver": "memory", "host": "master", "port": 1}


@pytest.fixture
def drivers():
    """Driver mapping exposing InMemoryBackend as ``memory``."""
    return memory_drivers()


@pytest.fixture
def mem(drivers):
    """Facade over a single in-memory master."""
    return Mem([MEMORY_MASTER], drivers=drivers)


@pytest.fixture
def backend(mem) -> InMemoryBackend:
    """The live backend behind ``mem``, with an empty call log."""
    be = mem.get_instance(True)
    be.reset_calls()
    return be


@pytest.fixture
def registered_memory_driver():
    """Register ``memory`` globally for code paths that build their own Mem."""
    register_driver("memory", InMemoryBackend)
    yield
    unregister_driver("memory")


@pytest.fixture(autouse=True)
def _reset_default_mem():
    yield
    set_default_mem(None)
