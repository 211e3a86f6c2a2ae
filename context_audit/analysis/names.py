"""Display names for call graph nodes."""

from typing import Callable

import cxxfilt
from loguru import logger

Demangler = Callable[[str], "str | None"]

MANGLED_PREFIX = "_Z"


def demangle(raw_name: str) -> str | None:
    """Demangle an Itanium C++ ABI symbol the way the C++ runtime does.

    Returns ``None`` when ``raw_name`` is not a mangled name (plain C symbols)
    or cannot be decoded. A C++ name comes back qualified and with its
    argument types, e.g. ``_ZN6Thread4waitEi`` becomes ``Thread::wait(int)``
    and ``_ZNK3Foo3barEv`` becomes ``Foo::bar() const``.
    """
    if not raw_name.startswith(MANGLED_PREFIX):
        return None
    try:
        demangled = cxxfilt.demangle(raw_name)
    except cxxfilt.InvalidName:
        logger.debug(f"Could not demangle {raw_name}")
        return None
    if not demangled or demangled == raw_name:
        return None
    return demangled


class NameResolver:
    """Maps raw linkage names to the names used for classification and reports."""

    def __init__(self, demangler: Demangler = demangle):
        self.demangler = demangler

    def resolve(self, raw_name: str) -> str:
        demangled = self.demangler(raw_name)
        return demangled if demangled else raw_name
