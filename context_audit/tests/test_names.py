"""Tests for display name resolution."""

from context_audit.analysis.names import NameResolver, demangle


class TestDemangle:
    def test_plain_c_name_is_not_demangled(self):
        assert demangle("mutex_acquire") is None

    def test_itanium_name_is_demangled(self):
        assert demangle("_Z3fooi") == "foo(int)"

    def test_nested_name_is_qualified(self):
        assert demangle("_ZN6Thread4waitEi") == "Thread::wait(int)"

    def test_const_method_keeps_qualifier_after_arguments(self):
        assert demangle("_ZNK3Foo3barEv") == "Foo::bar() const"

    def test_constructor_uses_class_name(self):
        assert demangle("_ZN3fooC1Ev") == "foo::foo()"

    def test_destructor(self):
        assert demangle("_ZN3fooD2Ev") == "foo::~foo()"

    def test_invalid_mangled_name(self):
        assert demangle("_Zinvalid") is None


class TestNameResolver:
    def test_falls_back_to_raw_name(self):
        resolver = NameResolver(demangler=lambda raw: None)

        assert resolver.resolve("x86_exception_handler") == "x86_exception_handler"

    def test_uses_demangled_name(self):
        resolver = NameResolver(demangler={"_Z1fv": "f()"}.get)

        assert resolver.resolve("_Z1fv") == "f()"
        assert resolver.resolve("g") == "g"

    def test_default_demangler(self):
        resolver = NameResolver()

        assert resolver.resolve("panic") == "panic"
        assert resolver.resolve("_Z3fooi") == "foo(int)"
