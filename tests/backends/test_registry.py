"""
Tests for the backend registry.
"""

import pytest

from tapkit.backends.base import BackendAdapter, BackendKind, BackendOptions, Project
from tapkit.backends.cmake import CMakeBackend
from tapkit.backends.make import MakeBackend
from tapkit.backends.meson import MesonBackend
from tapkit.backends.registry import BackendRegistry, get_global_registry
from tapkit.core.exceptions import AmbiguousBackend, UnsupportedProject


class TestBackendRegistry:
    """Test backend registration."""

    def test_global_registry_order(self):
        """Test built-in backends are registered in detection order."""
        registry = get_global_registry()
        assert registry.kinds() == [
            BackendKind.RECIPE_BASED,
            BackendKind.GENERATOR_BASED,
            BackendKind.TWO_PHASE,
        ]
        assert registry.names() == ["make", "cmake", "meson"]

    def test_global_registry_is_shared(self):
        """Test the same instance is returned."""
        assert get_global_registry() is get_global_registry()

    def test_get(self):
        """Test looking up adapter classes."""
        registry = get_global_registry()
        assert registry.get(BackendKind.TWO_PHASE) is MesonBackend
        assert registry.has(BackendKind.RECIPE_BASED)

    def test_get_unknown(self):
        """Test getting an unregistered backend."""
        with pytest.raises(KeyError, match="Build backend 'make' not found"):
            BackendRegistry().get(BackendKind.RECIPE_BASED)

    def test_register_duplicate(self):
        """Test a kind can only be registered once."""
        registry = BackendRegistry()
        registry.register(MakeBackend)
        with pytest.raises(ValueError, match="already registered"):
            registry.register(MakeBackend)

    def test_register_unknown_kind(self):
        """Test adapters must declare a kind."""

        class Nameless(BackendAdapter):
            def build(self, mode):
                return []

            def clean(self, mode=None):
                return []

            def output_dirs(self, mode):
                return []

        with pytest.raises(ValueError, match="does not declare"):
            BackendRegistry().register(Nameless)

    def test_kind_by_name(self):
        """Test name lookup."""
        registry = get_global_registry()
        assert registry.kind_by_name("cmake") is BackendKind.GENERATOR_BASED
        with pytest.raises(AmbiguousBackend):
            registry.kind_by_name("CMake")

    def test_create(self, tmp_path):
        """Test instantiating an adapter for a project."""
        options = BackendOptions(jobs=4)
        adapter = get_global_registry().create(
            Project(tmp_path, BackendKind.GENERATOR_BASED), options
        )

        assert isinstance(adapter, CMakeBackend)
        assert adapter.root == tmp_path
        assert adapter.options is options

    def test_create_unknown(self, tmp_path):
        """Test UNKNOWN projects cannot be driven."""
        with pytest.raises(UnsupportedProject):
            get_global_registry().create(Project(tmp_path, BackendKind.UNKNOWN))

    def test_clear(self):
        """Test clearing a private registry."""
        registry = BackendRegistry()
        registry.register(MakeBackend)
        registry.clear()
        assert registry.kinds() == []

    def test_custom_order(self):
        """Test a private registry's order drives precedence."""
        registry = BackendRegistry()
        registry.register(MesonBackend)
        registry.register(MakeBackend)
        assert registry.kinds() == [BackendKind.TWO_PHASE, BackendKind.RECIPE_BASED]
