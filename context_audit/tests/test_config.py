"""Tests for audit configuration and its loader."""

import json

import pytest
import toml
import yaml

from context_audit.config import (
    DEFAULT_BLACKLIST,
    DEFAULT_SINKS,
    AuditConfig,
    AuditConfigError,
    load_config,
)


class TestAuditConfig:
    def test_defaults_describe_interrupt_context(self):
        config = AuditConfig()

        assert config.is_source("x86_exception_handler")
        assert config.is_blacklisted("mutex_acquire")
        assert config.is_blacklisted("mutex_acquire_timeout_internal")
        assert config.is_sink("panic")
        assert config.is_sink("_panic")
        assert config.is_sink("thread_preempt")
        assert not config.is_blacklisted("spin_lock")

    def test_names_are_stored_as_frozensets(self):
        config = AuditConfig(source_function="isr", blacklist=["sleep"], sinks=("halt",))

        assert config.blacklist == frozenset({"sleep"})
        assert config.sinks == frozenset({"halt"})
        with pytest.raises(AttributeError):
            config.source_function = "other"

    def test_with_overrides(self):
        config = AuditConfig().with_overrides(source_function="isr", blacklist=["sleep"])

        assert config.source_function == "isr"
        assert config.blacklist == frozenset({"sleep"})
        assert config.sinks == DEFAULT_SINKS

    def test_with_overrides_ignores_missing_values(self):
        assert AuditConfig().with_overrides() == AuditConfig()


class TestLoadConfig:
    def test_yaml(self, tmp_path):
        path = tmp_path / "audit.yaml"
        path.write_text(
            yaml.safe_dump(
                {"source_function": "irq_entry", "blacklist": ["msleep"], "sinks": ["bug"]}
            )
        )

        config = load_config(path)

        assert config == AuditConfig("irq_entry", frozenset({"msleep"}), frozenset({"bug"}))

    def test_toml_section(self, tmp_path):
        path = tmp_path / "pyproject.toml"
        path.write_text(
            toml.dumps({"tool": {}, "context_audit": {"blacklist": ["schedule"]}})
        )

        config = load_config(path)

        assert config.blacklist == frozenset({"schedule"})
        assert config.source_function == "x86_exception_handler"
        assert config.sinks == DEFAULT_SINKS

    def test_json_keeps_base_values(self, tmp_path):
        path = tmp_path / "audit.json"
        path.write_text(json.dumps({"sinks": []}))
        base = AuditConfig(source_function="isr")

        config = load_config(path, base=base)

        assert config.source_function == "isr"
        assert config.sinks == frozenset()
        assert config.blacklist == DEFAULT_BLACKLIST

    def test_empty_file_gives_defaults(self, tmp_path):
        path = tmp_path / "audit.yml"
        path.write_text("")

        assert load_config(path) == AuditConfig()

    def test_unsupported_format(self, tmp_path):
        path = tmp_path / "audit.ini"
        path.write_text("[audit]\n")

        with pytest.raises(AuditConfigError):
            load_config(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(AuditConfigError):
            load_config(tmp_path / "missing.yaml")

    def test_malformed_content(self, tmp_path):
        path = tmp_path / "audit.json"
        path.write_text("{not json")

        with pytest.raises(AuditConfigError):
            load_config(path)

    def test_blacklist_must_be_a_list(self, tmp_path):
        path = tmp_path / "audit.yaml"
        path.write_text("blacklist: mutex_acquire\n")

        with pytest.raises(AuditConfigError, match="blacklist"):
            load_config(path)

    def test_source_must_be_a_string(self, tmp_path):
        path = tmp_path / "audit.yaml"
        path.write_text("source_function: [a, b]\n")

        with pytest.raises(AuditConfigError, match="source_function"):
            load_config(path)
