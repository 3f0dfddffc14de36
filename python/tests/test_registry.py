"""
Tests for SourceSet and JsonSourceRegistry.
"""

import json

import pytest

from tidemark.errors import RegistryError
from tidemark.registry import JsonSourceRegistry, SourceEntry, SourceSet


def entry(path, changed=False, raw=False):
    return SourceEntry(path=f"/src/{path}", relative_path=path, changed=changed, raw=raw)


class TestSourceSet:
    """In-memory registry operations."""

    def test_starts_empty(self):
        registry = SourceSet()

        assert registry.all_entries() == {}
        assert len(registry) == 0

    def test_merge_inserts_entry(self):
        registry = SourceSet()
        registry.merge_entry(entry("a.md"))

        assert "/src/a.md" in registry
        assert registry.get_entry("/src/a.md").relative_path == "a.md"

    def test_merge_replaces_existing_entry(self):
        registry = SourceSet([entry("a.md", raw=False)])
        registry.merge_entry(entry("a.md", raw=True))

        assert len(registry) == 1
        assert registry.get_entry("/src/a.md").raw is True

    def test_remove_entry(self):
        registry = SourceSet([entry("a.md"), entry("b.md")])
        registry.remove_entry(entry("b.md"))

        assert list(registry.all_entries()) == ["/src/a.md"]

    def test_remove_missing_entry_is_noop(self):
        registry = SourceSet([entry("a.md")])
        registry.remove_entry(entry("zzz.md"))

        assert len(registry) == 1

    def test_all_entries_is_a_snapshot(self):
        registry = SourceSet([entry("a.md")])
        snapshot = registry.all_entries()
        registry.merge_entry(entry("b.md"))

        assert list(snapshot) == ["/src/a.md"]

    def test_updated_entries_and_reset(self):
        registry = SourceSet([entry("b.md", changed=True), entry("a.md", changed=True), entry("c.md")])

        assert [e.relative_path for e in registry.updated_entries()] == ["a.md", "b.md"]

        registry.reset()

        assert registry.updated_entries() == []


class TestJsonSourceRegistry:
    """Persistence between runs."""

    def test_missing_file_starts_empty(self, tmp_path):
        registry = JsonSourceRegistry(tmp_path / "registry.json")

        assert len(registry) == 0
        assert registry.watermark == 0.0

    def test_save_and_reload(self, tmp_path):
        path = tmp_path / "state" / "registry.json"
        registry = JsonSourceRegistry(path)
        registry.merge_entry(entry("a.md", changed=True, raw=True))
        registry.save(watermark=1700000000.0)

        reloaded = JsonSourceRegistry(path)

        assert reloaded.watermark == 1700000000.0
        assert reloaded.get_entry("/src/a.md") == entry("a.md", changed=True, raw=True)

    def test_file_is_pretty_printed_with_trailing_newline(self, tmp_path):
        path = tmp_path / "registry.json"
        registry = JsonSourceRegistry(path)
        registry.merge_entry(entry("a.md"))
        registry.save()

        text = path.read_text()

        assert text.endswith("}\n")
        assert json.loads(text)["version"] == JsonSourceRegistry.VERSION

    def test_corrupt_file_raises(self, tmp_path):
        path = tmp_path / "registry.json"
        path.write_text("{not json")

        with pytest.raises(RegistryError):
            JsonSourceRegistry(path)

    def test_wrong_version_raises(self, tmp_path):
        path = tmp_path / "registry.json"
        path.write_text(json.dumps({"version": 99, "entries": {}}))

        with pytest.raises(RegistryError, match="Unsupported"):
            JsonSourceRegistry(path)

    def test_malformed_entry_raises(self, tmp_path):
        path = tmp_path / "registry.json"
        path.write_text(json.dumps({"version": 1, "entries": {"/a": {"bogus": 1}}}))

        with pytest.raises(RegistryError, match="Malformed"):
            JsonSourceRegistry(path)
