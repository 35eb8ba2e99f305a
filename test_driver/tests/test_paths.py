"""Tests for cpconfig.paths: declaration validation and path normalization."""

from __future__ import annotations

import os
from pathlib import Path

import pytest

from cpconfig.errors import ConfigValidationError
from cpconfig.models import ConfigEntry
from cpconfig.paths import (
    normalize_files,
    resolve_contents,
    resolve_gitignore_path,
    resolve_root,
    to_posix,
)


# ── normalize_files ──────────────────────────────────────────────────


class TestNormalizeFiles:
    """Unit tests for normalize_files()."""

    def test_resolves_relative_and_absolute_paths(self, tmp_path: Path):
        targets = normalize_files({"config/app.json": {"contents": "{}"}}, tmp_path)

        assert len(targets) == 1
        target = targets[0]
        assert target.relative_path == "config/app.json"
        assert target.absolute_path == tmp_path / "config" / "app.json"
        assert target.gitignore_entry == "/config/app.json"

    def test_defaults_are_filled_in(self, tmp_path: Path):
        """Optional declaration fields become explicit values."""
        target = normalize_files({"a.txt": {"contents": "x"}}, tmp_path)[0]
        assert target.track is True
        assert target.mode is None
        assert target.sentinel is None

    def test_declaration_order_preserved(self, tmp_path: Path):
        files = {name: {"contents": name} for name in ("c.txt", "a.txt", "b.txt")}
        targets = normalize_files(files, tmp_path)
        assert [t.relative_path for t in targets] == ["c.txt", "a.txt", "b.txt"]

    def test_leading_dot_slash_stripped(self, tmp_path: Path):
        target = normalize_files({"./nested/./x.cfg": {"contents": ""}}, tmp_path)[0]
        assert target.relative_path == "nested/x.cfg"

    def test_inner_parent_segment_within_root_allowed(self, tmp_path: Path):
        target = normalize_files({"a/../b.txt": {"contents": ""}}, tmp_path)[0]
        assert target.relative_path == "b.txt"

    def test_accepts_config_entry_objects(self, tmp_path: Path):
        entry = ConfigEntry(contents="k=v\n", gitignore=False, mode=0o600, sentinel="k=")
        target = normalize_files({"env": entry}, tmp_path)[0]
        assert target.track is False
        assert target.mode == 0o600
        assert target.sentinel == "k="

    def test_rejects_non_mapping(self, tmp_path: Path):
        with pytest.raises(ConfigValidationError, match="mapping"):
            normalize_files([("a", {"contents": ""})], tmp_path)

    def test_rejects_blank_path(self, tmp_path: Path):
        with pytest.raises(ConfigValidationError, match="valid path"):
            normalize_files({"  ": {"contents": ""}}, tmp_path)

    def test_rejects_absolute_path(self, tmp_path: Path):
        absolute = str(tmp_path / "abs.txt")
        with pytest.raises(ConfigValidationError, match="must be relative"):
            normalize_files({absolute: {"contents": ""}}, tmp_path)

    def test_rejects_root_escape(self, tmp_path: Path):
        with pytest.raises(ConfigValidationError, match="within the root directory"):
            normalize_files({"../outside.txt": {"contents": ""}}, tmp_path)

    def test_rejects_deep_root_escape(self, tmp_path: Path):
        with pytest.raises(ConfigValidationError, match="within the root directory"):
            normalize_files({"a/../../outside.txt": {"contents": ""}}, tmp_path)

    def test_rejects_root_itself(self, tmp_path: Path):
        with pytest.raises(ConfigValidationError, match="does not name a file"):
            normalize_files({"a/..": {"contents": ""}}, tmp_path)

    def test_rejects_duplicates_after_normalization(self, tmp_path: Path):
        files = {"a.txt": {"contents": "1"}, "./a.txt": {"contents": "2"}}
        with pytest.raises(ConfigValidationError, match='Duplicate config file definition for path "a.txt"'):
            normalize_files(files, tmp_path)

    def test_rejects_entry_without_contents(self, tmp_path: Path):
        with pytest.raises(ConfigValidationError, match="contents property"):
            normalize_files({"a.txt": {"gitignore": True}}, tmp_path)

    def test_rejects_unknown_entry_keys(self, tmp_path: Path):
        with pytest.raises(ConfigValidationError, match="unknown keys"):
            normalize_files({"a.txt": {"contents": "", "template": True}}, tmp_path)

    def test_rejects_non_bool_gitignore(self, tmp_path: Path):
        with pytest.raises(ConfigValidationError, match="gitignore"):
            normalize_files({"a.txt": {"contents": "", "gitignore": "no"}}, tmp_path)

    def test_rejects_empty_sentinel(self, tmp_path: Path):
        with pytest.raises(ConfigValidationError, match="sentinel"):
            normalize_files({"a.txt": {"contents": "", "sentinel": ""}}, tmp_path)

    def test_rejects_sentinel_missing_from_contents(self, tmp_path: Path):
        with pytest.raises(ConfigValidationError, match="does not appear in its own contents"):
            normalize_files({"a.txt": {"contents": "body\n", "sentinel": "__S__"}}, tmp_path)

    def test_validation_happens_before_any_write(self, tmp_path: Path):
        """A bad entry late in the map still rejects the whole map."""
        files = {"ok.txt": {"contents": "ok"}, "../bad.txt": {"contents": "bad"}}
        with pytest.raises(ConfigValidationError):
            normalize_files(files, tmp_path)
        assert list(tmp_path.iterdir()) == []


class TestParseMode:
    """Mode values accepted on declarations."""

    @pytest.mark.parametrize("raw", [0o640, "0640", "0o640", "640"])
    def test_int_and_octal_strings(self, tmp_path: Path, raw):
        target = normalize_files({"a": {"contents": "", "mode": raw}}, tmp_path)[0]
        assert target.mode == 0o640

    @pytest.mark.parametrize("raw", [True, "rw-r--r--", 1.5, 0o17777])
    def test_invalid(self, tmp_path: Path, raw):
        with pytest.raises(ConfigValidationError, match="mode"):
            normalize_files({"a": {"contents": "", "mode": raw}}, tmp_path)


# ── resolve_contents ─────────────────────────────────────────────────


class TestResolveContents:
    """Unit tests for resolve_contents()."""

    def test_string_passthrough(self):
        assert resolve_contents("abc", "f") == "abc"

    def test_callable_invoked_once(self):
        calls = []

        def produce() -> str:
            calls.append(1)
            return "generated"

        assert resolve_contents(produce, "f") == "generated"
        assert calls == [1]

    def test_callable_returning_non_string(self):
        with pytest.raises(ConfigValidationError, match="must return a string"):
            resolve_contents(lambda: 42, "f")

    def test_async_callable_rejected(self):
        async def produce() -> str:
            return "never"

        with pytest.raises(ConfigValidationError, match="Async contents are not supported"):
            resolve_contents(produce, "f")

    def test_other_types_rejected(self):
        with pytest.raises(ConfigValidationError, match="string or a function"):
            resolve_contents(b"bytes", "f")


# ── helpers ──────────────────────────────────────────────────────────


class TestPathHelpers:
    def test_resolve_root_defaults_to_cwd(self, tmp_path: Path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        assert resolve_root(None) == Path.cwd()

    def test_resolve_root_relative(self, tmp_path: Path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        assert resolve_root("sub") == Path.cwd() / "sub"

    def test_gitignore_default(self, tmp_path: Path):
        assert resolve_gitignore_path(tmp_path) == tmp_path / ".gitignore"

    def test_gitignore_relative_to_root(self, tmp_path: Path):
        assert resolve_gitignore_path(tmp_path, "sub/.gitignore") == tmp_path / "sub" / ".gitignore"

    def test_gitignore_absolute(self, tmp_path: Path):
        other = tmp_path / "elsewhere" / ".gitignore"
        assert resolve_gitignore_path(tmp_path / "root", other) == other

    def test_to_posix(self):
        assert to_posix(os.path.join("a", "b", "c.txt")) == "a/b/c.txt"
        assert to_posix("./x") == "x"
