"""Tests for the domain layer."""

import re

import pytest

from mirrorforge.domain import (
    Account,
    AccountKind,
    BuildPlan,
    ModuleSpec,
    RepoCandidate,
    ResolvedVersion,
    UnknownRepo,
    mirror_key,
    valid_module_id,
)


class TestMirrorKey:
    """Tests for mirror directory naming."""

    def test_hex_of_full_name(self):
        """Test the key is the hex encoding of owner/name."""
        assert mirror_key("a/b") == "612f62"

    def test_distinct_names_distinct_keys(self):
        """Test names differing only in separators don't collide."""
        assert mirror_key("ab/c") != mirror_key("a/bc")

    def test_stable(self):
        """Test the same name always yields the same key."""
        assert mirror_key("Icinga/icingaweb2") == mirror_key("Icinga/icingaweb2")


class TestModuleSpec:
    """Tests for pattern matching of repository names."""

    def test_first_matching_pattern_decides(self):
        """Test patterns are tried in order."""
        spec = ModuleSpec(
            Account("Icinga", AccountKind.ORG),
            (re.compile(r"\Aicingaweb2-module-(.+)\Z"), re.compile(r"\A(icingaweb2-.+)\Z")),
        )
        assert spec.match("icingaweb2-module-director") == (True, "director")
        assert spec.match("icingaweb2-theme-dark") == (True, "icingaweb2-theme-dark")

    def test_no_match(self):
        """Test an unmatched name reports no match."""
        spec = ModuleSpec(Account("x"), (re.compile(r"\Aiw2-mod-(.+)\Z"),))
        assert spec.match("bar") == (False, "")

    def test_empty_capture(self):
        """Test a pattern may match while capturing nothing."""
        spec = ModuleSpec(Account("x"), (re.compile(r"\Ano-mod-()"),))
        assert spec.match("no-mod-whatever") == (True, "")

    def test_unanchored_patterns_search(self):
        """Test patterns match anywhere unless anchored."""
        spec = ModuleSpec(Account("x"), (re.compile(r"mod-(\w+)"),))
        assert spec.match("my-mod-foo") == (True, "foo")


class TestValidModuleId:
    """Tests for module id validation."""

    @pytest.mark.parametrize("module_id", ["director", "x509", "business-process"])
    def test_valid(self, module_id):
        assert valid_module_id(module_id)

    @pytest.mark.parametrize("module_id", ["", ".", "..", "a/b", "a\0b"])
    def test_invalid(self, module_id):
        assert not valid_module_id(module_id)


class TestRepos:
    """Tests for candidate and unknown repository objects."""

    def test_candidate_ordering(self):
        """Test candidates sort by account, then name."""
        repos = [RepoCandidate("b", "a"), RepoCandidate("a", "z"), RepoCandidate("a", "b")]
        assert [r.full_name for r in sorted(repos)] == ["a/b", "a/z", "b/a"]

    def test_unknown_url(self):
        """Test unknown repositories link to GitHub."""
        repo = UnknownRepo("Icinga", "foo")
        assert repo.full_name == "Icinga/foo"
        assert repo.url == "https://github.com/Icinga/foo"
        assert repo.to_dict() == {'owner': 'Icinga', 'repo': 'foo'}


class TestResolvedVersion:
    """Tests for pinned versions and build plans."""

    def test_with_module_id_keeps_pin(self):
        """Test attaching a module id keeps tag and commit."""
        version = ResolvedVersion("r", "v1.0.0", "abc", prerelease_tag="v1.1.0-rc1")
        named = version.with_module_id("foo")
        assert named.module_id == "foo"
        assert (named.tag, named.commit, named.prerelease_tag) == ("v1.0.0", "abc", "v1.1.0-rc1")
        assert version.module_id is None

    def test_plan_sorts_modules(self):
        """Test modules come out ordered by id."""
        fw = ResolvedVersion("fw", "v2.0.0", "f")
        plan = BuildPlan(fw, {"foo": ResolvedVersion("a", "HEAD", "1"), "bar": ResolvedVersion("b", "HEAD", "2")})
        assert [name for name, _ in plan.sorted_modules()] == ["bar", "foo"]
