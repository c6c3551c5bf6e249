"""Tests for version tag selection and resolution."""

from unittest.mock import MagicMock

import pytest

from mirrorforge.domain import HEAD
from mirrorforge.services.version_resolver import (
    VersionResolver,
    parse_version_tag,
    prerelease_key,
    select_tag,
)


class TestParseVersionTag:
    """Tests for recognizing version tags."""

    @pytest.mark.parametrize("tag", ["v1.0.0", "1.0.0", "v2", "v1.10.3"])
    def test_final_releases(self, tag):
        parsed = parse_version_tag(tag)
        assert parsed is not None
        assert parsed[1] == ()

    @pytest.mark.parametrize(
        "tag",
        ["v1.0.0-rc1", "1.0.0-beta2", "v1.0.0-rc.1", "v1.0.0-foo", "v1.0.0-beta.x", "v2.0.0-SNAPSHOT", "v1.0.0-1"],
    )
    def test_prereleases(self, tag):
        parsed = parse_version_tag(tag)
        assert parsed is not None
        assert parsed[1] != ()

    @pytest.mark.parametrize("tag", ["latest", "release-1.0", "v", "1.0.x", "v1.0.0+build", "v1.0.0-", "v1.0.0-a..b"])
    def test_not_version_tags(self, tag):
        assert parse_version_tag(tag) is None


class TestPrereleaseKey:
    """Tests for semantic versioning pre-release precedence."""

    @pytest.mark.parametrize("lower,higher", [
        ("1", "rc1"),
        ("alpha", "dev"),
        ("alpha", "alpha.1"),
        ("alpha.1", "alpha.beta"),
        ("beta.2", "beta.11"),
        ("beta.11", "rc.1"),
        ("SNAPSHOT", "alpha"),
        ("2", "10"),
    ])
    def test_ordering(self, lower, higher):
        assert prerelease_key(lower) < prerelease_key(higher)

    def test_numeric_identifiers_compare_as_numbers(self):
        assert prerelease_key("rc.010") == prerelease_key("rc.10")


class TestSelectTag:
    """Tests for choosing the tag to pin."""

    def test_final_beats_greater_prerelease(self):
        """Test a final release wins over a newer pre-release."""
        selection = select_tag(["v1.2.0", "v1.3.0-rc1"])
        assert selection.tag == "v1.2.0"
        assert selection.final_tag == "v1.2.0"
        assert selection.prerelease_tag == "v1.3.0-rc1"

    def test_greatest_prerelease_without_finals(self):
        """Test the greatest pre-release is chosen when no final exists."""
        assert select_tag(["v1.0.0-beta1", "v1.0.0-beta2"]).tag == "v1.0.0-beta2"

    def test_no_tags_means_head(self):
        """Test an untagged repository is pinned to HEAD."""
        selection = select_tag([])
        assert selection.tag == HEAD
        assert selection.prerelease_tag is None

    def test_numeric_ordering(self):
        """Test versions compare numerically, not lexically."""
        assert select_tag(["v1.9.0", "v1.10.0", "v1.2.0"]).tag == "v1.10.0"

    def test_ignores_non_version_tags(self):
        """Test other tags don't affect the choice."""
        assert select_tag(["latest", "v0.9.0", "nightly", "v1.0.0-foo"]).tag == "v0.9.0"

    def test_alphanumeric_prerelease_beats_numeric(self):
        assert select_tag(["v1.0.0-1", "v1.0.0-rc1"]).tag == "v1.0.0-rc1"
        assert select_tag(["v1.0.0-rc1", "v1.0.0-1"]).tag == "v1.0.0-rc1"

    def test_prerelease_labels_compare_lexically(self):
        """Test labels order as text, with no special meaning for dev."""
        assert select_tag(["v1.0.0-alpha", "v1.0.0-dev"]).tag == "v1.0.0-dev"

    def test_arbitrary_label_is_pinned(self):
        selection = select_tag(["v2.0.0-SNAPSHOT"])
        assert selection.tag == "v2.0.0-SNAPSHOT"
        assert selection.final_tag is None

    def test_dotted_prerelease_identifiers(self):
        tags = ["v1.0.0-beta.2", "v1.0.0-beta.11", "v1.0.0-beta.x", "v1.0.0-beta"]
        assert select_tag(tags).tag == "v1.0.0-beta.x"

    def test_greater_core_beats_greater_label(self):
        assert select_tag(["v1.0.0-rc1", "v1.1.0-alpha"]).tag == "v1.1.0-alpha"

    def test_equal_versions_first_wins(self):
        """Test the first of equal versions is kept."""
        assert select_tag(["v1.0", "1.0.0"]).tag == "v1.0"

    def test_order_independent(self):
        """Test the choice doesn't depend on listing order."""
        tags = ["v1.0.0", "v2.0.0-rc1", "v1.5.0", "v0.1.0"]
        assert select_tag(tags).tag == select_tag(reversed(tags)).tag == "v1.5.0"


class TestVersionResolver:
    """Tests for resolving a mirror to a commit."""

    def test_resolves_selected_tag(self):
        git = MagicMock()
        git.tags.return_value = ["v1.0.0", "v1.1.0-rc1"]
        git.commit_of.return_value = "a" * 40

        version = VersionResolver(git).resolve("m", "https://example.com/x.git")

        git.commit_of.assert_called_once_with("m", "v1.0.0")
        assert version.tag == "v1.0.0"
        assert version.commit == "a" * 40
        assert version.prerelease_tag == "v1.1.0-rc1"
        assert version.remote == "https://example.com/x.git"

    def test_tag_listing_failure(self):
        git = MagicMock()
        git.tags.return_value = None
        assert VersionResolver(git).resolve("m", "r") is None

    def test_unresolvable_tag_fails(self):
        """Test a tag that can't be resolved fails the mirror."""
        git = MagicMock()
        git.tags.return_value = ["v1.0.0"]
        git.commit_of.return_value = None
        assert VersionResolver(git).resolve("m", "r") is None

    def test_empty_repository_pins_head(self):
        """Test HEAD stands in for the commit of an empty repository."""
        git = MagicMock()
        git.tags.return_value = []
        git.commit_of.return_value = None

        version = VersionResolver(git).resolve("m", "r")

        assert version.tag == HEAD
        assert version.commit == HEAD
