"""End-to-end build cycles against local git remotes."""

import shlex
from unittest.mock import MagicMock

import pytest

from mirrorforge.config import compile_pattern
from mirrorforge.domain import Account, AccountKind, ModuleSpec, UnknownRepo, mirror_key
from mirrorforge.infra.github_client import GitHubClient
from mirrorforge.infra.process_runner import ExecutionContext
from mirrorforge.services.build_service import MIRRORS_DIR, BuildService
from mirrorforge.services.identity_resolver import MODULE_INFO
from mirrorforge.services.notify_service import NotifyService

ICINGA = Account("Icinga", AccountKind.ORG)
ALICE = Account("alice", AccountKind.USER)

SPECS = [
    ModuleSpec(ICINGA, (compile_pattern(r"\Aiw2-mod-(.+)\z"), compile_pattern(r"\Ano-mod-()"))),
    ModuleSpec(ALICE, (compile_pattern(r"\Aiw2-mod-(.+)\z"),), self_declared=True),
]

LISTINGS = {
    "Icinga": ["icingaweb2", "iw2-mod-foo", "iw2-mod-bar", "no-mod-tools", "stray"],
    "alice": ["declared", "plain"],
}


@pytest.fixture
def remotes(make_remote):
    make_remote("Icinga/icingaweb2", [({"index.php": "1"}, "v2.0.0"), ({"index.php": "2"}, "v2.1.0")])
    make_remote("Icinga/iw2-mod-foo", [({"a": "1"}, "v1.0.0"), ({"a": "2"}, "v1.1.0-rc1")])
    make_remote("Icinga/iw2-mod-bar", [({"b": "1"}, None)])
    make_remote("Icinga/no-mod-tools", [({"t": "1"}, None)])
    make_remote("Icinga/stray", [({"s": "1"}, None)])
    make_remote("alice/declared", [({MODULE_INFO: "Module: baz\n"}, None)])
    make_remote("alice/plain", [({"p": "1"}, "v0.1.0")])
    return make_remote


@pytest.fixture
def github():
    client = MagicMock(spec=GitHubClient)
    client.list_public_repos.side_effect = lambda account: list(LISTINGS[account.name])
    return client


@pytest.fixture
def service(tmp_path, remotes, github):
    return BuildService(
        framework="Icinga/icingaweb2",
        specs=SPECS,
        context=ExecutionContext(4),
        workdir=tmp_path / "work",
        github=github,
        remote_prefix=remotes.prefix,
    )


def commit_of(run_git, remotes, full_name, ref):
    return run_git(f"{remotes.prefix}{full_name}.git", "rev-parse", f"{ref}^{{commit}}")


class TestBuild:
    """Tests for BuildService.build."""

    def test_plan(self, service, remotes, run_git):
        assert service.build() is not None

        plan = service.last_plan
        assert plan.framework.tag == "v2.1.0"
        assert plan.framework.commit == commit_of(run_git, remotes, "Icinga/icingaweb2", "v2.1.0")
        assert sorted(plan.modules) == ["bar", "baz", "foo"]
        assert plan.modules["foo"].tag == "v1.0.0"
        assert plan.modules["foo"].commit == commit_of(run_git, remotes, "Icinga/iw2-mod-foo", "v1.0.0")
        assert plan.modules["bar"].tag == "HEAD"
        assert plan.modules["bar"].commit == commit_of(run_git, remotes, "Icinga/iw2-mod-bar", "HEAD")
        assert plan.modules["baz"].remote == f"{remotes.prefix}alice/declared.git"

    def test_unknown_repositories(self, service):
        """Test identified and ignored repositories aren't reported."""
        service.build()
        assert service.last_unknown == [UnknownRepo("Icinga", "stray"), UnknownRepo("alice", "plain")]

    def test_script(self, service, remotes):
        script = service.build().decode('utf-8')

        assert script.startswith("#!/bin/sh\nset -exo pipefail\n")
        assert f"git clone --bare {shlex.quote(remotes.prefix + 'Icinga/icingaweb2.git')} " in script
        positions = [script.index(f"if [ ! -e icingaweb2/modules/{m} ]; then") for m in ("bar", "baz", "foo")]
        assert positions == sorted(positions)
        assert "stray" not in script
        assert "no-mod-tools" not in script

    def test_mirrors(self, service, tmp_path):
        """Test exactly the framework, modules and self-declaring candidates are mirrored."""
        service.build()
        mirrored = {p.name for p in (tmp_path / "work" / MIRRORS_DIR).iterdir()}
        assert mirrored == {
            mirror_key(name) for name in (
                "Icinga/icingaweb2", "Icinga/iw2-mod-foo", "Icinga/iw2-mod-bar",
                "alice/declared", "alice/plain",
            )
        }

    def test_rebuild_identical(self, service):
        """Test an unchanged world renders an identical script."""
        assert service.build() == service.build()

    def test_dropped_module_pruned(self, service, github, tmp_path):
        service.build()
        listing = {"Icinga": ["icingaweb2", "iw2-mod-foo"], "alice": []}
        github.list_public_repos.side_effect = lambda account: list(listing[account.name])

        script = service.build().decode('utf-8')

        assert "modules/bar" not in script
        mirrored = {p.name for p in (tmp_path / "work" / MIRRORS_DIR).iterdir()}
        assert mirrored == {mirror_key("Icinga/icingaweb2"), mirror_key("Icinga/iw2-mod-foo")}

    def test_discovery_failure(self, service, github):
        github.list_public_repos.side_effect = lambda account: None if account == ALICE else ["icingaweb2"]
        assert service.build() is None
        assert service.last_plan is None

    def test_mirror_failure(self, service, github):
        """Test a module whose remote is gone fails the whole cycle."""
        github.list_public_repos.side_effect = lambda account: (
            ["icingaweb2", "iw2-mod-missing"] if account == ICINGA else []
        )
        assert service.build() is None

    def test_notify_filters_non_modules(self, service, tmp_path):
        """Test mirrored repositories without module.info aren't reported."""
        service.build()
        notify = NotifyService(ExecutionContext(2), tmp_path / "work" / MIRRORS_DIR)
        assert notify.filter(service.last_unknown) == [UnknownRepo("Icinga", "stray")]
