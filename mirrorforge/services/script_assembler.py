"""
Script assembly for mirrorforge.

Turns a BuildPlan into a POSIX shell script that installs the
framework and every module at their pinned commits. Modules already
present in the target tree are left alone, so re-running the script
over a partially populated tree only installs what is missing.
"""

import shlex

from ..domain import BuildPlan, ResolvedVersion

HEADER = """#!/bin/sh
set -exo pipefail
"""


class ScriptAssembler:
    """
    Renders BuildPlans to install scripts.

    The output depends on nothing but the plan, so equal plans render
    to identical bytes.

    Example:
        script = ScriptAssembler(target="icingaweb2").assemble(plan)
        Path("install.sh").write_bytes(script)
    """

    def __init__(self, target: str = "icingaweb2", temp_dir: str = "mirrorforge-temp"):
        """
        Initialize ScriptAssembler.

        Args:
            target: Directory the framework is extracted to;
                modules go to `<target>/modules/<module>/`
            temp_dir: Scratch clone directory used by the script
        """
        self.target = target.strip("/")
        self.temp_dir = temp_dir

    def _clone(self, version: ResolvedVersion, prefix: str, indent: str = "") -> str:
        temp = shlex.quote(self.temp_dir)
        lines = [
            f"rm -rf {temp}",
            f"git clone --bare {shlex.quote(version.remote)} {temp}",
            f"# {version.tag}",
            f"git -C {temp} archive {shlex.quote('--prefix=' + prefix)} "
            f"{shlex.quote(version.commit)} | tar -x",
        ]
        return "".join(f"{indent}{line}\n" for line in lines)

    def assemble(self, plan: BuildPlan) -> bytes:
        """
        Render a plan.

        Returns:
            Script bytes (UTF-8)
        """
        parts = [HEADER, "\n", self._clone(plan.framework, f"{self.target}/")]

        for module_id, version in plan.sorted_modules():
            module_dir = f"{self.target}/modules/{module_id}"
            parts.append(
                f"\nif [ ! -e {shlex.quote(module_dir)} ]; then\n"
                + self._clone(version, f"{module_dir}/", indent="\t")
                + "fi\n"
            )

        parts.append(f"\nrm -rf {shlex.quote(self.temp_dir)}\n")

        return "".join(parts).encode('utf-8')
