#!/usr/bin/env python3

import os
import re
import json
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import logging
import sys

import yaml
from croniter import croniter
from rapidfuzz import process as fuzzy

from .domain import Account, AccountKind, ModuleSpec, GITHUB_PREFIX
from .exit_codes import ConfigError
from .services.deploy_service import DeploySettings

logger = logging.getLogger("mirrorforge")

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

# Level names accepted in config files
LOG_LEVELS = {
    "trace": logging.DEBUG,
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "fatal": logging.CRITICAL,
    "panic": logging.CRITICAL,
    "critical": logging.CRITICAL,
}

ENV_PREFIX = "MIRRORFORGE_"
DEFAULT_CONFIG_FILE = "config.yml"


def configure_logging(level: str = "info") -> None:
    """Send log records of at least `level` to stderr."""
    root = logging.getLogger()
    if not any(getattr(h, "_mirrorforge", False) for h in root.handlers):
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._mirrorforge = True
        root.addHandler(handler)

    old = logging.getLevelName(root.level)
    root.setLevel(LOG_LEVELS.get(level.lower(), logging.INFO))
    logger.debug(f"Changed log level from {old} to {level}")


def suggest_log_level(bad: str) -> str:
    """Closest valid log level name to a misspelled one."""
    match = fuzzy.extractOne(bad.lower(), list(LOG_LEVELS))
    return match[0] if match else "info"


def get_config_path(explicit: Optional[str] = None) -> Path:
    """Get the path to the configuration file.

    Checks in order:
    1. Explicitly given path (--config)
    2. MIRRORFORGE_CONFIG environment variable
    3. config.yml in the current directory
    """
    if explicit:
        return Path(explicit)
    if 'MIRRORFORGE_CONFIG' in os.environ:
        return Path(os.environ['MIRRORFORGE_CONFIG'])
    return Path(DEFAULT_CONFIG_FILE)


def get_default_config() -> Dict[str, Any]:
    """Get default configuration."""
    return {
        "log": {
            "level": "info"
        },
        "build": {
            "every": "",
            "target": "icingaweb2",
            "workdir": ".",
            "max_processes": 0
        },
        "github": {
            "framework": "",
            "token": "",
            "url": GITHUB_PREFIX,
            "mods": []
        },
        "deploy": {
            "remote": "",
            "config": {},
            "script": "",
            "commit": ""
        },
        "notify": {
            "email": ""
        }
    }


def load_config(path: Optional[Path] = None) -> Dict[str, Any]:
    """
    Load configuration from file.

    YAML is the native format; `.json` and `.toml` files are read too.

    Raises:
        ConfigError: The file can't be read or parsed
    """
    config_path = Path(path) if path else get_config_path()
    logger.info(f"Loading config from {config_path}")

    try:
        if config_path.suffix.lower() == '.toml':
            with open(config_path, 'rb') as f:
                file_config = tomllib.load(f)
        elif config_path.suffix.lower() == '.json':
            with open(config_path, 'r') as f:
                file_config = json.load(f)
        else:
            with open(config_path, 'r') as f:
                file_config = yaml.safe_load(f)
    except OSError as e:
        raise ConfigError(f"Couldn't read config {config_path}: {e}") from e
    except (yaml.YAMLError, json.JSONDecodeError, tomllib.TOMLDecodeError) as e:
        raise ConfigError(f"Couldn't parse config {config_path}: {e}") from e

    if file_config is None:
        file_config = {}
    if not isinstance(file_config, dict):
        raise ConfigError(f"Config {config_path} is not a mapping")

    config = merge_configs(get_default_config(), file_config)
    return apply_env_overrides(config)


def merge_configs(base_config, override_config):
    """
    Recursively merge two configuration dictionaries.

    Args:
        base_config (dict): Base configuration
        override_config (dict): Configuration to merge/override with

    Returns:
        dict: Merged configuration
    """
    merged = base_config.copy()

    for key, value in override_config.items():
        if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
            merged[key] = merge_configs(merged[key], value)
        else:
            merged[key] = value

    return merged


def apply_env_overrides(config):
    """
    Apply environment variable overrides to configuration.
    Environment variables follow the pattern: MIRRORFORGE_SECTION_KEY
    For example: MIRRORFORGE_LOG_LEVEL=debug
    """
    for env_key, value in os.environ.items():
        if not env_key.startswith(ENV_PREFIX):
            continue

        key_parts = env_key[len(ENV_PREFIX):].lower().split('_')

        if value.lower() in ('true', 'yes', 'on'):
            typed_value = True
        elif value.lower() in ('false', 'no', 'off'):
            typed_value = False
        elif value.isdigit():
            typed_value = int(value)
        else:
            typed_value = value

        current_level = config
        i = 0
        while i < len(key_parts):
            # Longest config key that is a prefix of the remaining parts
            best_match_len = 0
            matched_key = None

            for config_key in current_level.keys():
                config_key_parts = config_key.split('_')
                if key_parts[i:i + len(config_key_parts)] == config_key_parts:
                    if len(config_key_parts) > best_match_len:
                        best_match_len = len(config_key_parts)
                        matched_key = config_key

            if not matched_key:
                break

            if i + best_match_len == len(key_parts):
                if not isinstance(current_level[matched_key], (dict, list)):
                    current_level[matched_key] = typed_value
                break

            if isinstance(current_level[matched_key], dict):
                current_level = current_level[matched_key]
                i += best_match_len
            else:
                break

    return config


def compile_pattern(pattern: str) -> re.Pattern:
    """
    Compile a repository pattern.

    Operators write `\\z` for "end of name"; Python spells it `\\Z`.

    Raises:
        re.error: The pattern doesn't compile
    """
    translated = re.sub(r'(?<!\\)((?:\\\\)*)\\z', r'\1\\Z', pattern)
    return re.compile(translated)


@dataclass
class Settings:
    """Validated configuration."""
    framework: str
    specs: List[ModuleSpec] = field(default_factory=list)
    log_level: str = "info"
    schedule: str = ""
    target: str = "icingaweb2"
    workdir: Path = Path(".")
    max_processes: int = 0
    github_token: str = ""
    github_url: str = GITHUB_PREFIX
    deploy: Optional[DeploySettings] = None
    notify_email: str = ""


def _text(value: Any) -> str:
    if isinstance(value, bool) or not isinstance(value, (str, int)):
        return ""
    return str(value).strip()


def _parse_mods(mods: Any, problems: List[str]) -> List[ModuleSpec]:
    if not isinstance(mods, list):
        problems.append("github.mods must be a list")
        return []

    specs = []
    for i, mod in enumerate(mods):
        if not isinstance(mod, dict):
            problems.append(f"github.mods[{i}] must be a mapping")
            continue

        if _text(mod.get("org")):
            account = Account(_text(mod["org"]), AccountKind.ORG)
        elif _text(mod.get("user")):
            account = Account(_text(mod["user"]), AccountKind.USER)
        else:
            problems.append(f"github.mods[{i}]: organization or user missing")
            account = None

        repos = mod.get("repos") or []
        if not isinstance(repos, list) or not repos:
            problems.append(f"github.mods[{i}]: repository patterns missing")
            repos = []

        patterns = []
        for raw in repos:
            try:
                pattern = compile_pattern(str(raw))
            except re.error as e:
                problems.append(f"github.mods[{i}]: bad repository pattern {raw!r}: {e}")
                continue
            if pattern.groups != 1:
                problems.append(
                    f"github.mods[{i}]: repository pattern {raw!r} has {pattern.groups} "
                    f"subpatterns instead of exactly one"
                )
                continue
            patterns.append(pattern)

        if account is not None:
            specs.append(ModuleSpec(
                account=account,
                patterns=tuple(patterns),
                self_declared=bool(mod.get("self_declared", False)),
            ))

    return specs


def _section(config: Dict[str, Any], name: str, problems: List[str]) -> Dict[str, Any]:
    section = config.get(name, {})
    if not isinstance(section, dict):
        problems.append(f"{name} must be a mapping")
        return {}
    return section


def parse_settings(
    config: Dict[str, Any],
    require_deploy: bool = True,
    require_schedule: bool = True
) -> Settings:
    """
    Validate a configuration dictionary.

    Args:
        config: Output of load_config()
        require_deploy: Whether the deploy section must be complete
        require_schedule: Whether a build schedule must be configured

    Returns:
        Settings

    Raises:
        ConfigError: Listing every problem found
    """
    problems: List[str] = []
    log = _section(config, "log", problems)
    build = _section(config, "build", problems)
    github = _section(config, "github", problems)
    deploy_section = _section(config, "deploy", problems)
    notify = _section(config, "notify", problems)

    log_level = _text(log.get("level")) or "info"
    if log_level.lower() not in LOG_LEVELS:
        problems.append(f"bad log level {log_level!r}, did you mean {suggest_log_level(log_level)!r}?")

    schedule = _text(build.get("every"))
    if not schedule:
        if require_schedule:
            problems.append("build schedule missing")
    elif not croniter.is_valid(schedule):
        problems.append(f"bad build schedule {schedule!r}")

    framework = _text(github.get("framework"))
    if not framework:
        problems.append("framework repository missing")
    elif framework.count("/") != 1:
        problems.append(f"framework repository {framework!r} is not of the form owner/name")

    specs = _parse_mods(github.get("mods", []), problems)

    deploy = None
    remote = _text(deploy_section.get("remote"))
    script = _text(deploy_section.get("script"))
    commit = _text(deploy_section.get("commit"))
    if remote or require_deploy:
        for name, value in (("repository", remote), ("path", script), ("commit message", commit)):
            if not value:
                problems.append(f"deploy {name} missing")
        git_config = deploy_section.get("config") or {}
        if not isinstance(git_config, dict):
            problems.append("deploy.config must be a mapping")
            git_config = {}
        deploy = DeploySettings(
            remote=remote,
            script=script,
            commit=commit,
            config={str(k): str(v) for k, v in git_config.items()},
        )

    try:
        max_processes = int(build.get("max_processes") or 0)
    except (TypeError, ValueError):
        problems.append(f"bad build.max_processes {build.get('max_processes')!r}")
        max_processes = 0
    if max_processes < 0:
        problems.append(f"build.max_processes must not be negative, got {max_processes}")

    if problems:
        for problem in problems:
            logger.error(f"Config problem: {problem}")
        raise ConfigError("; ".join(problems), problems=problems)

    return Settings(
        framework=framework,
        specs=specs,
        log_level=log_level.lower(),
        schedule=schedule,
        target=_text(build.get("target")) or "icingaweb2",
        workdir=Path(_text(build.get("workdir")) or ".").expanduser(),
        max_processes=max_processes,
        github_token=_text(github.get("token")),
        github_url=(_text(github.get("url")) or GITHUB_PREFIX).rstrip("/") + "/",
        deploy=deploy,
        notify_email=_text(notify.get("email")),
    )


def load_settings(
    path: Optional[Path] = None,
    require_deploy: bool = True,
    require_schedule: bool = True
) -> Settings:
    """Load and validate the configuration file."""
    return parse_settings(
        load_config(path),
        require_deploy=require_deploy,
        require_schedule=require_schedule,
    )
