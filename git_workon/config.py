"""Configuration handling for git-workon

All settings live in git's own config under the ``workon`` section:

    # Global config (~/.gitconfig) - personal preferences
    [workon]
      defaultBranch = main

    # Per-repo config - project-specific
    [workon]
      postCreateHook = npm install
      copyPattern = .env.local
      copyExclude = .env.production
      autoCopyUntracked = true
      pruneProtectedBranches = develop
      pruneProtectedBranches = release/*
      prFormat = pr-{number}

Precedence: CLI override > local > global > built-in default. Multi-value
keys are never merged across scopes: the first scope defining the key wins.
"""

import re
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from git_workon.constants import (
    DEFAULT_HOOK_TIMEOUT,
    DEFAULT_PR_FORMAT,
    GIT_FALSE_VALUES,
    GIT_TRUE_VALUES,
    KEY_AUTO_COPY_UNTRACKED,
    KEY_COPY_EXCLUDE,
    KEY_COPY_PATTERN,
    KEY_DEFAULT_BRANCH,
    KEY_HOOK_TIMEOUT,
    KEY_POST_CREATE_HOOK,
    KEY_PR_FORMAT,
    KEY_PROTECTED_BRANCHES,
    PR_FORMAT_PLACEHOLDERS,
    SCOPE_CLI,
    SCOPE_DEFAULT,
    STORE_SCOPES,
)
from git_workon.exceptions import ConfigError
from git_workon.logging_config import get_logger
from git_workon.services.branch_validation_service import branch_name_error, is_valid_protected_pattern
from git_workon.services.copy_service import glob_pattern_error

logger = get_logger(__name__)


def _parse_branch(key: str, scope: str, value: str) -> str:
    value = value.strip()
    error = branch_name_error(value)
    if error:
        raise ConfigError(key, scope, error, value)
    return value


def _parse_bool(key: str, scope: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    # A bare "[workon] autoCopyUntracked" line means true in git
    text = str(value).strip().lower()
    if text in GIT_TRUE_VALUES or text == "":
        return True
    if text in GIT_FALSE_VALUES:
        return False
    raise ConfigError(key, scope, "expected a boolean (true/false, yes/no, on/off, 1/0)", str(value))


def _parse_timeout(key: str, scope: str, value: Any) -> int:
    try:
        seconds = int(str(value).strip())
    except ValueError:
        raise ConfigError(key, scope, "expected a whole number of seconds", str(value))
    if seconds < 0:
        raise ConfigError(key, scope, "timeout cannot be negative (use 0 to disable)", str(value))
    return seconds


def _parse_pr_format(key: str, scope: str, value: str) -> str:
    if "{number}" not in value:
        raise ConfigError(key, scope, "format must contain the {number} placeholder", value)
    remaining = value
    for placeholder in PR_FORMAT_PLACEHOLDERS:
        remaining = remaining.replace(placeholder, "")
    if re.search(r"[{}]", remaining):
        raise ConfigError(
            key, scope, f"invalid placeholder, valid placeholders are {', '.join(PR_FORMAT_PLACEHOLDERS)}", value
        )
    return value


def _parse_non_empty(key: str, scope: str, value: str) -> str:
    if not value.strip():
        raise ConfigError(key, scope, "value cannot be empty", value)
    return value


def _parse_copy_pattern(key: str, scope: str, value: str) -> str:
    error = glob_pattern_error(value)
    if error:
        raise ConfigError(key, scope, error, value)
    return value


def _parse_protected(key: str, scope: str, value: str) -> str:
    value = value.strip()
    if not is_valid_protected_pattern(value):
        raise ConfigError(
            key, scope, "pattern must be an exact branch name, '*' or '<namespace>/*'", value
        )
    return value


@dataclass(frozen=True)
class ConfigKey:
    """Definition of one recognized configuration key."""

    name: str
    multi: bool
    default: Any
    parse: Callable[[str, str, Any], Any]


CONFIG_KEYS: Dict[str, ConfigKey] = {
    k.name: k
    for k in (
        ConfigKey(KEY_DEFAULT_BRANCH, False, None, _parse_branch),
        ConfigKey(KEY_POST_CREATE_HOOK, True, (), _parse_non_empty),
        ConfigKey(KEY_COPY_PATTERN, True, (), _parse_copy_pattern),
        ConfigKey(KEY_COPY_EXCLUDE, True, (), _parse_copy_pattern),
        ConfigKey(KEY_AUTO_COPY_UNTRACKED, False, False, _parse_bool),
        ConfigKey(KEY_PROTECTED_BRANCHES, True, (), _parse_protected),
        ConfigKey(KEY_PR_FORMAT, False, DEFAULT_PR_FORMAT, _parse_pr_format),
        ConfigKey(KEY_HOOK_TIMEOUT, False, DEFAULT_HOOK_TIMEOUT, _parse_timeout),
    )
}


@dataclass(frozen=True)
class ResolvedValue:
    """A configuration value together with the scope it came from."""

    key: str
    value: Any
    scope: str


@dataclass
class WorkonConfig:
    """Fully resolved configuration for one invocation."""

    default_branch: Optional[str] = None
    post_create_hooks: List[str] = field(default_factory=list)
    copy_patterns: List[str] = field(default_factory=list)
    copy_excludes: List[str] = field(default_factory=list)
    auto_copy_untracked: bool = False
    protected_branches: List[str] = field(default_factory=list)
    pr_format: str = DEFAULT_PR_FORMAT
    hook_timeout: int = DEFAULT_HOOK_TIMEOUT

    def to_dict(self) -> dict:
        """Convert config to dictionary for display."""
        return {
            KEY_DEFAULT_BRANCH: self.default_branch,
            KEY_POST_CREATE_HOOK: self.post_create_hooks,
            KEY_COPY_PATTERN: self.copy_patterns,
            KEY_COPY_EXCLUDE: self.copy_excludes,
            KEY_AUTO_COPY_UNTRACKED: self.auto_copy_untracked,
            KEY_PROTECTED_BRANCHES: self.protected_branches,
            KEY_PR_FORMAT: self.pr_format,
            KEY_HOOK_TIMEOUT: self.hook_timeout,
        }


class ConfigResolver:
    """Resolves workon settings for one invocation.

    Args:
        store: Object with ``get_scoped(key, scope)`` and
            ``get_all_scoped(key, scope)`` (see GitConfigStore)
        overrides: CLI overrides keyed by config key; ``None`` values are
            treated as "not given"
    """

    def __init__(self, store, overrides: Optional[Dict[str, Any]] = None):
        self.store = store
        self.overrides = {k: v for k, v in (overrides or {}).items() if v is not None}
        unknown = set(self.overrides) - set(CONFIG_KEYS)
        if unknown:
            raise ValueError(f"Unknown config keys: {', '.join(sorted(unknown))}")

    def _definition(self, key: str) -> ConfigKey:
        try:
            return CONFIG_KEYS[key]
        except KeyError:
            raise ValueError(f"Unknown config key '{key}'")

    def resolve(self, key: str) -> ResolvedValue:
        """Resolve one key, validating it in the scope it came from.

        Raises:
            ConfigError: if the winning value is invalid
        """
        definition = self._definition(key)

        if key in self.overrides:
            raw = self.overrides[key]
            scope = SCOPE_CLI
        else:
            raw, scope = None, SCOPE_DEFAULT
            for store_scope in STORE_SCOPES:
                if definition.multi:
                    values = self.store.get_all_scoped(key, store_scope)
                    if values:
                        raw, scope = values, store_scope
                        break
                else:
                    value = self.store.get_scoped(key, store_scope)
                    if value is not None:
                        raw, scope = value, store_scope
                        break

        if scope == SCOPE_DEFAULT:
            value = list(definition.default) if definition.multi else definition.default
            return ResolvedValue(key, value, scope)

        if definition.multi:
            items = [raw] if isinstance(raw, str) else list(raw)
            value = [definition.parse(key, scope, item) for item in items]
        else:
            value = definition.parse(key, scope, raw)

        logger.debug(f"Resolved {key} = {value!r} from {scope} scope")
        return ResolvedValue(key, value, scope)

    def get(self, key: str) -> Any:
        return self.resolve(key).value

    def resolve_all(self) -> WorkonConfig:
        """Resolve every recognized key."""
        return WorkonConfig(
            default_branch=self.get(KEY_DEFAULT_BRANCH),
            post_create_hooks=self.get(KEY_POST_CREATE_HOOK),
            copy_patterns=self.get(KEY_COPY_PATTERN),
            copy_excludes=self.get(KEY_COPY_EXCLUDE),
            auto_copy_untracked=self.get(KEY_AUTO_COPY_UNTRACKED),
            protected_branches=self.get(KEY_PROTECTED_BRANCHES),
            pr_format=self.get(KEY_PR_FORMAT),
            hook_timeout=self.get(KEY_HOOK_TIMEOUT),
        )
