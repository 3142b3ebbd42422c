"""Exception hierarchy for monover.

Everything the engine raises on purpose derives from MonoverError so the CLI
can turn it into a clean error message. Expected noise in a repository
(unrelated tags, non-conventional commits) never raises; see monover.results.
"""

from __future__ import annotations


class MonoverError(Exception):
    """Base class for all monover errors."""


class ConfigError(MonoverError):
    """Configuration is missing or malformed."""


class BranchNotConfiguredError(ConfigError):
    """The current branch is neither the stable nor the prerelease branch."""

    def __init__(self, branch: str) -> None:
        super().__init__(f"Current branch {branch!r} not found in config")
        self.branch = branch


class MissingPrereleaseIdentifierError(ConfigError):
    """A prerelease version was requested without a prerelease identifier."""

    def __init__(self) -> None:
        super().__init__("prerelease identifier is required on the prerelease branch")


class UnsupportedPackageManagerError(MonoverError):
    """A package manager identifier reached a branch that does not handle it."""

    def __init__(self, package_manager: object) -> None:
        super().__init__(f"Unsupported package manager: {package_manager}")
        self.package_manager = package_manager


class DependencyVersionError(MonoverError):
    """A bumped workspace dependency cannot be resolved to a next version."""


class DependencyCycleError(MonoverError):
    """The workspace dependency graph contains a cycle."""

    def __init__(self, members: set[str]) -> None:
        super().__init__(
            f"Dependency cycle detected involving: {', '.join(sorted(members))}"
        )
        self.members = members


class ManifestError(MonoverError):
    """A package manifest could not be read or validated."""


class ParseError(MonoverError):
    """Structured input had the wrong shape."""


class GitError(MonoverError):
    """A git command failed."""

    def __init__(self, args: tuple[str, ...], returncode: int, stderr: str) -> None:
        cmd = " ".join(("git", *args[:3]))
        if len(args) > 3:
            cmd += " ..."
        super().__init__(f"{cmd} failed (exit {returncode}): {stderr.strip()}")
        self.git_args = args
        self.returncode = returncode
        self.stderr = stderr
