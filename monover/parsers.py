"""Boundary validation of structured input.

Anything that crosses into the engine from outside (git output already split
into fields, manifest JSON/TOML, regex match groups) is validated here with the
Pydantic models and reported as ``Valid`` or ``Invalid``. Callers decide
whether an ``Invalid`` is fatal (``require_valid``) or dropped.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from .models import Commit, ConventionalCommitSubject, PackageManifest
from .results import Invalid, Valid, Validation

M = TypeVar("M", bound=BaseModel)


def _validate(model: type[M], data: object, what: str) -> Validation[M]:
    if not isinstance(data, Mapping):
        return Invalid(f"Expected {what} to be an object")
    try:
        return Valid(model.model_validate(dict(data)))
    except ValidationError as exc:
        problems = "; ".join(
            f"{what}.{'.'.join(str(p) for p in err['loc'])}: {err['msg']}"
            for err in exc.errors()
        )
        return Invalid(problems)


def parse_commit(data: object) -> Validation[Commit]:
    """Validate ``{abbrev_hash, subject, body}`` fields parsed from git log."""
    return _validate(Commit, data, "commit")


def parse_package_manifest(data: object) -> Validation[PackageManifest]:
    """Validate a decoded ``package.json`` (or an equivalent mapping)."""
    return _validate(PackageManifest, data, "manifest")


def parse_conventional_commit_subject(
    data: object,
) -> Validation[ConventionalCommitSubject]:
    """Validate the fields of a conventional commit subject.

    ``type`` must be ``feat`` or ``fix``, ``breaking`` a real bool; values of
    the wrong type are Invalid rather than coerced.
    """
    return _validate(ConventionalCommitSubject, data, "subject")


def subject_fields(groups: Mapping[str, Any]) -> dict[str, Any]:
    """Turn regex match groups into subject fields (``!`` becomes a bool)."""
    return {
        "type": groups.get("type"),
        "scope": groups.get("scope"),
        "breaking": groups.get("breaking") == "!",
        "description": groups.get("description"),
    }
