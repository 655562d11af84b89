# Copyright (c) Syntropy Systems
"""Error taxonomy for promptvc.

Every error carries the CLI exit code it maps to, so commands can report a
one-line cause and exit without inspecting messages.
"""

from __future__ import annotations

from typing import ClassVar


class PvcError(Exception):
    """Base class for all promptvc errors."""

    exit_code: ClassVar[int] = 1


class ValidationError(PvcError):
    """Invalid user input (empty commit message, malformed field, bad digest)."""


class NothingToCommitError(ValidationError):
    """Commit requested with an empty staging index."""

    exit_code: ClassVar[int] = 3


class RepositoryNotInitializedError(PvcError):
    """No .pvc directory could be found."""

    exit_code: ClassVar[int] = 2


class AlreadyInitializedError(PvcError):
    """init called on a directory that already has a .pvc directory."""


class CorruptRepositoryError(PvcError):
    """Repository metadata is inconsistent (e.g. a cycle in the parent chain)."""


class NotFoundError(PvcError):
    """Missing object, unresolvable reference or unknown test run."""

    exit_code: ClassVar[int] = 4


class DatasetParseError(PvcError):
    """Dataset file could not be read or does not match the schema."""

    exit_code: ClassVar[int] = 4


class AuthError(PvcError):
    """Provider credential is missing."""

    exit_code: ClassVar[int] = 3


class ProviderError(PvcError):
    """A single generation request failed.

    The test engine retries these per case; they only reach the caller as
    failed case results.
    """

    exit_code: ClassVar[int] = 5
