"""Error taxonomy for release-notes sessions.

Every error that reaches a client is rendered with ``str(error)``, so the
messages below are written for humans rather than machines.
"""

from __future__ import annotations


class ReleaseNotesError(Exception):
    """Base class for expected, reportable failures."""

    default_message = "Release notes generation failed."

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message)


# --- inbound request ---
class UnsupportedFormat(ReleaseNotesError):
    default_message = "Unable to parse message."


class InvalidArguments(ReleaseNotesError):
    default_message = "Unable to parse message."


class EmptyFieldError(ReleaseNotesError):
    default_message = "A field has been left empty."


class SessionConnectionError(ReleaseNotesError):
    default_message = "Connection error: connection is dead."


# --- history extraction ---
class RepositoryError(ReleaseNotesError):
    default_message = "Unable to fetch the repository."


class RefNotFound(ReleaseNotesError):
    def __init__(self, name: str) -> None:
        super().__init__(f"Reference '{name}' could not be resolved to a commit.")
        self.name = name


class InvalidTagOrder(ReleaseNotesError):
    default_message = "prev_release_tag doesn't predate release_tag."


class AncestryNotFound(ReleaseNotesError):
    default_message = "prev_release_tag doesn't precede release_tag."


# --- generation backend ---
class MissingCredential(ReleaseNotesError):
    default_message = "No OpenAI API Key"


class UpstreamError(ReleaseNotesError):
    default_message = "Error fetching tokens."


class UpstreamParseError(UpstreamError):
    default_message = "Error parsing response."


class UpstreamTransportError(UpstreamError):
    default_message = "Connection to the generation backend failed."


# --- job lifecycle ---
class JobTimeout(ReleaseNotesError):
    def __init__(self, seconds: float) -> None:
        super().__init__(f"Release notes generation timed out after {seconds:g} seconds.")
        self.seconds = seconds


class JobPanic(ReleaseNotesError):
    """Unexpected failure inside the background job (a defect, not a domain error)."""

    def __init__(self, detail: str) -> None:
        super().__init__(f"Release notes job crashed: {detail}")
        self.detail = detail
