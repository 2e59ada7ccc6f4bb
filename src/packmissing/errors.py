"""Exception types raised while computing missing-content reports."""


class PackMissingError(Exception):
    """Base class for errors raised by packmissing."""


class UnsupportedEditionError(PackMissingError):
    """The pack has no repository configured for the requested edition."""

    def __init__(self, pack: str, edition: str):
        super().__init__(f"{pack} doesn't support {edition.title()} Edition.")
        self.pack = pack
        self.edition = edition


class SyncError(PackMissingError):
    """A git command failed while cloning or updating a local repository.

    Attributes:
        command: The command line that failed
        returncode: Exit status, or None when the process could not be started
        stderr: Captured standard error output (may be empty)
    """

    def __init__(self, command: list[str], returncode: int | None, stderr: str = ""):
        self.command = command
        self.returncode = returncode
        self.stderr = stderr

        message = f"'{' '.join(command)}' failed"
        if returncode is not None:
            message += f" with exit status {returncode}"
        if stderr:
            message += f": {stderr.strip()}"
        super().__init__(message)


class EmptyBaselineError(PackMissingError):
    """The baseline tree yielded no files after filtering, so completion is undefined."""

    def __init__(self, edition: str, path):
        super().__init__(f"No baseline files found for {edition} under {path}; "
                         f"check the repository sync and filter settings.")
        self.edition = edition
        self.path = path


class CatalogUnavailableError(PackMissingError):
    """The catalog service could not be reached or returned an unusable response."""


class DisplayReconciliationError(PackMissingError):
    """Updating a progress display failed. Never propagated past the reconciler."""
