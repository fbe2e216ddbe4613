"""Exception hierarchy shared by the runner components."""

from __future__ import annotations


class CheckRunnerError(Exception):
    """Base class for all runner errors."""


class WorkspaceError(CheckRunnerError):
    """Raised when the workspace cannot be provisioned or read."""

    def __init__(self, path: str, message: str) -> None:
        self.path = path
        self.message = message
        super().__init__(f"Workspace error at {path}: {message}")


class MissingArtifactError(CheckRunnerError):
    """Raised when a playbook or inventory file is missing from the workspace."""

    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(f"Missing artifact: {path}")


class PlaybookError(CheckRunnerError):
    """Raised when ansible-playbook fails, times out or cannot be started."""

    def __init__(self, playbook: str, returncode: int, output: str = "") -> None:
        self.playbook = playbook
        self.returncode = returncode
        self.output = output
        super().__init__(f"Playbook {playbook} failed with exit code {returncode}")


class RetryExhaustedError(CheckRunnerError):
    """Raised when every retry attempt failed. Carries only the last error."""

    def __init__(self, attempts: int, last_error: BaseException | None) -> None:
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(f"Gave up after {attempts} attempts: {last_error}")


class CatalogNotReadyError(CheckRunnerError):
    """Raised when the catalog is requested before the first successful build."""


class RetryCancelledError(CheckRunnerError):
    """Raised when the shutdown signal arrives while a retry loop is waiting."""

    def __init__(self, attempts: int, last_error: BaseException | None) -> None:
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(f"Retry cancelled after {attempts} attempts")
