"""
Domain exceptions of the build pipeline.

Each exception carries the HTTP status the API layer answers with, so the
exception handlers need no per-type mapping table.
"""

from __future__ import annotations


class SiteDeployError(Exception):
    """Base class of every error raised by the build pipeline."""

    status_code: int = 400

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class SiteNotFoundError(SiteDeployError):
    status_code = 404

    def __init__(self, site_ref: int | str) -> None:
        super().__init__(f"Site not found: {site_ref}")
        self.site_ref = site_ref


class BuildGroupNotFoundError(SiteDeployError):
    status_code = 404

    def __init__(self, group_ref: int | str) -> None:
        super().__init__(f"Build group not found: {group_ref}")
        self.group_ref = group_ref


class EnvSourceNotFoundError(SiteDeployError):
    status_code = 404


class ScriptNotFoundError(SiteDeployError):
    status_code = 404

    def __init__(self, script_path: str) -> None:
        super().__init__(f"Shell script file not found: {script_path}")
        self.script_path = script_path


class LogFileNotFoundError(SiteDeployError):
    status_code = 404

    def __init__(self, log_path: str) -> None:
        super().__init__(f"Log file not found: {log_path}")
        self.log_path = log_path


class InvalidLogPathError(SiteDeployError):
    status_code = 400


class UnsafePathError(SiteDeployError):
    status_code = 400


class EnvFileWriteError(SiteDeployError):
    status_code = 500


class DuplicateSiteError(SiteDeployError):
    status_code = 409

    def __init__(self, site_name: str) -> None:
        super().__init__(f"Site already exists: {site_name}")
        self.site_name = site_name


class EmptyBuildGroupError(SiteDeployError):
    status_code = 400

    def __init__(self, group_name: str) -> None:
        super().__init__(f"Build group '{group_name}' has no sites")
        self.group_name = group_name


class InvalidEnvScopeError(SiteDeployError):
    status_code = 400


class AlertDeliveryError(SiteDeployError):
    status_code = 500

    def __init__(self, message: str = "Failed to send Telegram alert") -> None:
        super().__init__(message)


class FailedJobNotFoundError(SiteDeployError):
    status_code = 404

    def __init__(self, uuid: str) -> None:
        super().__init__(f"Failed job not found: {uuid}")
        self.uuid = uuid
