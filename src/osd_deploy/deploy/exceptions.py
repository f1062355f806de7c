"""
Deployment exceptions.

Custom exceptions for deploy failures with actionable error messages.
Every failure is fatal: the command layer turns these into a non-zero exit
and nothing in the library retries.
"""


class DeploymentError(Exception):
    """Base class for every failure that stops a deploy."""
    pass


class UsageError(DeploymentError):
    """
    Raised for an invalid build mode or target.

    Raised before any network action.
    """
    pass


class PreconditionError(DeploymentError):
    """
    Raised when a local precondition is not met.

    Examples:
        - REDIS_PASSWORD not configured
        - VERSION file missing
        - Package archive not found in the dist directory
    """
    pass


class ConnectivityError(DeploymentError):
    """
    Raised when the deploy host or the package store cannot be reached.

    The message carries remediation steps for the operator.
    """
    pass


class TransferError(DeploymentError):
    """
    Raised when writing an artifact (or the notification) fails.

    Artifacts already written in the batch stay written; no notification
    is sent for the incomplete batch.
    """
    pass
