"""Domain errors raised by the matching and assignment workflow."""

from typing import Optional


class MatchingError(Exception):
    """Base class for workflow errors surfaced to callers."""
    pass


class IssueNotFoundError(MatchingError):
    """The issue does not exist or is not visible with the configured token."""

    def __init__(self, repository: str, issue_number: int):
        super().__init__(f"Issue {repository}#{issue_number} not found")
        self.repository = repository
        self.issue_number = issue_number


class NoCandidatesError(MatchingError):
    """No commenter could be turned into a scorable candidate."""

    NO_COMMENTERS = "no commenters found"
    NO_ANALYZABLE = "no analyzable candidates"

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


class AlreadyAssignedError(MatchingError):
    """An assignment record already exists for the issue."""

    def __init__(self, repository: str, issue_number: int, assigned_to: Optional[str] = None):
        message = f"Issue {repository}#{issue_number} is already assigned"
        if assigned_to:
            message = f"{message} to {assigned_to}"
        super().__init__(message)
        self.repository = repository
        self.issue_number = issue_number
        self.assigned_to = assigned_to


class AssignmentNotFoundError(MatchingError):
    """No assignment record has the given id."""

    def __init__(self, record_id: str):
        super().__init__(f"Assignment {record_id} not found")
        self.record_id = record_id


class InvalidStatusTransitionError(MatchingError):
    """The requested status change is not allowed from the current status."""

    def __init__(self, current: str, requested: str):
        super().__init__(f"Cannot move assignment from {current} to {requested}")
        self.current = current
        self.requested = requested
