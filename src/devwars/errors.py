"""Typed errors raised by the game core and mapped to HTTP responses at the boundary."""

from __future__ import annotations


class DevWarsError(Exception):
    """Base class for errors with a well-defined HTTP status."""

    status_code: int = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class BadRequestError(DevWarsError):
    status_code = 400


class InvalidTransition(BadRequestError):
    """A game status change that is not in the transition table."""


class UnauthorizedError(DevWarsError):
    status_code = 401


class ForbiddenError(DevWarsError):
    status_code = 403


class NotFoundError(DevWarsError):
    status_code = 404


class ConflictError(DevWarsError):
    status_code = 409


# --- Named conditions used across the game core ---


class AlreadyActivated(ConflictError):
    def __init__(self) -> None:
        super().__init__("The specified game is already activated.")


class AlreadyEnded(BadRequestError):
    def __init__(self) -> None:
        super().__init__("The game is already in a end state.")


class ApplicationAlreadyExists(ConflictError):
    def __init__(self) -> None:
        super().__init__("A game application already exists for user for game.")


class ApplicationNotFound(NotFoundError):
    def __init__(self) -> None:
        super().__init__("The user has not applied to the given game.")


class AlreadyAssignedToAnotherTeam(ConflictError):
    def __init__(self) -> None:
        super().__init__("The given user is already assigned to a team.")


class LanguageAlreadyAssignedInTeam(ConflictError):
    def __init__(self) -> None:
        super().__init__("The given language is already assigned within the team")
