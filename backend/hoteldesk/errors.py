from __future__ import annotations
"""Domain error taxonomy.

Each error is a werkzeug HTTPException subclass so lifecycle code can raise it
directly and the application-wide handler renders the standard JSON error shape.
"""
from werkzeug.exceptions import HTTPException


class DomainError(HTTPException):
    code = 400
    description = 'Request could not be processed'

    def __init__(self, description: str | None = None):
        super().__init__(description=description or self.description)


class ValidationFailed(DomainError):
    code = 400
    description = 'Validation failed'

    @property
    def name(self) -> str:
        return 'Validation Failed'


class Forbidden(DomainError):
    code = 403
    description = 'Permission denied'


class NotFound(DomainError):
    code = 404
    description = 'Resource not found'


class IllegalTransition(DomainError):
    code = 409
    description = 'Illegal status transition'

    @property
    def name(self) -> str:
        return 'Illegal Transition'


class InvalidRole(DomainError):
    # Data-integrity failure: roles are validated on account creation / role change.
    code = 500
    description = 'Unrecognized role'

    def __init__(self, role):
        self.role = role
        super().__init__(f'Unrecognized role {role!r}')

    @property
    def name(self) -> str:
        return 'Invalid Role'


__all__ = ['DomainError', 'ValidationFailed', 'Forbidden', 'NotFound', 'IllegalTransition', 'InvalidRole']
