"""
Error taxonomy shared by the handlers.

Handlers raise these internally; the ``action`` decorator in
``app.services`` turns them into failed ``ActionResult`` values so that
none of them ever reaches a router or a page.  Anything that is not an
``ActionError`` (typically ``SQLAlchemyError``) is reported as a store
failure with the code ``"failed"``.
"""


class ActionError(Exception):
    code: str = "failed"
    default_message: str = "An error occurred"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class Unauthorized(ActionError):
    """No identity, or the token could not be verified."""

    code = "unauthenticated"
    default_message = "Unauthorized"


class Forbidden(ActionError):
    """Authenticated, but not entitled to touch the target record."""

    code = "unauthorized"
    default_message = "You are not allowed to modify this post"


class NotFound(ActionError):
    code = "unexisting"
    default_message = "Not found"


class InvalidInput(ActionError):
    code = "invalid"
    default_message = "Invalid input"


# HTTP status used by the JSON API for each failure code.
STATUS_BY_CODE: dict[str, int] = {
    Unauthorized.code: 401,
    Forbidden.code: 403,
    NotFound.code: 404,
    InvalidInput.code: 422,
    ActionError.code: 500,
}


def status_for(code: str | None) -> int:
    return STATUS_BY_CODE.get(code or ActionError.code, 500)
