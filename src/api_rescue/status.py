"""HTTP status normalization.

Statuses can be given as ints, ``HTTPStatus`` members, numeric strings or
symbolic names such as ``"not_found"`` or ``"unprocessable entity"``.
"""

from http import HTTPStatus

Status = int | str | HTTPStatus | None

# RFC 9110 names that older interpreters only know under their RFC 7231 names
_ALIASES: dict[str, HTTPStatus] = {
    "CONTENT_TOO_LARGE": HTTPStatus.REQUEST_ENTITY_TOO_LARGE,
    "PAYLOAD_TOO_LARGE": HTTPStatus.REQUEST_ENTITY_TOO_LARGE,
    "URI_TOO_LONG": HTTPStatus.REQUEST_URI_TOO_LONG,
    "RANGE_NOT_SATISFIABLE": HTTPStatus.REQUESTED_RANGE_NOT_SATISFIABLE,
    "UNPROCESSABLE_CONTENT": HTTPStatus.UNPROCESSABLE_ENTITY,
}


def status_code(status: Status) -> int:
    """Return the numeric HTTP status for ``status``.

    ``None`` means 500. Raises ``ValueError`` for unknown names and for
    integers outside 100-599.
    """
    if status is None:
        return int(HTTPStatus.INTERNAL_SERVER_ERROR)

    if isinstance(status, str):
        text = status.strip()
        if text.isdigit():
            return status_code(int(text))
        name = text.upper().replace("-", "_").replace(" ", "_")
        try:
            return int(HTTPStatus[name])
        except KeyError:
            if name in _ALIASES:
                return int(_ALIASES[name])
            raise ValueError(f"Unrecognized status code {status!r}") from None

    code = int(status)
    if not 100 <= code <= 599:
        raise ValueError(f"Unrecognized status code {status!r}")
    return code
