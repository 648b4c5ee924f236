"""HTTP helpers: cache headers, error bodies and request normalisation."""

import functools
from collections.abc import Callable, Iterable
from datetime import timedelta
from typing import Any

from flask import make_response

from watchmarket.models import BadRequestError, InternalError, NotFoundError

_INVALID_PAYLOAD = "Invalid request payload"


def cache_control(duration: timedelta) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """Decorate a Flask view so its responses carry ``Cache-Control: max-age``."""
    header = f"max-age={int(duration.total_seconds())}"

    def decorator(view: Callable[..., Any]) -> Callable[..., Any]:
        @functools.wraps(view)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            response = make_response(view(*args, **kwargs))
            response.headers["Cache-Control"] = header
            return response

        return wrapper

    return decorator


def error_response(message: str | None) -> dict:
    """JSON body describing an error."""
    return {"error": {"message": message or ""}}


def status_for_error(error: BaseException) -> tuple[int, dict]:
    """HTTP status and body for an error raised while serving a request."""
    message = str(error)
    if message == InternalError.default_message:
        return 500, error_response("Internal Fail")
    if message == BadRequestError.default_message:
        return 400, error_response(_INVALID_PAYLOAD)
    if message == NotFoundError.default_message:
        return 404, error_response("Not found")
    return 400, error_response(_INVALID_PAYLOAD)


def remove_duplicates(values: Iterable[str]) -> list[str]:
    """The values in their first-seen order, each once."""
    return list(dict.fromkeys(values))