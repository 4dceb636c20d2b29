import hmac
from functools import wraps
from typing import Callable, TypeVar, cast

from flask import current_app, request

from plantstation.utils.http import error_response

F = TypeVar("F", bound=Callable[..., object])

REALM = "plantstation"


def _credentials_match(username: str, password: str) -> bool:
    expected_user = current_app.config.get("AUTH_USER") or ""
    expected_pass = current_app.config.get("AUTH_PASS") or ""
    if not expected_pass:
        # no password configured: protected endpoints stay closed
        return False
    user_ok = hmac.compare_digest(username.encode("utf-8"), expected_user.encode("utf-8"))
    pass_ok = hmac.compare_digest(password.encode("utf-8"), expected_pass.encode("utf-8"))
    return user_ok and pass_ok


def basic_auth_required(view_func: F) -> F:
    """Require HTTP basic auth with the configured user and password (returns JSON 401)."""

    @wraps(view_func)
    def wrapped(*args, **kwargs):
        auth = request.authorization
        if auth is None or auth.type != "basic" or not _credentials_match(auth.username or "", auth.password or ""):
            response = error_response(
                "Authentication required",
                status=401,
                details={"code": "UNAUTHORIZED"},
            )
            response.headers["WWW-Authenticate"] = f'Basic realm="{REALM}"'
            return response
        return view_func(*args, **kwargs)

    return cast(F, wrapped)
