import re
import uuid

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from storefront.core.config import settings
from storefront.core.session_context import cart_session_var

_SESSION_KEY_RE = re.compile(r"^[a-zA-Z0-9\-_.]{16,128}$")


class CartSessionMiddleware(BaseHTTPMiddleware):
    """Attach a stable cart session key to every request.

    The key comes from the session cookie when it is well-formed, otherwise a
    fresh one is issued and set on the response.
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        cookie_name = settings.cart_session_cookie
        client_key = request.cookies.get(cookie_name)
        if client_key and _SESSION_KEY_RE.match(client_key):
            session_key = client_key
            issued = False
        else:
            session_key = uuid.uuid4().hex
            issued = True
        request.state.cart_session = session_key

        token = cart_session_var.set(session_key)
        try:
            response = await call_next(request)
        finally:
            cart_session_var.reset(token)

        if issued:
            response.set_cookie(
                cookie_name,
                session_key,
                max_age=settings.cart_session_max_age_seconds,
                httponly=True,
                samesite="lax",
            )
        return response
