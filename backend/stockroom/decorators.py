# Overview: Request decorators for authentication and tenant context.

from functools import wraps
from flask import request, g

from .extensions import db
from .errors import AuthenticationError
from .models import User
from .services import token_service
from .services.tenant_service import authorize_tenant, resolve_request_tenant


def _bearer_token() -> str:
    auth_header = request.headers.get("Authorization")

    if not auth_header or not auth_header.startswith("Bearer "):
        raise AuthenticationError("No token provided")

    return auth_header.split(" ", 1)[1].strip()


def require_auth(f):
    """
    Require a valid access token.

    Sets the following Flask g attributes:
    - g.current_user: The authenticated User object
    - g.token_claims: The verified TokenClaims (shop_id is the token's default shop)

    SECURITY: 401 if the header is missing, the token is invalid, expired or
    a refresh token, or the user no longer exists.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        claims = token_service.verify_token(
            _bearer_token(), expected_type=token_service.ACCESS_TOKEN_TYPE
        )

        user = db.session.get(User, claims.id)
        if not user:
            raise AuthenticationError("User not found")

        g.current_user = user
        g.token_claims = claims

        return f(*args, **kwargs)

    return decorated_function


def require_tenant(require_accepted: bool = False):
    """
    Resolve the request's shop and check the caller's membership in it.

    Must run after @require_auth. Sets:
    - g.shop_id: resolved shop id
    - g.tenant_source: which source won (token/query/body/cookie)
    - g.membership: the caller's UserShop row

    require_accepted: deny PENDING members (shop-internal views).
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not hasattr(g, "current_user"):
                raise AuthenticationError()

            resolution = resolve_request_tenant()
            membership = authorize_tenant(
                g.current_user.id,
                resolution.shop_id,
                require_accepted=require_accepted,
            )

            g.shop_id = resolution.shop_id
            g.tenant_source = resolution.source
            g.membership = membership

            return f(*args, **kwargs)

        return decorated_function

    return decorator
