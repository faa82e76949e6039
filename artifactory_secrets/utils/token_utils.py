"""
Token introspection.

Artifactory access tokens are JWTs whose claims carry the token id (``jti``),
the subject (``<issuer>/users/<username>``) and the scope (``scp``). Reading
them needs no network call and no signing key.
"""

from typing import Any, Dict

import jwt

from ..exceptions import IntrospectionFailedError
from ..schemas.token_schemas import TokenInfo

_UNVERIFIED_OPTIONS = {
    "verify_signature": False,
    "verify_exp": False,
    "verify_nbf": False,
    "verify_iat": False,
    "verify_aud": False,
    "verify_iss": False,
}


def decode_claims(access_token: str) -> Dict[str, Any]:
    """
    Decode a bearer token's claims segment without verifying it.

    Raises:
        IntrospectionFailedError: If the value is not a decodable JWT
    """
    if not access_token or not isinstance(access_token, str):
        raise IntrospectionFailedError("Access token is empty")

    try:
        return jwt.decode(access_token, options=_UNVERIFIED_OPTIONS)
    except jwt.PyJWTError as e:
        raise IntrospectionFailedError(f"Unable to parse access token: {e}", cause=e)


def username_from_subject(subject: str) -> str:
    """``jfac@01g5.../users/admin`` -> ``admin``; keeps any further slashes."""
    parts = subject.split("/")
    if len(parts) < 3:
        return ""
    return "/".join(parts[2:])


def introspect(access_token: str) -> TokenInfo:
    """
    Recover token id, username, scope and expiry from a bearer value.

    Raises:
        IntrospectionFailedError: On malformed tokens or missing claims
    """
    claims = decode_claims(access_token)

    missing = [claim for claim in ("jti", "sub", "scp") if not claims.get(claim)]
    if missing:
        raise IntrospectionFailedError(
            f"Access token is missing claims: {', '.join(missing)}", missing_claims=missing
        )

    audience = claims.get("aud")
    if isinstance(audience, list):
        audience = " ".join(audience)

    try:
        expires = int(claims.get("exp") or 0)
    except (TypeError, ValueError) as e:
        raise IntrospectionFailedError("Access token has a malformed exp claim", cause=e)

    return TokenInfo(
        token_id=str(claims["jti"]),
        username=username_from_subject(str(claims["sub"])),
        scope=str(claims["scp"]),
        expires=expires,
        audience=audience,
        issuer=claims.get("iss"),
    )
