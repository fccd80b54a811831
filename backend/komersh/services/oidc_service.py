# Overview: OpenID Connect client: discovery, authorization redirect, code exchange, refresh.

"""
Identity-provider login (authorization code flow with PKCE).

Provider metadata comes from {issuer}/.well-known/openid-configuration and is
cached per issuer for DISCOVERY_TTL_SECONDS. Outbound calls use httpx; ID
tokens are validated with python-jose against the provider's JWKS.
"""

from __future__ import annotations

import base64
import hashlib
import logging
import secrets
import time
from dataclasses import dataclass
from urllib.parse import urlencode

import httpx
from flask import current_app, url_for
from jose import JWTError, jwt

logger = logging.getLogger(__name__)

SCOPES = "openid email profile offline_access"
DISCOVERY_TTL_SECONDS = 3600
HTTP_TIMEOUT_SECONDS = 10.0
ID_TOKEN_ALGORITHMS = ["RS256", "ES256"]

# issuer -> (fetched_at, metadata)
_discovery_cache: dict[str, tuple[float, dict]] = {}


class OidcError(Exception):
    """Any failure talking to the identity provider or validating its tokens."""


@dataclass
class TokenSet:
    access_token: str | None
    refresh_token: str | None
    id_token: str | None
    expires_at: int | None
    claims: dict | None


def is_enabled() -> bool:
    return bool(current_app.config.get("OIDC_CLIENT_ID"))


def clear_discovery_cache() -> None:
    _discovery_cache.clear()


def get_provider_metadata() -> dict:
    issuer = current_app.config["OIDC_ISSUER_URL"].rstrip("/")
    cached = _discovery_cache.get(issuer)
    if cached and time.monotonic() - cached[0] < DISCOVERY_TTL_SECONDS:
        return cached[1]

    try:
        response = httpx.get(f"{issuer}/.well-known/openid-configuration", timeout=HTTP_TIMEOUT_SECONDS)
        response.raise_for_status()
        metadata = response.json()
    except (httpx.HTTPError, ValueError) as exc:
        raise OidcError(f"Provider discovery failed: {exc}") from exc

    _discovery_cache[issuer] = (time.monotonic(), metadata)
    return metadata


def get_jwks(metadata: dict) -> dict:
    try:
        response = httpx.get(metadata["jwks_uri"], timeout=HTTP_TIMEOUT_SECONDS)
        response.raise_for_status()
        return response.json()
    except (httpx.HTTPError, KeyError, ValueError) as exc:
        raise OidcError(f"Could not load provider keys: {exc}") from exc


def redirect_uri() -> str:
    return current_app.config.get("OIDC_REDIRECT_URI") or url_for("oidc.callback", _external=True)


def new_pkce_pair() -> tuple[str, str]:
    """Returns (code_verifier, S256 code_challenge)."""
    verifier = secrets.token_urlsafe(64)
    digest = hashlib.sha256(verifier.encode("ascii")).digest()
    challenge = base64.urlsafe_b64encode(digest).rstrip(b"=").decode("ascii")
    return verifier, challenge


def build_authorization_url(*, state: str, nonce: str, code_challenge: str) -> str:
    metadata = get_provider_metadata()
    params = {
        "client_id": current_app.config["OIDC_CLIENT_ID"],
        "response_type": "code",
        "scope": SCOPES,
        "redirect_uri": redirect_uri(),
        "state": state,
        "nonce": nonce,
        "code_challenge": code_challenge,
        "code_challenge_method": "S256",
        "prompt": "login consent",
    }
    return f"{metadata['authorization_endpoint']}?{urlencode(params)}"


def _token_request(data: dict) -> dict:
    config = current_app.config
    metadata = get_provider_metadata()
    data = {**data, "client_id": config["OIDC_CLIENT_ID"]}
    if config.get("OIDC_CLIENT_SECRET"):
        data["client_secret"] = config["OIDC_CLIENT_SECRET"]

    try:
        response = httpx.post(
            metadata["token_endpoint"],
            data=data,
            headers={"Accept": "application/json"},
            timeout=HTTP_TIMEOUT_SECONDS,
        )
    except httpx.HTTPError as exc:
        raise OidcError(f"Token endpoint unreachable: {exc}") from exc

    if response.status_code != 200:
        raise OidcError(f"Token endpoint returned {response.status_code}: {response.text}")
    try:
        return response.json()
    except ValueError as exc:
        raise OidcError("Token endpoint returned invalid JSON") from exc


def validate_id_token(id_token: str, *, access_token: str | None = None, nonce: str | None = None) -> dict:
    metadata = get_provider_metadata()
    jwks = get_jwks(metadata)
    try:
        claims = jwt.decode(
            id_token,
            jwks,
            algorithms=ID_TOKEN_ALGORITHMS,
            audience=current_app.config["OIDC_CLIENT_ID"],
            issuer=metadata.get("issuer"),
            access_token=access_token,
        )
    except JWTError as exc:
        raise OidcError(f"Invalid ID token: {exc}") from exc

    if nonce is not None and claims.get("nonce") != nonce:
        raise OidcError("ID token nonce mismatch")
    return claims


def _expires_at(token_response: dict, claims: dict | None) -> int | None:
    if claims and claims.get("exp"):
        return int(claims["exp"])
    if token_response.get("expires_in"):
        return int(time.time()) + int(token_response["expires_in"])
    return None


def exchange_code(*, code: str, code_verifier: str, nonce: str) -> TokenSet:
    token_response = _token_request({
        "grant_type": "authorization_code",
        "code": code,
        "redirect_uri": redirect_uri(),
        "code_verifier": code_verifier,
    })
    id_token = token_response.get("id_token")
    if not id_token:
        raise OidcError("Token response has no id_token")

    claims = validate_id_token(id_token, access_token=token_response.get("access_token"), nonce=nonce)
    return TokenSet(
        access_token=token_response.get("access_token"),
        refresh_token=token_response.get("refresh_token"),
        id_token=id_token,
        expires_at=_expires_at(token_response, claims),
        claims=claims,
    )


def refresh_tokens(refresh_token: str) -> TokenSet:
    """Exchange a refresh token. Claims stay None when the provider sends no new ID token."""
    token_response = _token_request({
        "grant_type": "refresh_token",
        "refresh_token": refresh_token,
    })
    claims = None
    id_token = token_response.get("id_token")
    if id_token:
        claims = validate_id_token(id_token, access_token=token_response.get("access_token"))

    logger.info("Refreshed provider tokens")
    return TokenSet(
        access_token=token_response.get("access_token"),
        refresh_token=token_response.get("refresh_token") or refresh_token,
        id_token=id_token,
        expires_at=_expires_at(token_response, claims),
        claims=claims,
    )


def end_session_url(id_token_hint: str | None = None) -> str | None:
    """Provider logout URL that returns the browser to APP_URL, or None if unsupported."""
    try:
        metadata = get_provider_metadata()
    except OidcError:
        logger.warning("Provider discovery failed during logout", exc_info=True)
        return None

    endpoint = metadata.get("end_session_endpoint")
    if not endpoint:
        return None
    params = {
        "client_id": current_app.config["OIDC_CLIENT_ID"],
        "post_logout_redirect_uri": current_app.config.get("APP_URL"),
    }
    if id_token_hint:
        params["id_token_hint"] = id_token_hint
    return f"{endpoint}?{urlencode(params)}"
