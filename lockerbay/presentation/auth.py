from __future__ import annotations

from typing import Optional, Protocol

from fastapi import Depends, Header, HTTPException, Request


class UnauthenticatedError(Exception):
    """Raise to map to HTTP 401."""


class IdentityVerifier(Protocol):
    """
    Resolves a bearer token to a user id. Token issuance and validation live in the auth service.
    """

    def verify_identity(self, token: str) -> str:
        raise NotImplementedError


class PassthroughIdentityVerifier:
    """
    Development verifier: the bearer token *is* the user id.
    """

    def verify_identity(self, token: str) -> str:
        token = token.strip()
        if not token:
            raise UnauthenticatedError("Empty bearer token")
        return token


def get_current_user_id(request: Request, authorization: Optional[str] = Header(default=None)) -> str:
    if not authorization or not authorization.lower().startswith("bearer "):
        raise HTTPException(status_code=401, detail="Missing bearer token")

    verifier: IdentityVerifier = request.app.state.identity_verifier
    try:
        return verifier.verify_identity(authorization[len("bearer "):])
    except UnauthenticatedError as e:
        raise HTTPException(status_code=401, detail=str(e))


def get_operator_id(request: Request, user_id: str = Depends(get_current_user_id)) -> str:
    """
    Caller must be one of the configured operator ids (LOCKERBAY_OPERATOR_USER_IDS).
    """
    operator_ids = getattr(request.app.state, "operator_ids", frozenset())
    if user_id not in operator_ids:
        raise HTTPException(status_code=403, detail="Operator access required")
    return user_id
