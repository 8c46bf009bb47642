"""Auth: current principal and logout (token revocation). Tokens are issued by the identity service."""
import logging

from fastapi import APIRouter, Depends

from scanvault.api.schemas import PrincipalProfile
from scanvault.core.deps import get_current_principal, get_revocations, token_ttl_seconds
from scanvault.core.revocation import RevocationSet
from scanvault.core.security import Principal

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


@router.get("/me", response_model=PrincipalProfile)
async def me(principal: Principal = Depends(get_current_principal)):
    return PrincipalProfile(id=principal.id)


@router.post("/logout", status_code=204)
async def logout(
    principal: Principal = Depends(get_current_principal),
    revocations: RevocationSet = Depends(get_revocations),
):
    """Revoke the presented token until it would have expired anyway."""
    if principal.token_id:
        revocations.add(principal.token_id, token_ttl_seconds(principal))
        logger.info("Token revoked for principal=%s", principal.id)
    return None
