from fastapi import Depends, HTTPException, status

from rights_api.middleware.auth import get_current_user

# Capability → roles allowed to exercise it. Reads need only authentication.
CAPABILITIES = {
    "contracts:write": {"Admin", "Legal", "Sales Manager"},
    "contracts:delete": {"Admin", "Legal"},
    "royalties:write": {"Admin", "Finance"},
    "content:write": {"Admin", "Legal", "Sales Manager", "Sales"},
    "users:manage": {"Admin"},
    "audit:read": {"Admin", "Legal", "Finance"},
}


def has_capability(role: str, capability: str) -> bool:
    return role in CAPABILITIES.get(capability, set())


def require_capability(capability: str):
    """
    FastAPI dependency factory for capability-based access control.

    Usage:
        @router.post("")
        async def create_contract(
            current_user: dict = Depends(get_current_user),
            _auth: None = Depends(require_capability("contracts:write")),
        ):
    """
    async def check_capability(current_user: dict = Depends(get_current_user)):
        if not has_capability(current_user["role"], capability):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail={
                    "code": "INSUFFICIENT_PERMISSIONS",
                    "message": (
                        f"Role '{current_user['role']}' cannot perform this action. "
                        f"Required capability: {capability}"
                    ),
                },
            )
        return None

    return check_capability
