from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...core.database import get_db
from ...api.deps import get_admin_actor
from ...services.account_service import AccountService
from ...services.appointment_rules import Actor

router = APIRouter(prefix="/admin", tags=["Administration"])

@router.delete("/users/{user_id}")
def delete_user(
    user_id: int,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_admin_actor)
):
    """Delete an account and every appointment that references it (admin only)."""
    removed = AccountService(db).delete_user(actor, user_id)
    return {
        "message": "User and related appointments deleted successfully",
        "user_id": user_id,
        "appointments_removed": removed
    }
