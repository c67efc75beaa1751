from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from projecthub.dependencies import get_db, get_current_user
from projecthub.models.user import User as UserModel
from projecthub.schemas.user import MessageResponse
from projecthub.services import labels as label_service
from projecthub.services import membership
from projecthub.services.policy import OrgAction, Policy, get_policy

router = APIRouter(prefix="/labels", tags=["labels"])


@router.delete("/{label_id}", response_model=MessageResponse)
async def delete_label(
    label_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
    policy: Policy = Depends(get_policy),
):
    label = await label_service.get_label(db, label_id)
    await policy.authorize(db, current_user.id, membership.ORGANIZATION, label.organization_id,
                           OrgAction.MANAGE_LABELS)
    await label_service.delete_label(db, label_id)
    await db.commit()
    return {"message": "Label deleted successfully"}
