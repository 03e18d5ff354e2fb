from fastapi import APIRouter, Depends

from cinematch.core.auth import get_current_user
from cinematch.models import User
from cinematch.schemas import UserSchema

router = APIRouter()


@router.get("/user", response_model=UserSchema)
def current_user(user: User = Depends(get_current_user)):
    return user
