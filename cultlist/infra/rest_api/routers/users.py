from typing import Optional

from fastapi import APIRouter, Query, status

from ..dependencies import CurrentUserId, UserServiceDep
from ..schemas import (
    CreateUserRequest,
    DeleteUserResponse,
    UpdateUserRequest,
    UserListResponse,
    UserResponse,
)
from ...logging_config import get_logger
from ....usecase.user_management.user_service import parse_user_id

router = APIRouter(
    prefix="/api/v1/users",
    tags=["users"]
)
logger = get_logger("api.users")


def ensure_self(current_user_id: str, user_id: str) -> None:
    """自分以外のプロフィールは変更できない"""
    if str(parse_user_id(user_id)) != current_user_id:
        raise PermissionError(f"User {current_user_id} cannot modify user {user_id}")


@router.get("/", response_model=UserListResponse)
async def list_users(
    current_user_id: CurrentUserId,
    user_service: UserServiceDep,
    search: Optional[str] = Query(default=None, max_length=255),
    limit: int = Query(default=20, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    page: Optional[int] = Query(default=None, ge=1),
):
    """
    ユーザー一覧（検索・ページネーション）

    page を指定した場合は offset より優先される（1始まり）。
    """
    result = await user_service.list(search=search, limit=limit, offset=offset, page=page)
    return UserListResponse(
        users=[UserResponse.from_entity(u) for u in result.users],
        total_count=result.total_count,
        limit=result.limit,
        offset=result.offset,
    )


@router.post("/", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def create_user(req: CreateUserRequest, current_user_id: CurrentUserId, user_service: UserServiceDep):
    user = await user_service.create(
        username=req.username,
        email=req.email,
        password=req.password,
        first_name=req.first_name,
        last_name=req.last_name,
        bio=req.bio,
    )
    logger.info("User created", extra={"user_id": str(user.id), "created_by": current_user_id})
    return UserResponse.from_entity(user)


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(user_id: str, current_user_id: CurrentUserId, user_service: UserServiceDep):
    user = await user_service.get_by_id(user_id)
    return UserResponse.from_entity(user)


@router.put("/{user_id}", response_model=UserResponse)
async def update_user(
    user_id: str,
    req: UpdateUserRequest,
    current_user_id: CurrentUserId,
    user_service: UserServiceDep,
):
    """プロフィールの部分更新（指定されなかった項目は変更しない）"""
    ensure_self(current_user_id, user_id)
    user = await user_service.update(
        user_id,
        username=req.username,
        email=req.email,
        password=req.password,
        old_password=req.old_password,
        first_name=req.first_name,
        last_name=req.last_name,
        bio=req.bio,
    )
    logger.info("User updated", extra={"user_id": str(user.id)})
    return UserResponse.from_entity(user)


@router.delete("/{user_id}", response_model=DeleteUserResponse)
async def delete_user(user_id: str, current_user_id: CurrentUserId, user_service: UserServiceDep):
    ensure_self(current_user_id, user_id)
    deleted_id = await user_service.delete(user_id)
    logger.info("User deleted", extra={"user_id": str(deleted_id)})
    return DeleteUserResponse(deleted_id=deleted_id)
