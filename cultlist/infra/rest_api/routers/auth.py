from fastapi import APIRouter, Request, status

from ..dependencies import AuthServiceDep, CurrentUserId
from ..rate_limiter import limiter, signin_limit, signup_limit
from ..schemas import AuthResponse, SignInRequest, SignUpRequest, TokenResponse, UserResponse
from ...logging_config import get_logger

router = APIRouter(prefix="/api/v1/auth", tags=["auth"])
logger = get_logger("api.auth")


@router.post("/signin", response_model=AuthResponse)
@limiter.limit(signin_limit)
async def sign_in(request: Request, credentials: SignInRequest, auth_service: AuthServiceDep):
    """ユーザー名またはメールアドレスでサインインし、アクセストークンを発行する"""
    result = await auth_service.sign_in(credentials.login, credentials.password)
    
    logger.info("User signed in successfully", extra={"user_id": str(result.user.id)})
    
    return AuthResponse(
        user=UserResponse.from_entity(result.user),
        access_token=result.access_token,
        token_type=result.token_type,
    )


@router.post("/signup", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(signup_limit)
async def sign_up(request: Request, user_data: SignUpRequest, auth_service: AuthServiceDep):
    """新規ユーザー登録（登録後そのままサインイン状態のトークンを返す）"""
    result = await auth_service.sign_up(
        username=user_data.username,
        email=user_data.email,
        password=user_data.password,
        first_name=user_data.first_name,
        last_name=user_data.last_name,
        bio=user_data.bio,
    )
    
    logger.info("User signed up", extra={"user_id": str(result.user.id)})
    
    return AuthResponse(
        user=UserResponse.from_entity(result.user),
        access_token=result.access_token,
        token_type=result.token_type,
    )


@router.post("/refresh", response_model=TokenResponse)
async def refresh_token(current_user_id: CurrentUserId, auth_service: AuthServiceDep):
    """
    トークンをリフレッシュする
    """
    access_token = await auth_service.refresh(current_user_id)
    
    logger.info("Token refreshed", extra={"user_id": current_user_id})
    
    return TokenResponse(access_token=access_token)


@router.get("/me", response_model=UserResponse)
async def get_current_user_info(current_user_id: CurrentUserId, auth_service: AuthServiceDep):
    user = await auth_service.current_user(current_user_id)
    return UserResponse.from_entity(user)
