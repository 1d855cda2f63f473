# app/routers/auth/auth.py
from fastapi import APIRouter, Depends, Body
from sqlalchemy.ext.asyncio import AsyncSession
from app.core.db import get_db
from app.schemas.user_schemas import (
    UserLogin, TokenResponse, MessageResponse, UserResponse, UserOut,
    UserDetailsUpdate, PasswordUpdate,
)
from app.services.auth_service import (
    authenticate_user, create_tokens, refresh_access_token, logout_user,
    update_details, update_password,
)
from app.utils.get_user import get_current_user

router = APIRouter(prefix="/auth", tags=["Auth"])

@router.post("/login", response_model=TokenResponse)
async def login(data: UserLogin, db: AsyncSession = Depends(get_db)):
    user = await authenticate_user(db, data.username, data.password)
    access_token, refresh_token = await create_tokens(db, user)
    return TokenResponse(access_token=access_token, refresh_token=refresh_token)

@router.post("/refresh", response_model=TokenResponse)
async def refresh_token_endpoint(refresh_token: str = Body(..., embed=True), db: AsyncSession = Depends(get_db)):
    """
    Exchange a refresh token for a new access token.
    """
    new_token_data = await refresh_access_token(db, refresh_token)
    return TokenResponse(**new_token_data)

@router.post("/logout", response_model=MessageResponse)
async def logout(db: AsyncSession = Depends(get_db), current_user=Depends(get_current_user)):
    """
    Invalidates every access and refresh token issued to the user.
    """
    return await logout_user(db, current_user)

@router.get("/me", response_model=UserResponse)
async def me(current_user=Depends(get_current_user)):
    return {"msg": "Current user", "data": UserOut.model_validate(current_user)}

@router.put("/me", response_model=UserResponse)
async def update_me(data: UserDetailsUpdate, db: AsyncSession = Depends(get_db), current_user=Depends(get_current_user)):
    user = await update_details(db, current_user, data.model_dump(exclude_unset=True))
    return {"msg": "Details updated successfully", "data": UserOut.model_validate(user)}

@router.put("/me/password", response_model=TokenResponse)
async def change_password(data: PasswordUpdate, db: AsyncSession = Depends(get_db), current_user=Depends(get_current_user)):
    access_token, refresh_token = await update_password(db, current_user, data.current_password, data.new_password)
    return TokenResponse(access_token=access_token, refresh_token=refresh_token)
