"""FastAPI server exposing the wardrobe core over HTTP."""

from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import timedelta
from typing import List, Optional

from fastapi import APIRouter, Depends, FastAPI, Query, Request, Response, status
from fastapi.responses import JSONResponse

from chroma_app.app import ChromaApp
from chroma_app.logging_config import correlation_context
from logic.validation import (
    AchievementCheckRequest,
    BulkDeleteRequest,
    CommentBody,
    ErrorPayload,
    ItemAnalysis,
    ItemUpdateRequest,
    LoginRequest,
    ProfileUpdateRequest,
    RenameOutfitRequest,
    ResetConfirmRequest,
    ResetRequest,
    SaveOutfitRequest,
    SignUpRequest,
    UserRef,
)
from models.user import User
from server.auth import ACCESS_TOKEN_COOKIE, create_access_token, get_current_user, require_admin
from storage.errors import (
    Conflict,
    ExpiredToken,
    InvalidCredentials,
    InvalidToken,
    NotFound,
    StorageUnavailable,
    StoreError,
    ValidationFailure,
)

ERROR_STATUS = {
    NotFound: 404,
    Conflict: 409,
    ValidationFailure: 422,
    InvalidToken: 400,
    ExpiredToken: 400,
    InvalidCredentials: 401,
    StorageUnavailable: 503,
}

router = APIRouter()


def get_chroma(request: Request) -> ChromaApp:
    return request.app.state.chroma


@router.get("/healthz")
async def healthcheck(chroma: ChromaApp = Depends(get_chroma)) -> dict:
    return {
        "status": "ok" if chroma.is_ready else "starting",
        "service": "chroma-wardrobe",
        "environment": chroma.config.environment or "local",
        "store_backend": chroma.store.backend_name,
    }


# --------------------------------------------------------------------- auth
@router.post("/auth/signup", status_code=status.HTTP_201_CREATED)
async def sign_up(payload: SignUpRequest, chroma: ChromaApp = Depends(get_chroma)) -> dict:
    user = await chroma.accounts.sign_up(name=payload.name, email=payload.email, password=payload.password)
    return user.public_view()


@router.post("/auth/login")
async def login(payload: LoginRequest, response: Response, chroma: ChromaApp = Depends(get_chroma)) -> dict:
    user = await chroma.accounts.login(email=payload.email, password=payload.password)
    ttl_minutes = chroma.config.access_token_ttl_minutes
    access_token = create_access_token(user.id, chroma.config.secret_key, timedelta(minutes=ttl_minutes))
    response.set_cookie(
        key=ACCESS_TOKEN_COOKIE, value=access_token, httponly=True, samesite="lax", max_age=ttl_minutes * 60
    )
    return {"user": user.public_view(), "access_token": access_token, "token_type": "bearer"}


@router.post("/auth/logout", status_code=status.HTTP_204_NO_CONTENT)
async def logout(
    response: Response,
    user: Optional[User] = Depends(get_current_user),
    chroma: ChromaApp = Depends(get_chroma),
) -> None:
    response.delete_cookie(ACCESS_TOKEN_COOKIE)
    # The local session slot belongs to whoever signed in last; only that user clears it.
    if user is not None and chroma.session.user_id == user.id:
        await chroma.accounts.logout()


@router.get("/session")
async def current_session(user: Optional[User] = Depends(get_current_user)) -> dict:
    return {"user": user.public_view() if user else None}


@router.post("/auth/password-reset")
async def request_password_reset(payload: ResetRequest, chroma: ChromaApp = Depends(get_chroma)) -> dict:
    await chroma.recovery.send_reset(email=payload.email)
    return {"status": "sent", "expires_in_minutes": chroma.config.reset_token_ttl_minutes}


@router.post("/auth/password-reset/confirm")
async def confirm_password_reset(payload: ResetConfirmRequest, chroma: ChromaApp = Depends(get_chroma)) -> dict:
    await chroma.recovery.reset_password(token=payload.token, new_password=payload.new_password)
    return {"status": "ok"}


@router.patch("/users/{user_id}")
async def update_profile(user_id: str, payload: ProfileUpdateRequest, chroma: ChromaApp = Depends(get_chroma)) -> dict:
    user = await chroma.accounts.update_profile(user_id, payload.model_dump(exclude_unset=True))
    return user.public_view()


# -------------------------------------------------------------------- items
@router.get("/users/{user_id}/items")
async def list_items(user_id: str, chroma: ChromaApp = Depends(get_chroma)) -> List[dict]:
    return [item.to_record() for item in await chroma.wardrobe.get_items(user_id)]


@router.post("/users/{user_id}/items", status_code=status.HTTP_201_CREATED)
async def add_items(user_id: str, payload: List[ItemAnalysis], chroma: ChromaApp = Depends(get_chroma)) -> List[dict]:
    analyses = [analysis.model_dump() for analysis in payload]
    items = await chroma.wardrobe.add_items(user_id=user_id, analyses=analyses)
    return [item.to_record() for item in items]


@router.patch("/items/{item_id}")
async def update_item(item_id: str, payload: ItemUpdateRequest, chroma: ChromaApp = Depends(get_chroma)) -> dict:
    item = await chroma.wardrobe.update_item(item_id, payload.model_dump(exclude_unset=True))
    return item.to_record()


@router.delete("/items/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_item(item_id: str, chroma: ChromaApp = Depends(get_chroma)) -> None:
    await chroma.wardrobe.delete_item(item_id)


@router.post("/items/bulk-delete", status_code=status.HTTP_204_NO_CONTENT)
async def delete_items(payload: BulkDeleteRequest, chroma: ChromaApp = Depends(get_chroma)) -> None:
    await chroma.wardrobe.delete_items(payload.ids)


# ------------------------------------------------------------------ outfits
@router.get("/users/{user_id}/outfits")
async def list_outfits(user_id: str, chroma: ChromaApp = Depends(get_chroma)) -> List[dict]:
    return [entry.to_view() for entry in await chroma.wardrobe.get_saved_outfits(user_id)]


@router.post("/outfits", status_code=status.HTTP_201_CREATED)
async def save_outfit(payload: SaveOutfitRequest, chroma: ChromaApp = Depends(get_chroma)) -> dict:
    outfit = await chroma.wardrobe.save_outfit(**payload.model_dump())
    return outfit.to_record()


@router.patch("/outfits/{outfit_id}")
async def rename_outfit(outfit_id: str, payload: RenameOutfitRequest, chroma: ChromaApp = Depends(get_chroma)) -> dict:
    outfit = await chroma.wardrobe.rename_outfit(outfit_id, payload.name)
    return outfit.to_record()


@router.post("/outfits/{outfit_id}/publish")
async def publish_outfit(outfit_id: str, chroma: ChromaApp = Depends(get_chroma)) -> dict:
    hydrated = await chroma.wardrobe.publish_outfit(outfit_id)
    return hydrated.to_view()


@router.delete("/outfits/{outfit_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_outfit(outfit_id: str, chroma: ChromaApp = Depends(get_chroma)) -> None:
    await chroma.wardrobe.delete_outfit(outfit_id)


# ---------------------------------------------------------------- community
@router.get("/feed")
async def community_feed(
    page: int = Query(1, ge=1),
    page_size: Optional[int] = Query(None, ge=1, le=100),
    chroma: ChromaApp = Depends(get_chroma),
) -> dict:
    feed_page = await chroma.feed.get_public_outfits(page=page, page_size=page_size)
    return feed_page.to_view()


@router.post("/outfits/{outfit_id}/like")
async def toggle_like(outfit_id: str, payload: UserRef, chroma: ChromaApp = Depends(get_chroma)) -> dict:
    outfit = await chroma.engagement.toggle_like(outfit_id=outfit_id, user_id=payload.user_id)
    return {"outfit_id": outfit.id, "likes": outfit.likes, "liked": payload.user_id in outfit.likes}


@router.post("/outfits/{outfit_id}/collect")
async def toggle_collect(outfit_id: str, payload: UserRef, chroma: ChromaApp = Depends(get_chroma)) -> dict:
    user = await chroma.engagement.toggle_collect(outfit_id=outfit_id, user_id=payload.user_id)
    chroma.session.refresh(user)
    return {
        "outfit_id": outfit_id,
        "collected_outfit_ids": user.collected_outfit_ids,
        "collected": outfit_id in user.collected_outfit_ids,
    }


@router.get("/users/{user_id}/collections")
async def collected_outfits(user_id: str, chroma: ChromaApp = Depends(get_chroma)) -> List[dict]:
    return [entry.to_view() for entry in await chroma.engagement.get_collected_outfits(user_id)]


@router.get("/outfits/{outfit_id}/comments")
async def list_comments(outfit_id: str, chroma: ChromaApp = Depends(get_chroma)) -> List[dict]:
    return [entry.to_view() for entry in await chroma.wardrobe.get_comments(outfit_id)]


@router.post("/outfits/{outfit_id}/comments", status_code=status.HTTP_201_CREATED)
async def add_comment(outfit_id: str, payload: CommentBody, chroma: ChromaApp = Depends(get_chroma)) -> dict:
    comment = await chroma.wardrobe.add_comment(outfit_id=outfit_id, user_id=payload.user_id, text=payload.text)
    return comment.to_record()


# ------------------------------------------------------------- achievements
@router.post("/users/{user_id}/achievements/check")
async def check_achievements(
    user_id: str, payload: AchievementCheckRequest, chroma: ChromaApp = Depends(get_chroma)
) -> dict:
    awarded = await chroma.achievements.check_and_award(user_id, **payload.model_dump())
    user = await chroma.accounts.get_profile(user_id)
    chroma.session.refresh(user)
    return {"awarded": awarded, "achievements": user.achievements}


@router.post("/users/{user_id}/achievements/sync")
async def sync_achievements(user_id: str, chroma: ChromaApp = Depends(get_chroma)) -> dict:
    awarded = await chroma.achievements.check_from_store(user_id)
    user = await chroma.accounts.get_profile(user_id)
    chroma.session.refresh(user)
    return {"awarded": awarded, "achievements": user.achievements}


# -------------------------------------------------------------------- admin
@router.get("/admin/stats")
async def admin_stats(_: User = Depends(require_admin), chroma: ChromaApp = Depends(get_chroma)) -> dict:
    return await chroma.admin.dashboard_stats()


@router.get("/admin/logins")
async def admin_logins(
    days: int = Query(7, ge=1, le=90),
    _: User = Depends(require_admin),
    chroma: ChromaApp = Depends(get_chroma),
) -> List[dict]:
    return [{"date": day, "count": count} for day, count in await chroma.admin.login_frequency(days=days)]


@router.get("/admin/top-users")
async def admin_top_users(
    sort_by: str = Query("wardrobe_size"),
    limit: int = Query(5, ge=1, le=100),
    _: User = Depends(require_admin),
    chroma: ChromaApp = Depends(get_chroma),
) -> List[dict]:
    return [entry.to_view() for entry in await chroma.admin.top_users(sort_by=sort_by, limit=limit)]


async def handle_store_error(request: Request, exc: StoreError) -> JSONResponse:
    status_code = next(
        (code for error_type, code in ERROR_STATUS.items() if isinstance(exc, error_type)),
        status.HTTP_500_INTERNAL_SERVER_ERROR,
    )
    payload = ErrorPayload(error=type(exc).__name__, message=str(exc))
    return JSONResponse(status_code=status_code, content=payload.model_dump())


def create_app(chroma: ChromaApp | None = None) -> FastAPI:
    """Build the ASGI app around a :class:`ChromaApp` (opened on startup)."""

    chroma_app = chroma or ChromaApp()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await app.state.chroma.open()
        yield
        await app.state.chroma.close()

    app = FastAPI(title="Chroma Wardrobe", version="0.1.0", lifespan=lifespan)
    app.state.chroma = chroma_app
    app.add_exception_handler(StoreError, handle_store_error)

    @app.middleware("http")
    async def correlation_middleware(request: Request, call_next):
        with correlation_context(request.headers.get("x-correlation-id")) as correlation_id:
            response = await call_next(request)
        response.headers["x-correlation-id"] = correlation_id
        return response

    app.include_router(router)
    return app


def get_app() -> FastAPI:
    """Expose a FastAPI instance for ASGI servers."""

    return create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("server.api:get_app", factory=True, host="0.0.0.0", port=int("8080"), reload=False)
