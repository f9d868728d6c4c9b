"""
Hookups — Hookup Rounds API

Endpoints for opening rounds, submitting photos, picking winners and listing
winners.  Every handler calls exactly one ``HookupService`` method and wraps
its result as ``{"status": "success", "data": ...}``; any failure is
re-raised as an ``HttpException`` with the original message and status code
and rendered by ``app.api.error_handlers``.
"""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import authenticate, get_hookup_service, restrict_to
from app.api.uploads import upload_hookup_image
from app.database import get_db
from app.schemas.auth import CurrentUser
from app.schemas.hookup import HookupCreate, HookupSetStatus, HookupUpdate
from app.services.hookup_service import HookupService
from app.utils.exceptions import HttpException

logger = structlog.get_logger("hookups.api.hookup")

router = APIRouter()

DEFAULT_GENDER = "male"

require_admin = restrict_to("admin")


def _success(data) -> dict:
    return {"status": "success", "data": data}


# ──────────────────────────────────────────────────────────────────────────────
# POST /: Open a new round
# ──────────────────────────────────────────────────────────────────────────────

@router.post(
    "/",
    status_code=status.HTTP_201_CREATED,
    summary="Create a hookup round for a gender",
)
async def create(
    payload: HookupCreate,
    admin: CurrentUser = Depends(require_admin),
    service: HookupService = Depends(get_hookup_service),
    db: AsyncSession = Depends(get_db),
) -> dict:
    """Open a new round; the previous active round of the gender is closed."""
    logger.info("create_hookup", admin_id=str(admin.id), gender=payload.gender)
    try:
        data = await service.create(payload.gender, db_session=db)
    except Exception as error:
        raise HttpException.from_error(error) from error
    return _success(data)


# ──────────────────────────────────────────────────────────────────────────────
# GET /active: The open round for a gender
# ──────────────────────────────────────────────────────────────────────────────

@router.get("/active", summary="Get the active round for a gender")
async def get_active(
    gender: str | None = None,
    user: CurrentUser = Depends(authenticate),
    service: HookupService = Depends(get_hookup_service),
    db: AsyncSession = Depends(get_db),
) -> dict:
    try:
        data = await service.get_active(gender or DEFAULT_GENDER, db_session=db)
    except Exception as error:
        raise HttpException.from_error(error) from error
    return _success(data)


# ──────────────────────────────────────────────────────────────────────────────
# GET /last_winners: Latest winner per gender
# ──────────────────────────────────────────────────────────────────────────────

@router.get("/last_winners", summary="Get the most recent winners")
async def get_last_winners(
    user: CurrentUser = Depends(authenticate),
    service: HookupService = Depends(get_hookup_service),
    db: AsyncSession = Depends(get_db),
) -> dict:
    try:
        data = await service.get_last_winners(db_session=db)
    except Exception as error:
        raise HttpException.from_error(error) from error
    return _success(data)


# ──────────────────────────────────────────────────────────────────────────────
# GET /all_winners: Every winner for a gender (public)
# ──────────────────────────────────────────────────────────────────────────────

@router.get("/all_winners", summary="Get all winners for a gender")
async def get_all_winners(
    gender: str | None = None,
    service: HookupService = Depends(get_hookup_service),
    db: AsyncSession = Depends(get_db),
) -> dict:
    """Public endpoint; no token required."""
    try:
        data = await service.get_all_winners(gender or DEFAULT_GENDER, db_session=db)
    except Exception as error:
        raise HttpException.from_error(error) from error
    return _success(data)


# ──────────────────────────────────────────────────────────────────────────────
# GET /: List rounds
# ──────────────────────────────────────────────────────────────────────────────

@router.get("/", summary="List hookup rounds")
async def get_all(
    request: Request,
    user: CurrentUser = Depends(authenticate),
    service: HookupService = Depends(get_hookup_service),
    db: AsyncSession = Depends(get_db),
) -> dict:
    """Filter by any of ``gender``, ``status``, ``winner_id``; paginate with
    ``page`` / ``limit``; order with ``sort`` (e.g. ``-created_at``)."""
    try:
        data = await service.get_all(dict(request.query_params), db_session=db)
    except Exception as error:
        raise HttpException.from_error(error) from error
    return _success(data)


# ──────────────────────────────────────────────────────────────────────────────
# PATCH /{hookup_id}/submit: Submit a photo
# ──────────────────────────────────────────────────────────────────────────────

@router.patch("/{hookup_id}/submit", summary="Submit a photo to a round")
async def submit_photo(
    hookup_id: str,
    user: CurrentUser = Depends(authenticate),
    image: str | None = Depends(upload_hookup_image),
    service: HookupService = Depends(get_hookup_service),
    db: AsyncSession = Depends(get_db),
) -> dict:
    """Multipart form with one ``image`` file.  The stored file is kept even
    when the submission itself is rejected."""
    log = logger.bind(hookup_id=hookup_id, user_id=str(user.id))
    log.info("submit_photo", image=image)
    try:
        data = await service.add(hookup_id, user.id, image, db_session=db)
    except Exception as error:
        log.warning("submit_photo_failed", error=str(error))
        raise HttpException.from_error(error) from error
    return _success(data)


# ──────────────────────────────────────────────────────────────────────────────
# PATCH /{hookup_id}: Pick the winner
# ──────────────────────────────────────────────────────────────────────────────

@router.patch("/{hookup_id}", summary="Set the winner of a round")
async def update_winner(
    hookup_id: str,
    payload: HookupUpdate,
    admin: CurrentUser = Depends(require_admin),
    service: HookupService = Depends(get_hookup_service),
    db: AsyncSession = Depends(get_db),
) -> dict:
    logger.info(
        "update_winner",
        admin_id=str(admin.id),
        hookup_id=hookup_id,
        winner_id=str(payload.user),
    )
    try:
        data = await service.set_winner(hookup_id, payload.user, db_session=db)
    except Exception as error:
        raise HttpException.from_error(error) from error
    return _success(data)


# ──────────────────────────────────────────────────────────────────────────────
# PUT /{hookup_id}: Open or close a round
# ──────────────────────────────────────────────────────────────────────────────

@router.put("/{hookup_id}", summary="Set the status of a round")
async def set_status(
    hookup_id: str,
    payload: HookupSetStatus,
    admin: CurrentUser = Depends(require_admin),
    service: HookupService = Depends(get_hookup_service),
    db: AsyncSession = Depends(get_db),
) -> dict:
    logger.info(
        "set_status", admin_id=str(admin.id), hookup_id=hookup_id, status=payload.status,
    )
    try:
        data = await service.update_status_hookup(
            hookup_id, payload.status, db_session=db
        )
    except Exception as error:
        raise HttpException.from_error(error) from error
    return _success(data)
