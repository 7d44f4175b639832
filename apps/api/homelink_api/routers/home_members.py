"""Home membership endpoints keyed by (home_id, user_id)."""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from homelink_api.access.dependencies import get_access_resolver, get_schema_capabilities
from homelink_api.access.resolver import AccessResolver, HomeRole
from homelink_api.auth.dependencies import CurrentUserContext, get_current_user_context
from homelink_api.db.capabilities import HOME_MEMBERS, SchemaCapabilities
from homelink_api.db.database import get_db
from homelink_api.errors import AuthorizationError, ConflictError, NotFoundError, ValidationError
from homelink_api.models.identity_models import MEMBERSHIP_ROLES, HomeMembership, User
from homelink_api.models.schemas import (
    HomeMemberCreateRequest,
    HomeMemberResponse,
    HomeMemberUpdateRequest,
    MessageResponse,
)
from homelink_api.repositories.membership_repository import HomeMembershipRepository


router = APIRouter(prefix="/home-members", tags=["home-members"])


def _clean_role(role: str) -> str:
    cleaned = role.strip().lower()
    if cleaned not in MEMBERSHIP_ROLES:
        raise ValidationError(f"Invalid role. Expected one of: {', '.join(MEMBERSHIP_ROLES)}")
    return cleaned


def _member_payload(membership: HomeMembership, user: User | None) -> HomeMemberResponse:
    return HomeMemberResponse(
        home_id=membership.home_id,
        user_id=membership.user_id,
        role=membership.role,
        username=user.username if user else None,
        email=user.email if user else None,
        created_at=membership.created_at,
    )


def _get_member_or_404(repo: HomeMembershipRepository, home_id: str, user_id: str) -> HomeMembership:
    membership = repo.get(home_id, user_id)
    if membership is None:
        raise NotFoundError("Member not found in this home")
    return membership


@router.get("", response_model=list[HomeMemberResponse])
def list_members(
    home_id: uuid.UUID = Query(...),
    current_user: CurrentUserContext = Depends(get_current_user_context),
    resolver: AccessResolver = Depends(get_access_resolver),
    capabilities: SchemaCapabilities = Depends(get_schema_capabilities),
    db: Session = Depends(get_db),
):
    home = resolver.require_home_role(str(home_id), current_user.user_id, HomeRole.MEMBER)
    if not capabilities.readable(HOME_MEMBERS, home.id):
        return []
    repo = HomeMembershipRepository(db)
    return [_member_payload(membership, user) for membership, user in repo.list_for_home(home.id)]


@router.get("/{home_id}/{user_id}", response_model=HomeMemberResponse)
def get_member(
    home_id: uuid.UUID,
    user_id: uuid.UUID,
    current_user: CurrentUserContext = Depends(get_current_user_context),
    resolver: AccessResolver = Depends(get_access_resolver),
    db: Session = Depends(get_db),
):
    home = resolver.require_home_role(str(home_id), current_user.user_id, HomeRole.MEMBER)
    membership = _get_member_or_404(HomeMembershipRepository(db), home.id, str(user_id))
    return _member_payload(membership, membership.user)


@router.post("", response_model=HomeMemberResponse, status_code=status.HTTP_201_CREATED)
def add_member(
    payload: HomeMemberCreateRequest,
    current_user: CurrentUserContext = Depends(get_current_user_context),
    resolver: AccessResolver = Depends(get_access_resolver),
    capabilities: SchemaCapabilities = Depends(get_schema_capabilities),
    db: Session = Depends(get_db),
):
    home = resolver.require_home_role(str(payload.home_id), current_user.user_id, HomeRole.ADMIN)
    capabilities.require(HOME_MEMBERS, db.get_bind())
    role = _clean_role(payload.role)

    user = db.get(User, str(payload.user_id))
    if user is None:
        raise NotFoundError("User not found")
    if user.id == home.owner_id:
        raise ValidationError("The home owner cannot be added as a member")

    repo = HomeMembershipRepository(db)
    if repo.get(home.id, user.id) is not None:
        raise ConflictError("User is already a member of this home")
    try:
        membership = repo.create(home_id=home.id, user_id=user.id, role=role)
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise ConflictError("User is already a member of this home") from exc

    db.refresh(membership)
    return _member_payload(membership, user)


@router.put("/{home_id}/{user_id}", response_model=HomeMemberResponse)
def update_member(
    home_id: uuid.UUID,
    user_id: uuid.UUID,
    payload: HomeMemberUpdateRequest,
    current_user: CurrentUserContext = Depends(get_current_user_context),
    resolver: AccessResolver = Depends(get_access_resolver),
    db: Session = Depends(get_db),
):
    home = resolver.require_home_role(str(home_id), current_user.user_id, HomeRole.ADMIN)
    membership = _get_member_or_404(HomeMembershipRepository(db), home.id, str(user_id))
    membership.role = _clean_role(payload.role)
    db.commit()
    db.refresh(membership)
    return _member_payload(membership, membership.user)


@router.delete("/{home_id}/{user_id}", response_model=MessageResponse)
def remove_member(
    home_id: uuid.UUID,
    user_id: uuid.UUID,
    current_user: CurrentUserContext = Depends(get_current_user_context),
    resolver: AccessResolver = Depends(get_access_resolver),
    db: Session = Depends(get_db),
):
    """Admins remove anyone; members may remove themselves."""
    home = resolver.get_home(str(home_id))
    target_user_id = str(user_id)
    if target_user_id != current_user.user_id:
        if resolver.role_in_home(home, current_user.user_id) is not HomeRole.ADMIN:
            raise AuthorizationError("Only the home owner can remove other members")

    membership = _get_member_or_404(HomeMembershipRepository(db), home.id, target_user_id)
    db.delete(membership)
    db.commit()
    return MessageResponse(message="Member removed from home")
