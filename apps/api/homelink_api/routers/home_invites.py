"""Home invite workflow: create, list, accept, decline, revoke."""

from __future__ import annotations

from typing import Optional
import uuid

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from homelink_api.access.dependencies import get_access_resolver, get_schema_capabilities
from homelink_api.access.resolver import AccessResolver, HomeRole
from homelink_api.auth.dependencies import CurrentUserContext, get_current_user_context
from homelink_api.auth.security import normalize_email
from homelink_api.db.capabilities import HOME_INVITES, SchemaCapabilities
from homelink_api.db.database import get_db
from homelink_api.errors import AuthorizationError, ConflictError, NotFoundError, ValidationError
from homelink_api.logging_service import get_logger, log_with_context
from homelink_api.models.identity_models import MEMBERSHIP_ROLES, HomeInvite
from homelink_api.models.schemas import (
    HomeInviteAcceptResponse,
    HomeInviteCreateRequest,
    HomeInviteResponse,
    MessageResponse,
)
from homelink_api.repositories.membership_repository import (
    HomeInviteRepository,
    HomeMembershipRepository,
)


router = APIRouter(prefix="/home-invites", tags=["home-invites"])
logger = get_logger(__name__)


def _get_invite_or_404(repo: HomeInviteRepository, invite_id: uuid.UUID) -> HomeInvite:
    invite = repo.get(str(invite_id))
    if invite is None:
        raise NotFoundError("Invite not found")
    return invite


def _is_invitee(invite: HomeInvite, current_user: CurrentUserContext) -> bool:
    return normalize_email(invite.email) == normalize_email(current_user.user.email)


def _require_invitee(invite: HomeInvite, current_user: CurrentUserContext) -> None:
    if not _is_invitee(invite, current_user):
        raise AuthorizationError("This invite is addressed to another user")


@router.get("", response_model=list[HomeInviteResponse])
def list_invites(
    home_id: Optional[uuid.UUID] = Query(default=None),
    current_user: CurrentUserContext = Depends(get_current_user_context),
    resolver: AccessResolver = Depends(get_access_resolver),
    capabilities: SchemaCapabilities = Depends(get_schema_capabilities),
    db: Session = Depends(get_db),
):
    """Invites for a home (admin) or, without `home_id`, those sent to the caller."""
    repo = HomeInviteRepository(db)
    if home_id is None:
        if not capabilities.readable(HOME_INVITES):
            return []
        return repo.list_for_email(current_user.user.email)
    home = resolver.require_home_role(str(home_id), current_user.user_id, HomeRole.ADMIN)
    if not capabilities.readable(HOME_INVITES, home.id):
        return []
    return repo.list_for_home(home.id)


@router.get("/{invite_id}", response_model=HomeInviteResponse)
def get_invite(
    invite_id: uuid.UUID,
    current_user: CurrentUserContext = Depends(get_current_user_context),
    resolver: AccessResolver = Depends(get_access_resolver),
    db: Session = Depends(get_db),
):
    invite = _get_invite_or_404(HomeInviteRepository(db), invite_id)
    if not _is_invitee(invite, current_user):
        resolver.require_home_role(invite.home_id, current_user.user_id, HomeRole.ADMIN)
    return invite


@router.post("", response_model=HomeInviteResponse, status_code=status.HTTP_201_CREATED)
def create_invite(
    payload: HomeInviteCreateRequest,
    current_user: CurrentUserContext = Depends(get_current_user_context),
    resolver: AccessResolver = Depends(get_access_resolver),
    capabilities: SchemaCapabilities = Depends(get_schema_capabilities),
    db: Session = Depends(get_db),
):
    home = resolver.require_home_role(str(payload.home_id), current_user.user_id, HomeRole.ADMIN)
    capabilities.require(HOME_INVITES, db.get_bind())

    email = normalize_email(payload.email)
    if "@" not in email:
        raise ValidationError("Invalid email format")
    role = payload.role.strip().lower()
    if role not in MEMBERSHIP_ROLES:
        raise ValidationError(f"Invalid role. Expected one of: {', '.join(MEMBERSHIP_ROLES)}")

    repo = HomeInviteRepository(db)
    if repo.find_pending(home.id, email) is not None:
        raise ConflictError("A pending invite already exists for this email")

    invite = HomeInvite(
        home_id=home.id,
        email=email,
        role=role,
        invited_by=current_user.user_id,
    )
    db.add(invite)
    db.commit()
    db.refresh(invite)

    log_with_context(logger, "INFO", "Home invite created", home_id=home.id, user_id=current_user.user_id)
    return invite


@router.post("/{invite_id}/accept", response_model=HomeInviteAcceptResponse)
def accept_invite(
    invite_id: uuid.UUID,
    current_user: CurrentUserContext = Depends(get_current_user_context),
    capabilities: SchemaCapabilities = Depends(get_schema_capabilities),
    db: Session = Depends(get_db),
):
    """Accept an invite; repeating the call never duplicates the membership."""
    invite_repo = HomeInviteRepository(db)
    invite = _get_invite_or_404(invite_repo, invite_id)
    _require_invitee(invite, current_user)

    invite_repo.mark_accepted(invite)
    membership_created = False
    if capabilities.has_home_members:
        membership_created = HomeMembershipRepository(db).ensure_membership(
            home_id=invite.home_id,
            user_id=current_user.user_id,
            role=invite.role,
        )
    else:
        log_with_context(
            logger,
            "WARNING",
            "Relation 'home_members' unavailable; invite accepted without membership row",
            relation="home_members",
            home_id=invite.home_id,
        )
    db.commit()
    db.refresh(invite)

    log_with_context(
        logger,
        "INFO",
        "Home invite accepted",
        home_id=invite.home_id,
        user_id=current_user.user_id,
    )
    return HomeInviteAcceptResponse(
        invite=HomeInviteResponse.model_validate(invite),
        membership_created=membership_created,
    )


@router.post("/{invite_id}/decline", response_model=MessageResponse)
def decline_invite(
    invite_id: uuid.UUID,
    current_user: CurrentUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db),
):
    invite = _get_invite_or_404(HomeInviteRepository(db), invite_id)
    _require_invitee(invite, current_user)
    if invite.status == "accepted":
        raise ConflictError("Invite has already been accepted")
    db.delete(invite)
    db.commit()
    return MessageResponse(message="Invite declined")


@router.delete("/{invite_id}", response_model=MessageResponse)
def delete_invite(
    invite_id: uuid.UUID,
    current_user: CurrentUserContext = Depends(get_current_user_context),
    resolver: AccessResolver = Depends(get_access_resolver),
    db: Session = Depends(get_db),
):
    invite = _get_invite_or_404(HomeInviteRepository(db), invite_id)
    resolver.require_home_role(invite.home_id, current_user.user_id, HomeRole.ADMIN)
    db.delete(invite)
    db.commit()
    return MessageResponse(message="Invite deleted")
