"""Bulk team import: billing preview, validation and execution."""

import logging
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from procapacity.config import settings
from procapacity.core.constants import DEFAULT_CAPACITY_HOURS, IMPORTED_MEMBER_ROLE
from procapacity.core.csv_parser import ParsedRow, RowValidationError, validate_rows
from procapacity.core.dates import utcnow
from procapacity.core.permissions import Role
from procapacity.core.pricing import get_base_price, get_next_plan, get_per_seat_price, get_plan
from procapacity.core.security import generate_url_token, hash_password
from procapacity.models.sql.skill import Proficiency, TeamMemberSkill
from procapacity.models.sql.team_import import ImportStatus, TeamImport
from procapacity.models.sql.team_member import TeamMember
from procapacity.models.sql.user import User
from procapacity.services.email import TASK_SEND_TEAM_INVITE, enqueue_email
from procapacity.services.plan_limits import count_active_team_members
from procapacity.services.seats import (
    calculate_extra_seats,
    get_current_seats,
    get_workspace,
    sync_workspace_seats,
)
from procapacity.services.skills import ensure_skills

logger = logging.getLogger(__name__)


class TeamImportError(Exception):
    """Import refused or failed. ``import_id`` is set when a FAILED audit record was written."""

    def __init__(self, message: str, import_id: Optional[UUID] = None):
        super().__init__(message)
        self.message = message
        self.import_id = import_id


@dataclass
class BillingPreview:
    current_seats: int
    users_to_import: int
    new_total: int
    included_seats: int
    max_seats: int
    extra_seats_before: int
    extra_seats_after: int
    per_seat_price: int
    base_price: int
    cost_before: int
    cost_after: int
    cost_change: int
    period: str
    status: str
    exceeds_by: Optional[int] = None
    next_plan: Optional[str] = None
    next_plan_name: Optional[str] = None


@dataclass
class ImportValidation:
    valid_count: int
    error_count: int
    duplicate_emails: list[str]
    existing_emails: list[str]
    errors: list[RowValidationError]
    billing: BillingPreview


@dataclass
class ImportResult:
    import_id: UUID
    imported: int
    skipped: int
    new_seat_count: int
    errors: list[dict] = field(default_factory=list)


async def preview_billing_impact(db: AsyncSession, workspace_id: UUID, new_users: int) -> BillingPreview:
    """Seat and cost impact of adding ``new_users`` users to the workspace."""
    workspace = await get_workspace(db, workspace_id)
    plan_id = workspace.plan
    period = workspace.billing_period
    max_seats = get_plan(plan_id).seat_pricing.max_seats

    current = workspace.current_seats
    new_total = current + new_users
    base = get_base_price(plan_id, period)
    per_seat = get_per_seat_price(plan_id, period)
    extra_before = calculate_extra_seats(current, workspace.included_seats)
    extra_after = calculate_extra_seats(new_total, workspace.included_seats)
    cost_before = base + extra_before * per_seat
    cost_after = base + extra_after * per_seat

    preview = BillingPreview(
        current_seats=current,
        users_to_import=new_users,
        new_total=new_total,
        included_seats=workspace.included_seats,
        max_seats=max_seats,
        extra_seats_before=extra_before,
        extra_seats_after=extra_after,
        per_seat_price=per_seat,
        base_price=base,
        cost_before=cost_before,
        cost_after=cost_after,
        cost_change=cost_after - cost_before,
        period=period,
        status="ok",
    )

    if new_total > max_seats:
        preview.status = "exceeds_max"
        preview.exceeds_by = new_total - max_seats
        next_plan = get_next_plan(plan_id)
        if next_plan:
            preview.next_plan = next_plan
            preview.next_plan_name = get_plan(next_plan).name
    elif extra_after > extra_before:
        preview.status = "extra_seats"

    return preview


async def _workspace_emails(db: AsyncSession, workspace_id: UUID) -> set[str]:
    result = await db.execute(select(User.email).where(User.workspace_id == workspace_id))
    return {email.lower() for email in result.scalars().all()}


async def validate_import(db: AsyncSession, workspace_id: UUID, rows: list[ParsedRow]) -> ImportValidation:
    existing = await _workspace_emails(db, workspace_id)
    validation = validate_rows(rows, list(existing))
    billing = await preview_billing_impact(db, workspace_id, len(validation.valid_rows))

    return ImportValidation(
        valid_count=len(validation.valid_rows),
        error_count=len(validation.errors),
        duplicate_emails=validation.duplicate_emails,
        existing_emails=validation.existing_emails,
        errors=validation.errors,
        billing=billing,
    )


async def _recent_import(db: AsyncSession, workspace_id: UUID) -> Optional[TeamImport]:
    since = utcnow() - timedelta(minutes=settings.IMPORT_COOLDOWN_MINUTES)
    result = await db.execute(
        select(TeamImport)
        .where(
            TeamImport.workspace_id == workspace_id,
            TeamImport.created_at >= since,
            TeamImport.status.in_([ImportStatus.PENDING.value, ImportStatus.COMPLETED.value]),
        )
        .limit(1)
    )
    return result.scalar_one_or_none()


async def _record_failure(
    db: AsyncSession,
    workspace_id: UUID,
    user_id: UUID,
    file_name: str,
    total_rows: int,
    valid_rows: int,
    message: str,
) -> UUID:
    audit = TeamImport(
        workspace_id=workspace_id,
        user_id=user_id,
        file_name=file_name,
        total_rows=total_rows,
        valid_rows=valid_rows,
        imported_rows=0,
        skipped_rows=total_rows,
        status=ImportStatus.FAILED.value,
        error_summary={"error": message},
    )
    db.add(audit)
    await db.flush()
    return audit.id


async def _create_member(
    db: AsyncSession,
    workspace_id: UUID,
    user: User,
    row: ParsedRow,
    capacity_hours: int,
) -> TeamMember:
    skills = row.skills or []
    member = TeamMember(
        workspace_id=workspace_id,
        name=user.name or user.email,
        title=row.title,
        role=IMPORTED_MEMBER_ROLE,
        skills=[s.name for s in skills],
        default_weekly_capacity_hours=capacity_hours,
        active=True,
    )
    db.add(member)
    await db.flush()

    if skills:
        skill_map = await ensure_skills(db, workspace_id, [s.name for s in skills])
        linked: set[UUID] = set()
        for parsed in skills:
            skill = skill_map[parsed.name.strip()]
            if skill.id in linked:
                continue
            linked.add(skill.id)
            db.add(
                TeamMemberSkill(
                    team_member_id=member.id,
                    skill_id=skill.id,
                    proficiency=parsed.proficiency or Proficiency.PROFICIENT.value,
                )
            )

    user.team_member_id = member.id
    await db.flush()
    return member


async def execute_import(
    db: AsyncSession,
    workspace_id: UUID,
    importer: User,
    rows: list[ParsedRow],
    file_name: str,
) -> ImportResult:
    """Create a user and a team member for every new email in ``rows``.

    Users get a 7-day password reset token and an invite email. Limit checks
    run before and again under the workspace row lock.
    """
    importer_id = importer.id
    if await _recent_import(db, workspace_id):
        raise TeamImportError(
            "An import was performed recently. "
            f"Please wait {settings.IMPORT_COOLDOWN_MINUTES} minutes between imports."
        )

    existing = await _workspace_emails(db, workspace_id)
    new_rows: list[ParsedRow] = []
    seen: set[str] = set()
    for row in rows:
        email = row.email.strip().lower()
        if email in existing or email in seen:
            continue
        seen.add(email)
        new_rows.append(row)

    if not new_rows:
        raise TeamImportError("No new users to import. All emails already exist in the workspace.")

    workspace = await get_workspace(db, workspace_id)
    plan = get_plan(workspace.plan)
    max_seats = plan.seat_pricing.max_seats
    max_members = plan.limits.team_members

    current_seats = await get_current_seats(db, workspace_id)
    if current_seats + len(new_rows) > max_seats:
        raise TeamImportError(
            f"Import would exceed the {max_seats}-seat limit on your {plan.name} plan. "
            f"Current seats: {current_seats}, trying to add: {len(new_rows)}."
        )

    current_members = await count_active_team_members(db, workspace_id)
    if current_members + len(new_rows) > max_members:
        raise TeamImportError(
            f"Import would exceed the {max_members} team member limit on your {plan.name} plan. "
            f"Current: {current_members}, importing: {len(new_rows)}. Upgrade your plan to add more."
        )

    total_rows = len(rows)

    # Re-check under the workspace lock
    workspace = await get_workspace(db, workspace_id, for_update=True)
    active_seats = await get_current_seats(db, workspace_id)
    active_members = await count_active_team_members(db, workspace_id)
    failure = None
    if active_seats + len(new_rows) > max_seats:
        failure = (
            f"Seat limit exceeded during import. Active: {active_seats}, "
            f"importing: {len(new_rows)}, max: {max_seats}."
        )
    elif active_members + len(new_rows) > max_members:
        failure = (
            f"Team member limit exceeded during import. Active: {active_members}, "
            f"importing: {len(new_rows)}, max: {max_members}."
        )
    if failure:
        import_id = await _record_failure(
            db, workspace_id, importer_id, file_name, total_rows, len(new_rows), failure
        )
        raise TeamImportError(failure, import_id=import_id)

    # Imported users set their own password through the invite link
    placeholder_hash = hash_password(generate_url_token())
    expires = utcnow() + timedelta(days=settings.IMPORT_INVITE_EXPIRE_DAYS)
    capacity_hours = workspace.default_capacity_hours or DEFAULT_CAPACITY_HOURS
    invites: list[tuple[User, str]] = []

    try:
        for row in new_rows:
            token = generate_url_token()
            user = User(
                workspace_id=workspace_id,
                email=row.email.strip().lower(),
                name=row.name.strip(),
                hashed_password=placeholder_hash,
                role=Role.OWNER.value if row.role == Role.OWNER.value else Role.MEMBER.value,
                active=True,
                password_reset_token=token,
                password_reset_expires=expires,
            )
            db.add(user)
            await db.flush()
            await _create_member(db, workspace_id, user, row, capacity_hours)
            invites.append((user, token))

        workspace.current_seats = active_seats + len(invites)
        audit = TeamImport(
            workspace_id=workspace_id,
            user_id=importer_id,
            file_name=file_name,
            total_rows=total_rows,
            valid_rows=len(new_rows),
            imported_rows=len(invites),
            skipped_rows=total_rows - len(new_rows),
            status=(
                ImportStatus.COMPLETED.value
                if len(invites) == len(new_rows)
                else ImportStatus.PARTIAL.value
            ),
        )
        db.add(audit)
        await db.flush()
    except SQLAlchemyError as e:
        logger.error(f"Team import into workspace {workspace_id} failed: {e}")
        await db.rollback()
        import_id = await _record_failure(
            db, workspace_id, importer_id, file_name, total_rows, len(new_rows), str(e)
        )
        raise TeamImportError("Import failed. No users were created.", import_id=import_id) from e

    await sync_workspace_seats(db, workspace_id)

    inviter_name = importer.name or importer.email or "Your admin"
    errors = []
    for user, token in invites:
        queued = enqueue_email(
            TASK_SEND_TEAM_INVITE,
            to=user.email,
            inviter_name=inviter_name,
            workspace_name=workspace.name or "your workspace",
            action_url=f"{settings.APP_URL}/reset-password?token={token}",
        )
        if not queued:
            errors.append({"email": user.email, "reason": "Email send failed"})

    logger.info(
        f"Imported {len(invites)} users into workspace {workspace_id} from {file_name} "
        f"({total_rows - len(invites)} skipped)"
    )

    return ImportResult(
        import_id=audit.id,
        imported=len(invites),
        skipped=total_rows - len(invites),
        new_seat_count=await get_current_seats(db, workspace_id),
        errors=errors,
    )
