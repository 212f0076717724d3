"""
Roster services: founding, membership and the role hierarchy.
"""
from __future__ import annotations
import logging
import re
from typing import Optional

from django.conf import settings
from django.contrib.auth.models import User
from django.db import IntegrityError, transaction
from django.db.models import Q

from ..models import Gang, Membership, MissionAttempt, Territory, TreasuryLedger, War, WarParticipant
from . import ledger
from .errors import AlreadyInGang, Conflict, NameTaken, NotAMember, ValidationError, Forbidden
from .permissions import (
    Capability, DEMOTIONS, PROMOTIONS, Role, get_membership, outranks,
    require_capability, require_membership,
)

logger = logging.getLogger(__name__)

TAG_RE = re.compile(r'^[A-Za-z0-9]+$')


def _cfg(key: str, default: int) -> int:
    gs = getattr(settings, 'GANG_SETTINGS', {}) or {}
    return int(gs.get(key, default))


def _validate_identity(name: str, tag: str) -> tuple[str, str]:
    name = str(name or '').strip()
    tag = str(tag or '').strip().upper()
    name_min, name_max = _cfg('GANG_NAME_MIN_LENGTH', 3), _cfg('GANG_NAME_MAX_LENGTH', 50)
    tag_min, tag_max = _cfg('GANG_TAG_MIN_LENGTH', 2), _cfg('GANG_TAG_MAX_LENGTH', 5)
    if not (name_min <= len(name) <= name_max):
        raise ValidationError(f'Gang name must be {name_min}-{name_max} characters', code='invalid_name')
    if not (tag_min <= len(tag) <= tag_max) or not TAG_RE.match(tag):
        raise ValidationError(f'Gang tag must be {tag_min}-{tag_max} letters or digits', code='invalid_tag')
    return name, tag


def member_count(gang: Gang) -> int:
    return Membership.objects.filter(gang=gang).count()


@transaction.atomic
def found_gang(user: User, name: str, tag: str, description: str = '') -> Gang:
    """Debit the founding fee and create the gang with its founder as Leader.
    A failed fee debit aborts the whole operation.
    """
    name, tag = _validate_identity(name, tag)
    if get_membership(user) is not None:
        raise AlreadyInGang('You are already a member of a gang')
    if Gang.objects.filter(name__iexact=name).exists():
        raise NameTaken('Gang name already taken')
    if Gang.objects.filter(tag__iexact=tag).exists():
        raise NameTaken('Gang tag already taken', code='tag_taken')

    ledger.debit(ledger.get_player(user), _cfg('FOUNDING_FEE', 10000))

    try:
        with transaction.atomic():
            gang = Gang.objects.create(name=name, tag=tag, description=str(description or '').strip(), owner=user)
            Membership.objects.create(gang=gang, user=user, role=Role.LEADER)
    except IntegrityError:
        # Lost a race on name, tag or the founder's membership
        if get_membership(user) is not None:
            raise AlreadyInGang('You are already a member of a gang')
        raise NameTaken('Gang name or tag already taken')

    logger.info(f"{user.username} founded [{gang.tag}] {gang.name}")
    return gang


@transaction.atomic
def join_gang(gang: Gang, user: User) -> Membership:
    if get_membership(user) is not None:
        raise AlreadyInGang('You are already a member of a gang')
    try:
        with transaction.atomic():
            membership = Membership.objects.create(gang=gang, user=user, role=Role.SOLDIER)
    except IntegrityError:
        raise AlreadyInGang('You are already a member of a gang')
    logger.info(f"{user.username} joined [{gang.tag}]")
    return membership


@transaction.atomic
def leave_gang(gang: Gang, user: User) -> Optional[Gang]:
    """Remove the user's membership. A Leader can only leave as the last member,
    which disbands the gang. Returns the gang if it still exists.
    """
    gang = Gang.objects.select_for_update().get(pk=gang.pk)
    membership = require_membership(user, gang, lock=True)
    if membership.role == Role.LEADER:
        if member_count(gang) > 1:
            raise Conflict('Leaders must transfer leadership before leaving', code='leader_must_transfer')
        disband_gang(gang)
        return None
    membership.delete()
    logger.info(f"{user.username} left [{gang.tag}]")
    return gang


@transaction.atomic
def kick_member(gang: Gang, acting_user: User, target_user: User) -> None:
    actor = require_membership(acting_user, gang)
    require_capability(actor, Capability.KICK)
    target = get_membership(target_user, gang, lock=True)
    if target is None:
        raise NotAMember('Target user is not a member of this gang')
    if not outranks(actor.role, target.role):
        raise Forbidden('You can only kick members ranked below you')
    target.delete()
    logger.info(f"{acting_user.username} kicked {target_user.username} from [{gang.tag}]")


@transaction.atomic
def set_role(gang: Gang, acting_user: User, target_user: User, new_role: str) -> Membership:
    """Assign a non-Leader role. The actor must outrank both the target's current
    role and the role being assigned. Leadership moves only via transfer_leadership.
    """
    try:
        new_role = Role(new_role)
    except ValueError:
        raise ValidationError(f'Unknown role: {new_role}', code='invalid_role')
    actor = require_membership(acting_user, gang)
    require_capability(actor, Capability.PROMOTE)
    target = get_membership(target_user, gang, lock=True)
    if target is None:
        raise NotAMember('Target user is not a member of this gang')
    if new_role == Role.LEADER or target.role == Role.LEADER:
        raise Conflict('Use leadership transfer to change the Leader', code='leader_role_locked')
    if target.pk == actor.pk:
        raise Forbidden('You cannot change your own role')
    if not outranks(actor.role, target.role) or not outranks(actor.role, new_role):
        raise Forbidden('You can only manage roles ranked below your own')
    target.role = new_role
    target.save(update_fields=['role', 'updated_at'])
    logger.info(f"{acting_user.username} set {target_user.username} to {new_role.label} in [{gang.tag}]")
    return target


def promote(gang: Gang, acting_user: User, target_user: User) -> Membership:
    target = require_membership(target_user, gang)
    new_role = PROMOTIONS.get(Role(target.role))
    if new_role is None:
        raise Conflict('Cannot promote beyond Underboss', code='max_rank')
    return set_role(gang, acting_user, target_user, new_role)


def demote(gang: Gang, acting_user: User, target_user: User) -> Membership:
    target = require_membership(target_user, gang)
    new_role = DEMOTIONS.get(Role(target.role))
    if new_role is None:
        raise Conflict('Cannot demote below Soldier', code='min_rank')
    return set_role(gang, acting_user, target_user, new_role)


@transaction.atomic
def transfer_leadership(gang: Gang, acting_user: User, target_user: User) -> Gang:
    gang = Gang.objects.select_for_update().get(pk=gang.pk)
    leader = require_membership(acting_user, gang, lock=True)
    require_capability(leader, Capability.TRANSFER_LEADERSHIP)
    target = get_membership(target_user, gang, lock=True)
    if target is None:
        raise NotAMember('Target user is not a member of this gang')
    if target.pk == leader.pk:
        raise ValidationError('You are already the leader', code='same_member')

    # Demote first: one Leader per gang is enforced by a unique constraint
    leader.role = Role.UNDERBOSS
    leader.save(update_fields=['role', 'updated_at'])
    target.role = Role.LEADER
    target.save(update_fields=['role', 'updated_at'])
    gang.owner = target_user
    gang.save(update_fields=['owner', 'updated_at'])
    logger.info(f"Leadership of [{gang.tag}] passed from {acting_user.username} to {target_user.username}")
    return gang


@transaction.atomic
def update_gang(gang: Gang, acting_user: User, description: Optional[str] = None,
                logo: Optional[str] = None) -> Gang:
    """Edit the gang's public profile. Only description and logo are writable;
    name, tag, balances and stats are never touched here.
    """
    gang = Gang.objects.select_for_update().get(pk=gang.pk)
    membership = require_membership(acting_user, gang)
    require_capability(membership, Capability.UPDATE_PROFILE)

    fields = []
    if description is not None:
        gang.description = str(description).strip()
        fields.append('description')
    if logo is not None:
        logo = str(logo).strip()
        max_logo = Gang._meta.get_field('logo').max_length
        if len(logo) > max_logo:
            raise ValidationError(f'Logo must be at most {max_logo} characters', code='invalid_logo')
        gang.logo = logo
        fields.append('logo')
    if fields:
        gang.save(update_fields=fields + ['updated_at'])
        logger.info(f"{acting_user.username} updated {', '.join(fields)} of [{gang.tag}]")
    return gang


@transaction.atomic
def disband_gang(gang: Gang) -> None:
    """Delete a gang and everything it owns in one transaction."""
    gang = Gang.objects.select_for_update().get(pk=gang.pk)
    wars = War.objects.filter(Q(attacker=gang) | Q(defender=gang))

    MissionAttempt.objects.filter(gang=gang).delete()
    WarParticipant.objects.filter(war__in=wars).delete()
    wars.delete()
    Territory.objects.filter(controlled_by=gang).update(controlled_by=None, attack_cooldown_until=None)
    TreasuryLedger.objects.filter(gang=gang).delete()
    Membership.objects.filter(gang=gang).delete()
    tag = gang.tag
    gang.delete()
    logger.info(f"Gang [{tag}] disbanded")


@transaction.atomic
def disband(gang: Gang, acting_user: User) -> None:
    membership = require_membership(acting_user, gang)
    require_capability(membership, Capability.DISBAND)
    disband_gang(gang)
