"""
War engine: joining sides, contributing strength and resolving a war.

A war is active until it is explicitly resolved, after which it is completed
for good.
"""
from __future__ import annotations
import logging
import uuid
from datetime import datetime
from typing import Dict, List, Optional

from django.contrib.auth.models import User
from django.db import IntegrityError, transaction
from django.db.models import Q
from django.utils import timezone

from ..models import Gang, Territory, War, WarParticipant
from . import ledger
from .errors import AlreadyJoined, Conflict, Forbidden, NotEligible, NotFound, ValidationError
from .permissions import Capability, get_membership, has_capability
from .territory import set_control

logger = logging.getLogger(__name__)


def _lock_war(war_id) -> War:
    try:
        return War.objects.select_for_update().get(pk=war_id)
    except War.DoesNotExist:
        raise NotFound('War not found')


def _require_active(war: War) -> None:
    if not war.is_active:
        raise Conflict('This war has already ended', code='war_over')


def side_for_gang(war: War, gang_id) -> Optional[str]:
    if gang_id == war.attacker_id:
        return WarParticipant.Side.ATTACKER
    if gang_id == war.defender_id:
        return WarParticipant.Side.DEFENDER
    return None


def _enlist(war: War, user: User, now: datetime) -> WarParticipant:
    membership = get_membership(user)
    side = side_for_gang(war, membership.gang_id) if membership else None
    if side is None:
        raise NotEligible('Only members of the attacking or defending gang can join this war')
    try:
        with transaction.atomic():
            return WarParticipant.objects.create(
                war=war, user=user, gang_id=membership.gang_id, side=side, joined_at=now,
            )
    except IntegrityError:
        raise AlreadyJoined('You have already joined this war')


@transaction.atomic
def join_war(war_id, user: User, now: Optional[datetime] = None) -> WarParticipant:
    """Enlist the user on the side of their gang. The side never changes later."""
    now = now or timezone.now()
    war = _lock_war(war_id)
    _require_active(war)
    if WarParticipant.objects.filter(war=war, user=user).exists():
        raise AlreadyJoined('You have already joined this war')
    participant = _enlist(war, user, now)
    logger.info(f"{user.username} joined war {war.id} as {participant.side}")
    return participant


@transaction.atomic
def contribute(war_id, user: User, amount: int, now: Optional[datetime] = None) -> Dict:
    """Spend cash on the user's side of the war, joining it first if needed.
    The cash is consumed; it does not move to any treasury.
    """
    now = now or timezone.now()
    amount = ledger.validate_amount(amount)
    war = _lock_war(war_id)
    _require_active(war)

    participant = (
        WarParticipant.objects.select_for_update().filter(war=war, user=user).first()
        or _enlist(war, user, now)
    )
    player = ledger.debit(ledger.get_player(user), amount)

    participant.contribution += amount
    participant.save(update_fields=['contribution', 'updated_at'])
    if participant.side == WarParticipant.Side.ATTACKER:
        war.attack_strength += amount
    else:
        war.defense_strength += amount
    war.save(update_fields=['attack_strength', 'defense_strength', 'updated_at'])

    logger.info(f"{user.username} put {amount} into war {war.id} ({participant.side})")
    return {
        'war': war,
        'participant': participant,
        'user_cash': player.cash,
    }


@transaction.atomic
def end_war(war_id, winner_gang_id, acting_user: Optional[User] = None, now: Optional[datetime] = None) -> War:
    """Complete an active war and hand its territory to the winner.

    With ``acting_user`` the caller must belong to one of the two gangs and hold
    the resolve capability; system callers pass no user.
    """
    now = now or timezone.now()
    war = _lock_war(war_id)
    _require_active(war)

    if acting_user is not None:
        membership = get_membership(acting_user)
        if membership is None or side_for_gang(war, membership.gang_id) is None:
            raise Forbidden('Your gang has no stake in this war')
        if not has_capability(membership.role, Capability.RESOLVE_WAR):
            raise Forbidden('Only Leaders and Underbosses can end a war')

    try:
        winner_gang_id = uuid.UUID(str(winner_gang_id))
    except ValueError:
        raise ValidationError('Invalid winner gang id', code='invalid_winner')
    if side_for_gang(war, winner_gang_id) is None:
        raise ValidationError('The winner must be the attacking or defending gang', code='invalid_winner')
    winner = Gang.objects.get(pk=winner_gang_id)

    war.status = War.Status.COMPLETED
    war.end_time = now
    war.winner = winner
    war.save(update_fields=['status', 'end_time', 'winner', 'updated_at'])

    if war.territory_id is not None:
        try:
            territory = Territory.objects.select_for_update().get(pk=war.territory_id)
        except Territory.DoesNotExist:
            raise NotFound('Territory not found')
        if territory.controlled_by_id != winner.id:
            set_control(territory, winner, now)

    logger.info(f"War {war.id} won by [{winner.tag}] ({war.attack_strength} vs {war.defense_strength})")
    return war


def get_war(war_id) -> War:
    try:
        return War.objects.select_related('territory', 'attacker', 'defender', 'winner').get(pk=war_id)
    except War.DoesNotExist:
        raise NotFound('War not found')


def list_wars(active_only: bool = False) -> List[War]:
    qs = War.objects.select_related('territory', 'attacker', 'defender').order_by('-start_time')
    if active_only:
        qs = qs.filter(status=War.Status.ACTIVE)
    return list(qs)


def active_wars_for_gang(gang: Gang) -> List[War]:
    return list(
        War.objects.select_related('territory', 'attacker', 'defender')
        .filter(Q(attacker=gang) | Q(defender=gang), status=War.Status.ACTIVE)
    )


def serialize_war(war: War, include_participants: bool = False) -> Dict:
    data = {
        'id': str(war.id),
        'territory': {'id': str(war.territory.id), 'name': war.territory.name} if war.territory_id else None,
        'attacker': {'id': str(war.attacker.id), 'name': war.attacker.name, 'tag': war.attacker.tag},
        'defender': {'id': str(war.defender.id), 'name': war.defender.name, 'tag': war.defender.tag},
        'attack_strength': war.attack_strength,
        'defense_strength': war.defense_strength,
        'status': war.status,
        'start_time': war.start_time.isoformat(),
        'end_time': war.end_time.isoformat() if war.end_time else None,
        'winner_id': str(war.winner_id) if war.winner_id else None,
    }
    if include_participants:
        data['participants'] = [
            {
                'user_id': p.user_id,
                'username': p.user.username,
                'gang_id': str(p.gang_id),
                'side': p.side,
                'contribution': p.contribution,
            }
            for p in war.participants.select_related('user').order_by('joined_at')
        ]
    return data
