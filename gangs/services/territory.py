"""
Territory registry: ownership of map locations, the attack cooldown gate and
passive income.
"""
from __future__ import annotations
import logging
from datetime import datetime, timedelta
from typing import Dict, List, Optional

from django.conf import settings
from django.contrib.auth.models import User
from django.db import IntegrityError, transaction
from django.utils import timezone

from ..models import Gang, Territory, TreasuryLedger, War, WarParticipant
from . import ledger
from .errors import AlreadyAtWar, Conflict, NotFound, OnCooldown
from .permissions import Capability, require_capability, require_membership

logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 24 * 60 * 60


def _cfg(key: str, default: int) -> int:
    gs = getattr(settings, 'GANG_SETTINGS', {}) or {}
    return int(gs.get(key, default))


def _gang_summary(gang: Optional[Gang]) -> Optional[Dict]:
    if gang is None:
        return None
    return {'id': str(gang.id), 'name': gang.name, 'tag': gang.tag}


def serialize_territory(t: Territory, now: Optional[datetime] = None) -> Dict:
    now = now or timezone.now()
    return {
        'id': str(t.id),
        'name': t.name,
        'description': t.description,
        'image': t.image,
        'income_per_day': t.income_per_day,
        'defense_bonus_percent': t.defense_bonus_percent,
        'controlled_by': _gang_summary(t.controlled_by),
        'attack_cooldown_until': t.attack_cooldown_until.isoformat() if t.attack_cooldown_until else None,
        'on_cooldown': t.on_cooldown(now),
    }


def list_territories() -> List[Territory]:
    return list(Territory.objects.select_related('controlled_by').order_by('name'))


def get_territory(territory_id) -> Territory:
    try:
        return Territory.objects.select_related('controlled_by').get(pk=territory_id)
    except Territory.DoesNotExist:
        raise NotFound('Territory not found')


def _cooldown_message(territory: Territory, now: datetime) -> str:
    remaining = territory.attack_cooldown_until - now
    hours = max(1, int(-(-remaining.total_seconds() // 3600)))
    return f'This territory cannot be attacked for another {hours} hours'


def set_control(territory: Territory, gang: Optional[Gang], now: Optional[datetime] = None) -> Territory:
    """Hand the territory to ``gang`` (or release it). A new owner gets a fresh
    attack cooldown; releasing clears it. Caller holds the territory row lock.
    """
    now = now or timezone.now()
    territory.controlled_by = gang
    if gang is not None:
        territory.attack_cooldown_until = now + timedelta(hours=_cfg('TERRITORY_ATTACK_COOLDOWN_HOURS', 24))
    else:
        territory.attack_cooldown_until = None
    territory.last_income_at = now
    territory.save(update_fields=['controlled_by', 'attack_cooldown_until', 'last_income_at', 'updated_at'])
    return territory


@transaction.atomic
def attack_territory(territory_id, gang: Gang, user: User, now: Optional[datetime] = None) -> Dict:
    """Claim an unowned territory outright or declare war on its owner.

    Returns {'claimed': bool, 'territory': Territory, 'war': War|None}.
    """
    now = now or timezone.now()
    membership = require_membership(user, gang)
    require_capability(membership, Capability.ATTACK)

    try:
        territory = Territory.objects.select_for_update().get(pk=territory_id)
    except Territory.DoesNotExist:
        raise NotFound('Territory not found')

    if territory.on_cooldown(now):
        raise OnCooldown(_cooldown_message(territory, now))
    if territory.controlled_by_id == gang.id:
        raise Conflict('Your gang already controls this territory', code='already_controlled')

    if territory.controlled_by_id is None:
        set_control(territory, gang, now)
        logger.info(f"[{gang.tag}] claimed unowned territory {territory.name}")
        return {'claimed': True, 'territory': territory, 'war': None}

    if War.objects.filter(territory=territory, status=War.Status.ACTIVE).exists():
        raise AlreadyAtWar('There is already an active war for this territory')
    try:
        with transaction.atomic():
            war = War.objects.create(
                territory=territory,
                attacker=gang,
                defender_id=territory.controlled_by_id,
                start_time=now,
            )
    except IntegrityError:
        raise AlreadyAtWar('There is already an active war for this territory')

    WarParticipant.objects.create(
        war=war, user=user, gang=gang, side=WarParticipant.Side.ATTACKER, joined_at=now,
    )
    logger.info(f"[{gang.tag}] declared war over {territory.name} (war {war.id})")
    return {'claimed': False, 'territory': territory, 'war': war}


def _accrued(territory: Territory, now: datetime) -> int:
    elapsed = (now - territory.last_income_at).total_seconds()
    if elapsed <= 0:
        return 0
    return int(territory.income_per_day * elapsed // SECONDS_PER_DAY)


@transaction.atomic
def accrue_income(now: Optional[datetime] = None) -> int:
    """Pay each controlling gang the income its territories earned since the
    last payout. Returns the total amount paid.
    """
    now = now or timezone.now()
    total = 0
    owned = Territory.objects.select_for_update().filter(controlled_by__isnull=False, income_per_day__gt=0)
    for territory in owned.order_by('id'):
        amount = _accrued(territory, now)
        if amount <= 0:
            continue
        gang = ledger.credit(territory.controlled_by, amount)
        ledger.record_entry(
            gang, TreasuryLedger.EntryType.TERRITORY_INCOME, amount, notes=f'Income from {territory.name}',
        )
        # Carry the unpaid remainder by advancing only by the time actually paid for
        paid_seconds = amount * SECONDS_PER_DAY / territory.income_per_day
        territory.last_income_at = territory.last_income_at + timedelta(seconds=paid_seconds)
        territory.save(update_fields=['last_income_at', 'updated_at'])
        total += amount
    if total:
        logger.info(f"Territory income paid: {total}")
    return total
