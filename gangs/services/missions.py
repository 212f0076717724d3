"""
Mission scheduler: timed cooperative objectives attempted by a gang.

An attempt moves in_progress -> completed -> rewarded. Completion is checked
lazily whenever an attempt is read and eagerly by the periodic sweep.
"""
from __future__ import annotations
import logging
from datetime import datetime, timedelta
from typing import Dict, List, Optional

from django.conf import settings
from django.contrib.auth.models import User
from django.db import IntegrityError, transaction
from django.utils import timezone

from ..models import Gang, Mission, MissionAttempt, TreasuryLedger
from . import ledger
from .errors import NotEnoughMembers, NotFound, NotReady, OnCooldown
from .permissions import Capability, require_capability, require_membership
from .roster import member_count

logger = logging.getLogger(__name__)

Status = MissionAttempt.Status


def _cfg(key: str, default: int) -> int:
    gs = getattr(settings, 'GANG_SETTINGS', {}) or {}
    return int(gs.get(key, default))


def _is_due(attempt: MissionAttempt, now: datetime) -> bool:
    return attempt.status == Status.IN_PROGRESS and now >= attempt.completed_at


def _latest_attempt(gang: Gang, mission: Mission) -> Optional[MissionAttempt]:
    return MissionAttempt.objects.filter(gang=gang, mission=mission).order_by('-started_at').first()


def serialize_attempt(attempt: MissionAttempt, now: Optional[datetime] = None) -> Dict:
    now = now or timezone.now()
    remaining = max(0, int((attempt.completed_at - now).total_seconds()))
    return {
        'id': str(attempt.id),
        'mission_id': str(attempt.mission_id),
        'mission_name': attempt.mission.name,
        'gang_id': str(attempt.gang_id),
        'status': attempt.status,
        'started_at': attempt.started_at.isoformat(),
        'completed_at': attempt.completed_at.isoformat(),
        'next_available_at': attempt.next_available_at.isoformat(),
        'seconds_remaining': remaining if attempt.status == Status.IN_PROGRESS else 0,
    }


def complete_due_attempts(now: Optional[datetime] = None, gang: Optional[Gang] = None) -> int:
    """Move every finished in-progress attempt to completed. Returns how many moved."""
    now = now or timezone.now()
    qs = MissionAttempt.objects.filter(status=Status.IN_PROGRESS, completed_at__lte=now)
    if gang is not None:
        qs = qs.filter(gang=gang)
    count = qs.update(status=Status.COMPLETED, updated_at=now)
    if count:
        logger.info(f"{count} mission attempt(s) completed")
    return count


@transaction.atomic
def check_completion(attempt: MissionAttempt, now: Optional[datetime] = None) -> MissionAttempt:
    """Complete the attempt if its time is up. Safe to call any number of times."""
    now = now or timezone.now()
    attempt = MissionAttempt.objects.select_for_update().get(pk=attempt.pk)
    if _is_due(attempt, now):
        attempt.status = Status.COMPLETED
        attempt.save(update_fields=['status', 'updated_at'])
        logger.info(f"Mission attempt {attempt.id} completed")
    return attempt


def list_available(gang: Gang, now: Optional[datetime] = None) -> List[Dict]:
    now = now or timezone.now()
    complete_due_attempts(now, gang=gang)
    members = member_count(gang)
    result = []
    for mission in Mission.objects.filter(is_active=True):
        latest = _latest_attempt(gang, mission)
        in_progress = latest is not None and latest.status == Status.IN_PROGRESS
        on_cooldown = in_progress or (latest is not None and latest.next_available_at > now)
        has_enough = members >= mission.required_members
        result.append({
            'id': str(mission.id),
            'name': mission.name,
            'description': mission.description,
            'difficulty': mission.difficulty,
            'duration_minutes': mission.duration_minutes,
            'cooldown_minutes': mission.cooldown_minutes,
            'required_members': mission.required_members,
            'cash_reward': mission.cash_reward,
            'respect_reward': mission.respect_reward,
            'experience_reward': mission.experience_reward,
            'in_progress': in_progress,
            'on_cooldown': on_cooldown,
            'next_available_at': latest.next_available_at.isoformat() if on_cooldown else None,
            'has_enough_members': has_enough,
            'can_attempt': not on_cooldown and has_enough,
        })
    return result


@transaction.atomic
def start_mission(gang: Gang, mission: Mission, acting_user: Optional[User] = None,
                  now: Optional[datetime] = None) -> MissionAttempt:
    now = now or timezone.now()
    if acting_user is not None:
        require_capability(require_membership(acting_user, gang), Capability.START_MISSION)
    if not mission.is_active:
        raise NotFound('Mission is not available')

    # Serialize starts per gang
    gang = Gang.objects.select_for_update().get(pk=gang.pk)
    complete_due_attempts(now, gang=gang)

    latest = _latest_attempt(gang, mission)
    if latest is not None and latest.status == Status.IN_PROGRESS:
        raise OnCooldown('This mission is already in progress')
    if latest is not None and latest.next_available_at > now:
        minutes = max(1, int(-(-(latest.next_available_at - now).total_seconds() // 60)))
        raise OnCooldown(f'Mission is on cooldown for another {minutes} minutes')
    if member_count(gang) < mission.required_members:
        raise NotEnoughMembers(f'This mission requires at least {mission.required_members} gang members')

    completed_at = now + timedelta(minutes=mission.duration_minutes)
    try:
        with transaction.atomic():
            attempt = MissionAttempt.objects.create(
                gang=gang,
                mission=mission,
                status=Status.IN_PROGRESS,
                started_at=now,
                completed_at=completed_at,
                next_available_at=completed_at + timedelta(minutes=mission.cooldown_minutes),
            )
    except IntegrityError:
        raise OnCooldown('This mission is already in progress')

    logger.info(f"[{gang.tag}] started mission {mission.name} (done at {completed_at.isoformat()})")
    return attempt


@transaction.atomic
def collect_rewards(attempt_id, acting_user: Optional[User] = None, now: Optional[datetime] = None) -> Dict:
    """Pay a completed attempt's rewards into the gang once."""
    now = now or timezone.now()
    try:
        attempt = MissionAttempt.objects.select_for_update().get(pk=attempt_id)
    except MissionAttempt.DoesNotExist:
        raise NotFound('Mission attempt not found')
    if acting_user is not None:
        require_capability(require_membership(acting_user, attempt.gang_id), Capability.COLLECT_MISSION)

    attempt = check_completion(attempt, now)
    if attempt.status == Status.IN_PROGRESS:
        raise NotReady('Mission is not complete yet')
    if attempt.status == Status.REWARDED:
        raise NotReady('Mission rewards already collected')

    mission = attempt.mission
    gang = Gang.objects.select_for_update().get(pk=attempt.gang_id)
    gang.bank_balance += mission.cash_reward
    gang.respect += mission.respect_reward
    levels = gang.gain_experience(mission.experience_reward, _cfg('GANG_EXPERIENCE_PER_LEVEL', 1000))
    gang.save(update_fields=['bank_balance', 'respect', 'experience', 'level', 'updated_at'])
    if mission.cash_reward:
        ledger.record_entry(
            gang, TreasuryLedger.EntryType.MISSION_REWARD, mission.cash_reward, notes=f'Mission: {mission.name}',
        )

    attempt.status = Status.REWARDED
    attempt.save(update_fields=['status', 'updated_at'])
    logger.info(f"[{gang.tag}] collected rewards for {mission.name}")
    return {
        'attempt': attempt,
        'cash': mission.cash_reward,
        'respect': mission.respect_reward,
        'experience': mission.experience_reward,
        'levels_gained': levels,
        'gang_balance': gang.bank_balance,
    }


def active_missions(gang: Gang, now: Optional[datetime] = None) -> List[MissionAttempt]:
    """Attempts still running or awaiting reward collection."""
    now = now or timezone.now()
    complete_due_attempts(now, gang=gang)
    return list(
        MissionAttempt.objects.select_related('mission')
        .filter(gang=gang, status__in=[Status.IN_PROGRESS, Status.COMPLETED])
        .order_by('completed_at')
    )


def get_attempt(attempt_id, now: Optional[datetime] = None) -> MissionAttempt:
    try:
        attempt = MissionAttempt.objects.select_related('mission').get(pk=attempt_id)
    except MissionAttempt.DoesNotExist:
        raise NotFound('Mission attempt not found')
    if _is_due(attempt, now or timezone.now()):
        attempt = check_completion(attempt, now)
    return attempt
