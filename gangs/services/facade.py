"""
Gang facade: the operations the outside world calls.

Each operation takes plain ids, resolves them, runs the domain service inside
one retried transaction and returns a JSON-ready read model.
"""
from __future__ import annotations
import logging
from typing import Dict, List, Optional

from django.contrib.auth.models import User
from django.core.exceptions import ValidationError as DjangoValidationError
from django.utils import timezone

from ..models import Gang, Mission, War
from . import ledger, missions, roster, territory, wars
from .errors import NotFound
from .permissions import get_membership
from .transactions import atomic_with_retry

logger = logging.getLogger(__name__)


def _get(model, pk, message: str):
    try:
        return model.objects.get(pk=pk)
    except (model.DoesNotExist, DjangoValidationError, ValueError):
        raise NotFound(message)


def _user(user_id) -> User:
    return _get(User, user_id, 'User not found')


def _gang(gang_id) -> Gang:
    return _get(Gang, gang_id, 'Gang not found')


# ===============================
# READ MODELS
# ===============================

def serialize_gang(gang: Gang) -> Dict:
    return {
        'id': str(gang.id),
        'name': gang.name,
        'tag': gang.tag,
        'description': gang.description,
        'logo': gang.logo,
        'bank_balance': gang.bank_balance,
        'level': gang.level,
        'experience': gang.experience,
        'respect': gang.respect,
        'strength': gang.strength,
        'defense': gang.defense,
        'owner_id': gang.owner_id,
        'member_count': roster.member_count(gang),
        'created_at': gang.created_at.isoformat(),
    }


def gang_details(gang_id) -> Dict:
    """Gang with its roster, territories, active wars and running missions."""
    now = timezone.now()
    gang = _gang(gang_id)
    data = serialize_gang(gang)
    data['members'] = [
        {
            'user_id': m.user_id,
            'username': m.user.username,
            'role': m.role,
            'contribution': m.contribution,
            'joined_at': m.joined_at.isoformat(),
        }
        for m in gang.memberships.select_related('user').order_by('joined_at')
    ]
    data['territories'] = [territory.serialize_territory(t, now) for t in gang.territories.all()]
    data['active_wars'] = [wars.serialize_war(w) for w in wars.active_wars_for_gang(gang)]
    data['active_missions'] = [missions.serialize_attempt(a, now) for a in missions.active_missions(gang, now)]
    return data


def list_gangs() -> List[Dict]:
    return [serialize_gang(g) for g in Gang.objects.all()]


def player_summary(user_id) -> Dict:
    user = _user(user_id)
    player = ledger.get_player(user)
    membership = get_membership(user)
    return {
        'user_id': user.id,
        'username': user.username,
        'cash': player.cash,
        'gang_id': str(membership.gang_id) if membership else None,
        'role': membership.role if membership else None,
    }


def list_territories() -> List[Dict]:
    now = timezone.now()
    return [territory.serialize_territory(t, now) for t in territory.list_territories()]


def territory_detail(territory_id) -> Dict:
    t = territory.get_territory(territory_id)
    data = territory.serialize_territory(t)
    data['active_war'] = None
    war = t.wars.filter(status=War.Status.ACTIVE).first()
    if war is not None:
        data['active_war'] = wars.serialize_war(war)
    return data


def list_wars(active_only: bool = False) -> List[Dict]:
    return [wars.serialize_war(w) for w in wars.list_wars(active_only=active_only)]


def war_detail(war_id) -> Dict:
    return wars.serialize_war(wars.get_war(war_id), include_participants=True)


def available_missions(gang_id) -> List[Dict]:
    return missions.list_available(_gang(gang_id))


def mission_attempt(attempt_id) -> Dict:
    return missions.serialize_attempt(missions.get_attempt(attempt_id))


# ===============================
# ROSTER
# ===============================

@atomic_with_retry
def create_gang(founder_id, name: str, tag: str, description: str = '') -> Dict:
    gang = roster.found_gang(_user(founder_id), name, tag, description)
    return gang_details(gang.id)


@atomic_with_retry
def update_gang(user_id, gang_id, description: Optional[str] = None, logo: Optional[str] = None) -> Dict:
    gang = roster.update_gang(_gang(gang_id), _user(user_id), description=description, logo=logo)
    return gang_details(gang.id)


@atomic_with_retry
def join_gang(user_id, gang_id) -> Dict:
    gang = _gang(gang_id)
    roster.join_gang(gang, _user(user_id))
    return gang_details(gang.id)


@atomic_with_retry
def leave_gang(user_id, gang_id) -> Dict:
    remaining = roster.leave_gang(_gang(gang_id), _user(user_id))
    return {'left': True, 'disbanded': remaining is None}


@atomic_with_retry
def kick_member(user_id, gang_id, target_user_id) -> Dict:
    gang = _gang(gang_id)
    roster.kick_member(gang, _user(user_id), _user(target_user_id))
    return gang_details(gang.id)


@atomic_with_retry
def set_member_role(user_id, gang_id, target_user_id, role: str) -> Dict:
    gang = _gang(gang_id)
    roster.set_role(gang, _user(user_id), _user(target_user_id), role)
    return gang_details(gang.id)


@atomic_with_retry
def promote_member(user_id, gang_id, target_user_id) -> Dict:
    gang = _gang(gang_id)
    roster.promote(gang, _user(user_id), _user(target_user_id))
    return gang_details(gang.id)


@atomic_with_retry
def demote_member(user_id, gang_id, target_user_id) -> Dict:
    gang = _gang(gang_id)
    roster.demote(gang, _user(user_id), _user(target_user_id))
    return gang_details(gang.id)


@atomic_with_retry
def transfer_leadership(user_id, gang_id, target_user_id) -> Dict:
    gang = _gang(gang_id)
    roster.transfer_leadership(gang, _user(user_id), _user(target_user_id))
    return gang_details(gang.id)


@atomic_with_retry
def disband_gang(user_id, gang_id) -> Dict:
    roster.disband(_gang(gang_id), _user(user_id))
    return {'disbanded': True}


# ===============================
# TREASURY
# ===============================

@atomic_with_retry
def deposit_to_bank(user_id, gang_id, amount: int) -> Dict:
    return ledger.deposit_to_treasury(_gang(gang_id), _user(user_id), amount)


@atomic_with_retry
def withdraw_from_bank(user_id, gang_id, amount: int) -> Dict:
    return ledger.withdraw_from_treasury(_gang(gang_id), _user(user_id), amount)


# ===============================
# TERRITORY AND WARS
# ===============================

@atomic_with_retry
def attack_territory(user_id, gang_id, territory_id) -> Dict:
    result = territory.attack_territory(territory_id, _gang(gang_id), _user(user_id))
    war = result['war']
    return {
        'claimed': result['claimed'],
        'territory': territory.serialize_territory(result['territory']),
        'war': wars.serialize_war(war) if war else None,
    }


@atomic_with_retry
def join_war(user_id, war_id) -> Dict:
    wars.join_war(war_id, _user(user_id))
    return war_detail(war_id)


@atomic_with_retry
def contribute_to_war(user_id, war_id, amount: int) -> Dict:
    result = wars.contribute(war_id, _user(user_id), amount)
    return {
        'war': wars.serialize_war(result['war']),
        'contribution': result['participant'].contribution,
        'side': result['participant'].side,
        'user_cash': result['user_cash'],
    }


@atomic_with_retry
def end_war(war_id, winner_gang_id, user_id: Optional[int] = None) -> Dict:
    acting_user = _user(user_id) if user_id is not None else None
    war = wars.end_war(war_id, winner_gang_id, acting_user=acting_user)
    return war_detail(war.id)


# ===============================
# MISSIONS
# ===============================

@atomic_with_retry
def start_mission(gang_id, mission_id, user_id: Optional[int] = None) -> Dict:
    gang = _gang(gang_id)
    mission = _get(Mission, mission_id, 'Mission not found')
    acting_user = _user(user_id) if user_id is not None else None
    attempt = missions.start_mission(gang, mission, acting_user=acting_user)
    return missions.serialize_attempt(attempt)


@atomic_with_retry
def collect_mission_rewards(attempt_id, user_id: Optional[int] = None) -> Dict:
    acting_user = _user(user_id) if user_id is not None else None
    result = missions.collect_rewards(attempt_id, acting_user=acting_user)
    return {
        'attempt': missions.serialize_attempt(result['attempt']),
        'cash': result['cash'],
        'respect': result['respect'],
        'experience': result['experience'],
        'levels_gained': result['levels_gained'],
        'gang_balance': result['gang_balance'],
    }
