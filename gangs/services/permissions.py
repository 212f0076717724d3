"""
Role capabilities and membership lookups shared by every gang service.
"""
from __future__ import annotations
from enum import Enum
from typing import Optional

from ..models import Membership
from .errors import Forbidden, NotAMember

Role = Membership.Role


class Capability(str, Enum):
    WITHDRAW = 'withdraw'
    ATTACK = 'attack'
    PROMOTE = 'promote'
    KICK = 'kick'
    START_MISSION = 'start_mission'
    COLLECT_MISSION = 'collect_mission'
    RESOLVE_WAR = 'resolve_war'
    TRANSFER_LEADERSHIP = 'transfer_leadership'
    DISBAND = 'disband'
    UPDATE_PROFILE = 'update_profile'


CAPABILITIES = {
    Role.LEADER: frozenset(Capability),
    Role.UNDERBOSS: frozenset({
        Capability.WITHDRAW,
        Capability.ATTACK,
        Capability.PROMOTE,
        Capability.KICK,
        Capability.START_MISSION,
        Capability.COLLECT_MISSION,
        Capability.RESOLVE_WAR,
    }),
    Role.CAPO: frozenset({Capability.START_MISSION}),
    Role.SOLDIER: frozenset(),
}

# Higher outranks lower
ROLE_RANK = {
    Role.LEADER: 4,
    Role.UNDERBOSS: 3,
    Role.CAPO: 2,
    Role.SOLDIER: 1,
}

# Promotion ladder; Leader is only reachable by transfer
PROMOTIONS = {
    Role.SOLDIER: Role.CAPO,
    Role.CAPO: Role.UNDERBOSS,
}
DEMOTIONS = {
    Role.UNDERBOSS: Role.CAPO,
    Role.CAPO: Role.SOLDIER,
}

_DENIED = {
    Capability.WITHDRAW: 'Only Leaders and Underbosses can withdraw from the gang bank',
    Capability.ATTACK: 'Only Leaders and Underbosses can initiate territory attacks',
    Capability.PROMOTE: 'Only Leaders and Underbosses can change member roles',
    Capability.KICK: 'Only Leaders and Underbosses can kick members',
    Capability.START_MISSION: 'Only Leaders, Underbosses and Capos can start gang missions',
    Capability.COLLECT_MISSION: 'Only Leaders and Underbosses can collect mission rewards',
    Capability.RESOLVE_WAR: 'Only Leaders and Underbosses can end a war',
    Capability.TRANSFER_LEADERSHIP: 'Only the gang leader can transfer leadership',
    Capability.DISBAND: 'Only the gang leader can disband the gang',
    Capability.UPDATE_PROFILE: 'Only the gang leader can update the gang',
}


def has_capability(role: str, capability: Capability) -> bool:
    return capability in CAPABILITIES.get(Role(role), frozenset())


def outranks(actor_role: str, target_role: str) -> bool:
    return ROLE_RANK[Role(actor_role)] > ROLE_RANK[Role(target_role)]


def require_capability(membership: Membership, capability: Capability) -> Membership:
    if not has_capability(membership.role, capability):
        raise Forbidden(_DENIED[capability])
    return membership


def get_membership(user, gang=None, lock: bool = False) -> Optional[Membership]:
    qs = Membership.objects.all()
    if lock:
        qs = qs.select_for_update()
    qs = qs.filter(user=user)
    if gang is not None:
        qs = qs.filter(gang=gang)
    return qs.first()


def require_membership(user, gang, lock: bool = False) -> Membership:
    membership = get_membership(user, gang, lock=lock)
    if membership is None:
        raise NotAMember('You are not a member of this gang')
    return membership
