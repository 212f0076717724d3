"""
Ledger services: atomic money movement between player wallets and gang
treasuries. No balance may ever go negative.
"""
from __future__ import annotations
import logging
from typing import Dict, Tuple, Union

from django.conf import settings
from django.db import transaction
from django.db.models import F

from ..models import Gang, Membership, Player, TreasuryLedger
from .errors import InsufficientFunds, ValidationError
from .permissions import Capability, require_capability, require_membership

logger = logging.getLogger(__name__)

Account = Union[Player, Gang]

_BALANCE_FIELDS = {
    Player: ('cash', 'Not enough cash'),
    Gang: ('bank_balance', 'Not enough money in gang bank'),
}


def _cfg(key: str, default: int) -> int:
    gs = getattr(settings, 'GANG_SETTINGS', {}) or {}
    return int(gs.get(key, default))


def _balance_field(account: Account) -> Tuple[str, str]:
    try:
        return _BALANCE_FIELDS[type(account)]
    except KeyError:
        raise ValidationError(f'{type(account).__name__} has no balance', code='invalid_account')


def _lock(account: Account) -> Account:
    return type(account).objects.select_for_update().get(pk=account.pk)


def validate_amount(amount) -> int:
    if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
        raise ValidationError('Amount must be a positive whole number', code='invalid_amount')
    return amount


def get_player(user, lock: bool = False) -> Player:
    """Return the user's wallet, creating it with the starting cash on first use."""
    player, _ = Player.objects.get_or_create(user=user, defaults={'cash': _cfg('STARTING_CASH', 1000)})
    return _lock(player) if lock else player


def record_entry(gang: Gang, entry_type: str, amount: int, user=None, notes: str = '') -> TreasuryLedger:
    return TreasuryLedger.objects.create(
        gang=gang,
        user=user,
        entry_type=entry_type,
        amount=amount,
        balance_after=gang.bank_balance,
        notes=notes[:200],
    )


@transaction.atomic
def transfer(source: Account, target: Account, amount: int) -> Tuple[Account, Account]:
    """Move ``amount`` from source to target. Returns the fresh (source, target) rows.
    Raises InsufficientFunds with both balances untouched when source is short.
    """
    amount = validate_amount(amount)
    src_field, short_message = _balance_field(source)
    dst_field, _ = _balance_field(target)
    if type(source) is type(target) and source.pk == target.pk:
        raise ValidationError('Cannot transfer to the same account', code='same_account')

    # Lock in a stable order so opposite transfers cannot deadlock
    ordered = sorted([source, target], key=lambda a: (a._meta.label, str(a.pk)))
    locked = {(a._meta.label, a.pk): _lock(a) for a in ordered}
    src = locked[(source._meta.label, source.pk)]
    dst = locked[(target._meta.label, target.pk)]

    if getattr(src, src_field) < amount:
        raise InsufficientFunds(short_message)

    setattr(src, src_field, getattr(src, src_field) - amount)
    setattr(dst, dst_field, getattr(dst, dst_field) + amount)
    src.save(update_fields=[src_field, 'updated_at'])
    dst.save(update_fields=[dst_field, 'updated_at'])
    return src, dst


@transaction.atomic
def debit(account: Account, amount: int) -> Account:
    """Remove ``amount`` from an account without crediting anyone (fees, war spending)."""
    amount = validate_amount(amount)
    field, short_message = _balance_field(account)
    row = _lock(account)
    if getattr(row, field) < amount:
        raise InsufficientFunds(short_message)
    setattr(row, field, getattr(row, field) - amount)
    row.save(update_fields=[field, 'updated_at'])
    return row


@transaction.atomic
def credit(account: Account, amount: int) -> Account:
    amount = validate_amount(amount)
    field, _ = _balance_field(account)
    row = _lock(account)
    setattr(row, field, getattr(row, field) + amount)
    row.save(update_fields=[field, 'updated_at'])
    return row


@transaction.atomic
def deposit_to_treasury(gang: Gang, user, amount: int) -> Dict:
    amount = validate_amount(amount)
    # Gang before Membership, the same order leave_gang takes them
    gang = Gang.objects.select_for_update().get(pk=gang.pk)
    membership = require_membership(user, gang, lock=True)
    player = get_player(user)
    player, gang = transfer(player, gang, amount)
    Membership.objects.filter(pk=membership.pk).update(contribution=F('contribution') + amount)
    membership.refresh_from_db(fields=['contribution'])
    record_entry(gang, TreasuryLedger.EntryType.DEPOSIT, amount, user=user)
    logger.info(f"{user.username} deposited {amount} into [{gang.tag}] (treasury {gang.bank_balance})")
    return {
        'gang_balance': gang.bank_balance,
        'user_cash': player.cash,
        'contribution': membership.contribution,
    }


@transaction.atomic
def withdraw_from_treasury(gang: Gang, user, amount: int) -> Dict:
    amount = validate_amount(amount)
    gang = Gang.objects.select_for_update().get(pk=gang.pk)
    membership = require_membership(user, gang)
    require_capability(membership, Capability.WITHDRAW)
    player = get_player(user)
    gang, player = transfer(gang, player, amount)
    record_entry(gang, TreasuryLedger.EntryType.WITHDRAW, -amount, user=user)
    logger.info(f"{user.username} withdrew {amount} from [{gang.tag}] (treasury {gang.bank_balance})")
    return {
        'gang_balance': gang.bank_balance,
        'user_cash': player.cash,
    }
