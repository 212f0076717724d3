from datetime import timedelta

from django.test import TestCase
from django.contrib.auth.models import User
from django.db import IntegrityError, transaction
from django.utils import timezone

from gangs.models import (
    Gang, Membership, Mission, MissionAttempt, Player, Territory, TreasuryLedger, War, WarParticipant,
)
from gangs.services import ledger, roster
from gangs.services.errors import (
    AlreadyInGang, Conflict, Forbidden, InsufficientFunds, NameTaken, NotAMember, ValidationError,
)

Role = Membership.Role


def make_user(username, cash=50000):
    user = User.objects.create_user(username=username, password='secret')
    Player.objects.create(user=user, cash=cash)
    return user


class FoundingTests(TestCase):
    def setUp(self):
        self.founder = make_user('vito', cash=15000)

    def test_found_debits_fee_and_creates_leader(self):
        gang = roster.found_gang(self.founder, 'Corleone Family', 'cor', 'Olive oil importers')
        self.assertEqual(gang.tag, 'COR')
        self.assertEqual(gang.owner, self.founder)
        self.assertEqual(gang.bank_balance, 0)
        self.assertEqual(gang.level, 1)
        membership = Membership.objects.get(user=self.founder)
        self.assertEqual(membership.gang, gang)
        self.assertEqual(membership.role, Role.LEADER)
        self.assertEqual(Player.objects.get(user=self.founder).cash, 5000)

    def test_fee_failure_aborts_creation(self):
        poor = make_user('poor', cash=9999)
        with self.assertRaises(InsufficientFunds):
            roster.found_gang(poor, 'Broke Boys', 'BRK')
        self.assertFalse(Gang.objects.filter(name='Broke Boys').exists())
        self.assertFalse(Membership.objects.filter(user=poor).exists())
        self.assertEqual(Player.objects.get(user=poor).cash, 9999)

    def test_name_and_tag_must_be_unique(self):
        roster.found_gang(self.founder, 'Corleone Family', 'COR')
        rival = make_user('rival')
        with self.assertRaises(NameTaken):
            roster.found_gang(rival, 'corleone family', 'XYZ')
        with self.assertRaises(NameTaken):
            roster.found_gang(rival, 'Tattaglia', 'cor')
        self.assertEqual(Player.objects.get(user=rival).cash, 50000)

    def test_invalid_name_and_tag(self):
        with self.assertRaises(ValidationError):
            roster.found_gang(self.founder, 'ab', 'AB')
        with self.assertRaises(ValidationError):
            roster.found_gang(self.founder, 'Valid Name', 'A')
        with self.assertRaises(ValidationError):
            roster.found_gang(self.founder, 'Valid Name', 'TOOLONG')
        with self.assertRaises(ValidationError):
            roster.found_gang(self.founder, 'Valid Name', 'A-B')

    def test_member_cannot_found_second_gang(self):
        roster.found_gang(self.founder, 'Corleone Family', 'COR')
        with self.assertRaises(AlreadyInGang):
            roster.found_gang(self.founder, 'Second Family', 'SEC')


class MembershipTests(TestCase):
    def setUp(self):
        self.leader = make_user('leader')
        self.gang = roster.found_gang(self.leader, 'Westside Crew', 'WSC')
        self.other_leader = make_user('other')
        self.other_gang = roster.found_gang(self.other_leader, 'Eastside Crew', 'ESC')
        self.recruit = make_user('recruit')

    def test_join_creates_soldier(self):
        membership = roster.join_gang(self.gang, self.recruit)
        self.assertEqual(membership.role, Role.SOLDIER)
        self.assertEqual(roster.member_count(self.gang), 2)

    def test_one_gang_per_user(self):
        roster.join_gang(self.gang, self.recruit)
        with self.assertRaises(AlreadyInGang):
            roster.join_gang(self.other_gang, self.recruit)
        self.assertEqual(Membership.objects.filter(user=self.recruit).count(), 1)

    def test_database_enforces_single_membership(self):
        roster.join_gang(self.gang, self.recruit)
        with self.assertRaises(IntegrityError):
            with transaction.atomic():
                Membership.objects.create(gang=self.other_gang, user=self.recruit)

    def test_database_enforces_single_leader(self):
        roster.join_gang(self.gang, self.recruit)
        with self.assertRaises(IntegrityError):
            with transaction.atomic():
                Membership.objects.filter(user=self.recruit).update(role=Role.LEADER)

    def test_leave(self):
        roster.join_gang(self.gang, self.recruit)
        remaining = roster.leave_gang(self.gang, self.recruit)
        self.assertEqual(remaining, self.gang)
        self.assertFalse(Membership.objects.filter(user=self.recruit).exists())

    def test_leave_without_membership(self):
        with self.assertRaises(NotAMember):
            roster.leave_gang(self.gang, self.recruit)

    def test_leader_must_transfer_before_leaving(self):
        roster.join_gang(self.gang, self.recruit)
        with self.assertRaises(Conflict) as ctx:
            roster.leave_gang(self.gang, self.leader)
        self.assertEqual(ctx.exception.code, 'leader_must_transfer')
        self.assertTrue(Membership.objects.filter(user=self.leader, role=Role.LEADER).exists())

    def test_sole_leader_leaving_disbands(self):
        self.assertIsNone(roster.leave_gang(self.gang, self.leader))
        self.assertFalse(Gang.objects.filter(pk=self.gang.pk).exists())


class RoleTests(TestCase):
    def setUp(self):
        self.leader = make_user('leader')
        self.gang = roster.found_gang(self.leader, 'Westside Crew', 'WSC')
        self.underboss = make_user('underboss')
        self.capo = make_user('capo')
        self.soldier = make_user('soldier')
        for user in (self.underboss, self.capo, self.soldier):
            roster.join_gang(self.gang, user)
        Membership.objects.filter(user=self.underboss).update(role=Role.UNDERBOSS)
        Membership.objects.filter(user=self.capo).update(role=Role.CAPO)

    def role_of(self, user):
        return Membership.objects.get(user=user).role

    def test_promote_and_demote_ladder(self):
        roster.promote(self.gang, self.leader, self.soldier)
        self.assertEqual(self.role_of(self.soldier), Role.CAPO)
        roster.promote(self.gang, self.leader, self.soldier)
        self.assertEqual(self.role_of(self.soldier), Role.UNDERBOSS)
        with self.assertRaises(Conflict):
            roster.promote(self.gang, self.leader, self.soldier)
        roster.demote(self.gang, self.leader, self.soldier)
        self.assertEqual(self.role_of(self.soldier), Role.CAPO)

    def test_cannot_demote_below_soldier(self):
        with self.assertRaises(Conflict):
            roster.demote(self.gang, self.leader, self.soldier)

    def test_only_leader_and_underboss_set_roles(self):
        with self.assertRaises(Forbidden):
            roster.set_role(self.gang, self.capo, self.soldier, Role.CAPO)
        with self.assertRaises(Forbidden):
            roster.set_role(self.gang, self.soldier, self.capo, Role.SOLDIER)

    def test_underboss_manages_lower_ranks_only(self):
        roster.set_role(self.gang, self.underboss, self.soldier, Role.CAPO)
        self.assertEqual(self.role_of(self.soldier), Role.CAPO)
        with self.assertRaises(Forbidden):
            roster.set_role(self.gang, self.underboss, self.capo, Role.UNDERBOSS)

    def test_leader_role_cannot_be_assigned_or_removed(self):
        with self.assertRaises(Conflict):
            roster.set_role(self.gang, self.leader, self.underboss, Role.LEADER)
        with self.assertRaises(Conflict):
            roster.set_role(self.gang, self.underboss, self.leader, Role.SOLDIER)
        self.assertEqual(Membership.objects.filter(gang=self.gang, role=Role.LEADER).count(), 1)

    def test_unknown_role(self):
        with self.assertRaises(ValidationError):
            roster.set_role(self.gang, self.leader, self.soldier, 'consigliere')

    def test_kick_requires_rank(self):
        with self.assertRaises(Forbidden):
            roster.kick_member(self.gang, self.capo, self.soldier)
        with self.assertRaises(Forbidden):
            roster.kick_member(self.gang, self.underboss, self.leader)
        roster.kick_member(self.gang, self.underboss, self.capo)
        self.assertFalse(Membership.objects.filter(user=self.capo).exists())

    def test_kick_non_member(self):
        outsider = make_user('outsider')
        with self.assertRaises(NotAMember):
            roster.kick_member(self.gang, self.leader, outsider)

    def test_transfer_leadership(self):
        roster.transfer_leadership(self.gang, self.leader, self.capo)
        self.assertEqual(self.role_of(self.capo), Role.LEADER)
        self.assertEqual(self.role_of(self.leader), Role.UNDERBOSS)
        self.gang.refresh_from_db()
        self.assertEqual(self.gang.owner, self.capo)
        self.assertEqual(Membership.objects.filter(gang=self.gang, role=Role.LEADER).count(), 1)

        # Former leader can now leave
        roster.leave_gang(self.gang, self.leader)
        self.assertFalse(Membership.objects.filter(user=self.leader).exists())

    def test_only_leader_transfers_leadership(self):
        with self.assertRaises(Forbidden):
            roster.transfer_leadership(self.gang, self.underboss, self.capo)

    def test_leader_updates_profile(self):
        Gang.objects.filter(pk=self.gang.pk).update(bank_balance=900, respect=40)
        gang = roster.update_gang(self.gang, self.leader, description='  West of the river ', logo='crow.png')
        self.assertEqual(gang.description, 'West of the river')
        self.assertEqual(gang.logo, 'crow.png')

        gang = roster.update_gang(self.gang, self.leader, logo='')
        gang.refresh_from_db()
        self.assertEqual(gang.description, 'West of the river')
        self.assertEqual(gang.logo, '')
        self.assertEqual(gang.name, 'Westside Crew')
        self.assertEqual(gang.bank_balance, 900)
        self.assertEqual(gang.respect, 40)

    def test_only_leader_updates_profile(self):
        for user in (self.underboss, self.soldier):
            with self.assertRaises(Forbidden):
                roster.update_gang(self.gang, user, description='Hijacked')
        with self.assertRaises(NotAMember):
            roster.update_gang(self.gang, make_user('outsider'), description='Hijacked')
        self.gang.refresh_from_db()
        self.assertEqual(self.gang.description, '')

    def test_logo_length_is_bounded(self):
        with self.assertRaises(ValidationError):
            roster.update_gang(self.gang, self.leader, logo='x' * 201)


class DisbandTests(TestCase):
    def setUp(self):
        self.leader = make_user('leader')
        self.gang = roster.found_gang(self.leader, 'Westside Crew', 'WSC')
        self.member = make_user('member')
        roster.join_gang(self.gang, self.member)
        ledger.deposit_to_treasury(self.gang, self.member, 1000)

        self.rival_leader = make_user('rival')
        self.rival = roster.found_gang(self.rival_leader, 'Eastside Crew', 'ESC')

        self.owned = Territory.objects.create(name='Docks', income_per_day=100, controlled_by=self.gang)
        self.contested = Territory.objects.create(name='Market', income_per_day=100, controlled_by=self.rival)
        self.war = War.objects.create(territory=self.contested, attacker=self.gang, defender=self.rival)
        WarParticipant.objects.create(war=self.war, user=self.member, gang=self.gang, side='attacker', contribution=5)

        now = timezone.now()
        mission = Mission.objects.create(name='Heist', duration_minutes=10)
        MissionAttempt.objects.create(
            gang=self.gang, mission=mission, started_at=now,
            completed_at=now + timedelta(minutes=10), next_available_at=now + timedelta(minutes=20),
        )

    def test_disband_cascades_everything(self):
        roster.disband(self.gang, self.leader)
        self.assertFalse(Gang.objects.filter(pk=self.gang.pk).exists())
        self.assertFalse(Membership.objects.filter(user__in=[self.leader, self.member]).exists())
        self.assertFalse(War.objects.filter(pk=self.war.pk).exists())
        self.assertFalse(WarParticipant.objects.exists())
        self.assertFalse(MissionAttempt.objects.exists())
        self.assertFalse(TreasuryLedger.objects.exists())
        self.owned.refresh_from_db()
        self.assertIsNone(self.owned.controlled_by)
        self.assertIsNone(self.owned.attack_cooldown_until)
        # Rival keeps its own territory
        self.contested.refresh_from_db()
        self.assertEqual(self.contested.controlled_by, self.rival)

    def test_only_leader_disbands(self):
        with self.assertRaises(Forbidden):
            roster.disband(self.gang, self.member)
        self.assertTrue(Gang.objects.filter(pk=self.gang.pk).exists())

    def test_members_free_to_join_elsewhere_after_disband(self):
        roster.disband(self.gang, self.leader)
        roster.join_gang(self.rival, self.member)
        self.assertEqual(roster.member_count(self.rival), 2)
