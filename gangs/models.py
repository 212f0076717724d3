"""
Gang Models
Persistent state for gangs, rosters, territories, wars and missions
"""
from django.db import models
from django.db.models import Q
from django.contrib.auth.models import User
from django.utils import timezone
import uuid


class BaseModel(models.Model):
    """Base model with UUID and timestamps"""
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True


# ===============================
# PLAYER WALLET
# ===============================

class Player(BaseModel):
    """Cash wallet of a user; the user-side account of every ledger transfer"""
    user = models.OneToOneField(User, on_delete=models.CASCADE, related_name='player')
    cash = models.BigIntegerField(default=0, help_text="Spendable cash on hand")

    class Meta:
        db_table = 'syn_players'
        constraints = [
            models.CheckConstraint(condition=Q(cash__gte=0), name='player_cash_non_negative'),
        ]

    def __str__(self):
        return f"{self.user.username} (${self.cash})"


# ===============================
# GANGS AND ROSTER
# ===============================

class Gang(BaseModel):
    """Player-formed faction with a shared treasury"""
    name = models.CharField(max_length=50, unique=True)
    tag = models.CharField(max_length=5, unique=True)
    description = models.TextField(blank=True, default='')
    logo = models.CharField(max_length=200, blank=True, default='')

    bank_balance = models.BigIntegerField(default=0, help_text="Treasury balance")
    level = models.IntegerField(default=1)
    experience = models.BigIntegerField(default=0)
    respect = models.BigIntegerField(default=0)
    strength = models.IntegerField(default=10)
    defense = models.IntegerField(default=10)

    owner = models.ForeignKey(User, on_delete=models.PROTECT, related_name='owned_gangs')

    class Meta:
        db_table = 'syn_gangs'
        ordering = ['-respect', 'name']
        constraints = [
            models.CheckConstraint(condition=Q(bank_balance__gte=0), name='gang_bank_balance_non_negative'),
        ]

    def __str__(self):
        return f"[{self.tag}] {self.name} (Level {self.level})"

    def experience_needed_for_next_level(self, per_level: int) -> int:
        return self.level * per_level

    def gain_experience(self, amount: int, per_level: int) -> int:
        """Add experience and apply level ups. Returns the number of levels gained.
        Caller saves the row.
        """
        self.experience += amount
        gained = 0
        while per_level > 0 and self.experience >= self.experience_needed_for_next_level(per_level):
            self.level += 1
            gained += 1
        return gained


class Membership(BaseModel):
    class Role(models.TextChoices):
        LEADER = 'leader', 'Leader'
        UNDERBOSS = 'underboss', 'Underboss'
        CAPO = 'capo', 'Capo'
        SOLDIER = 'soldier', 'Soldier'

    gang = models.ForeignKey(Gang, on_delete=models.PROTECT, related_name='memberships')
    # One active membership per user is enforced by the one-to-one column
    user = models.OneToOneField(User, on_delete=models.CASCADE, related_name='gang_membership')
    role = models.CharField(max_length=16, choices=Role.choices, default=Role.SOLDIER)
    contribution = models.BigIntegerField(default=0, help_text="Lifetime treasury deposits")
    joined_at = models.DateTimeField(default=timezone.now)

    class Meta:
        db_table = 'syn_gang_members'
        ordering = ['joined_at']
        constraints = [
            models.UniqueConstraint(fields=['gang'], condition=Q(role='leader'), name='one_leader_per_gang'),
        ]

    def __str__(self):
        return f"{self.user.username} - {self.get_role_display()} of {self.gang.name}"


class TreasuryLedger(BaseModel):
    class EntryType(models.TextChoices):
        DEPOSIT = 'deposit', 'Deposit'
        WITHDRAW = 'withdraw', 'Withdraw'
        MISSION_REWARD = 'mission_reward', 'Mission Reward'
        TERRITORY_INCOME = 'territory_income', 'Territory Income'

    gang = models.ForeignKey(Gang, on_delete=models.PROTECT, related_name='ledger')
    user = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True)
    entry_type = models.CharField(max_length=20, choices=EntryType.choices)
    amount = models.BigIntegerField(default=0)
    balance_after = models.BigIntegerField(default=0)
    notes = models.CharField(max_length=200, blank=True, default='')

    class Meta:
        db_table = 'syn_treasury_ledger'
        ordering = ['-created_at']


# ===============================
# TERRITORY AND WARS
# ===============================

class Territory(BaseModel):
    """Map location owned by at most one gang"""
    name = models.CharField(max_length=100, unique=True)
    description = models.TextField(blank=True, default='')
    image = models.CharField(max_length=200, blank=True, default='')
    income_per_day = models.IntegerField(default=0)
    defense_bonus_percent = models.IntegerField(default=0)

    controlled_by = models.ForeignKey(Gang, on_delete=models.PROTECT, null=True, blank=True, related_name='territories')
    attack_cooldown_until = models.DateTimeField(null=True, blank=True)
    last_income_at = models.DateTimeField(default=timezone.now)

    class Meta:
        db_table = 'syn_territories'
        ordering = ['name']

    def __str__(self):
        return self.name

    def on_cooldown(self, now=None) -> bool:
        now = now or timezone.now()
        return bool(self.attack_cooldown_until and self.attack_cooldown_until > now)


class War(BaseModel):
    class Status(models.TextChoices):
        ACTIVE = 'active', 'Active'
        COMPLETED = 'completed', 'Completed'

    territory = models.ForeignKey(Territory, on_delete=models.SET_NULL, null=True, blank=True, related_name='wars')
    attacker = models.ForeignKey(Gang, on_delete=models.PROTECT, related_name='wars_declared')
    defender = models.ForeignKey(Gang, on_delete=models.PROTECT, related_name='wars_defended')
    attack_strength = models.BigIntegerField(default=0)
    defense_strength = models.BigIntegerField(default=0)
    status = models.CharField(max_length=16, choices=Status.choices, default=Status.ACTIVE)
    start_time = models.DateTimeField(default=timezone.now)
    end_time = models.DateTimeField(null=True, blank=True)
    winner = models.ForeignKey(Gang, on_delete=models.PROTECT, null=True, blank=True, related_name='wars_won')

    class Meta:
        db_table = 'syn_wars'
        ordering = ['-start_time']
        constraints = [
            models.UniqueConstraint(fields=['territory'], condition=Q(status='active'), name='one_active_war_per_territory'),
        ]

    def __str__(self):
        return f"War {str(self.id)[:8]} ({self.status})"

    @property
    def is_active(self) -> bool:
        return self.status == War.Status.ACTIVE


class WarParticipant(BaseModel):
    class Side(models.TextChoices):
        ATTACKER = 'attacker', 'Attacker'
        DEFENDER = 'defender', 'Defender'

    war = models.ForeignKey(War, on_delete=models.PROTECT, related_name='participants')
    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name='war_participations')
    gang = models.ForeignKey(Gang, on_delete=models.PROTECT, related_name='war_participants')
    side = models.CharField(max_length=16, choices=Side.choices)
    contribution = models.BigIntegerField(default=0)
    joined_at = models.DateTimeField(default=timezone.now)

    class Meta:
        db_table = 'syn_war_participants'
        unique_together = ('war', 'user')

    def __str__(self):
        return f"{self.user.username} ({self.side}) in {self.war}"


# ===============================
# MISSIONS
# ===============================

class Mission(BaseModel):
    """Catalog entry for a cooperative timed objective"""
    class Difficulty(models.TextChoices):
        EASY = 'easy', 'Easy'
        MEDIUM = 'medium', 'Medium'
        HARD = 'hard', 'Hard'
        EXTREME = 'extreme', 'Extreme'

    name = models.CharField(max_length=100, unique=True)
    description = models.TextField(blank=True, default='')
    difficulty = models.CharField(max_length=16, choices=Difficulty.choices, default=Difficulty.EASY)
    duration_minutes = models.PositiveIntegerField()
    cooldown_minutes = models.PositiveIntegerField(default=0)
    required_members = models.PositiveIntegerField(default=1)
    cash_reward = models.PositiveIntegerField(default=0)
    respect_reward = models.PositiveIntegerField(default=0)
    experience_reward = models.PositiveIntegerField(default=0)
    is_active = models.BooleanField(default=True)

    class Meta:
        db_table = 'syn_missions'
        ordering = ['duration_minutes', 'name']

    def __str__(self):
        return f"{self.name} ({self.difficulty})"


class MissionAttempt(BaseModel):
    class Status(models.TextChoices):
        IN_PROGRESS = 'in_progress', 'In Progress'
        COMPLETED = 'completed', 'Completed'
        REWARDED = 'rewarded', 'Rewarded'

    gang = models.ForeignKey(Gang, on_delete=models.PROTECT, related_name='mission_attempts')
    mission = models.ForeignKey(Mission, on_delete=models.PROTECT, related_name='attempts')
    status = models.CharField(max_length=16, choices=Status.choices, default=Status.IN_PROGRESS)
    started_at = models.DateTimeField(default=timezone.now)
    completed_at = models.DateTimeField()
    next_available_at = models.DateTimeField()

    class Meta:
        db_table = 'syn_mission_attempts'
        ordering = ['-started_at']
        indexes = [
            models.Index(fields=['gang', 'mission', 'started_at'], name='attempt_gang_mission_idx'),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=['gang', 'mission'],
                condition=Q(status='in_progress'),
                name='one_in_progress_attempt_per_gang_mission',
            ),
        ]

    def __str__(self):
        return f"{self.mission.name} by {self.gang.name} ({self.status})"
