import django.db.models.deletion
import django.utils.timezone
import uuid
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Player',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('cash', models.BigIntegerField(default=0, help_text='Spendable cash on hand')),
                ('user', models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, related_name='player', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'syn_players',
                'constraints': [
                    models.CheckConstraint(condition=models.Q(('cash__gte', 0)), name='player_cash_non_negative'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Gang',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('name', models.CharField(max_length=50, unique=True)),
                ('tag', models.CharField(max_length=5, unique=True)),
                ('description', models.TextField(blank=True, default='')),
                ('logo', models.CharField(blank=True, default='', max_length=200)),
                ('bank_balance', models.BigIntegerField(default=0, help_text='Treasury balance')),
                ('level', models.IntegerField(default=1)),
                ('experience', models.BigIntegerField(default=0)),
                ('respect', models.BigIntegerField(default=0)),
                ('strength', models.IntegerField(default=10)),
                ('defense', models.IntegerField(default=10)),
                ('owner', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='owned_gangs', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'syn_gangs',
                'ordering': ['-respect', 'name'],
                'constraints': [
                    models.CheckConstraint(condition=models.Q(('bank_balance__gte', 0)), name='gang_bank_balance_non_negative'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Membership',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('role', models.CharField(choices=[('leader', 'Leader'), ('underboss', 'Underboss'), ('capo', 'Capo'), ('soldier', 'Soldier')], default='soldier', max_length=16)),
                ('contribution', models.BigIntegerField(default=0, help_text='Lifetime treasury deposits')),
                ('joined_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('gang', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='memberships', to='gangs.gang')),
                ('user', models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, related_name='gang_membership', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'syn_gang_members',
                'ordering': ['joined_at'],
                'constraints': [
                    models.UniqueConstraint(condition=models.Q(('role', 'leader')), fields=('gang',), name='one_leader_per_gang'),
                ],
            },
        ),
        migrations.CreateModel(
            name='TreasuryLedger',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('entry_type', models.CharField(choices=[('deposit', 'Deposit'), ('withdraw', 'Withdraw'), ('mission_reward', 'Mission Reward'), ('territory_income', 'Territory Income')], max_length=20)),
                ('amount', models.BigIntegerField(default=0)),
                ('balance_after', models.BigIntegerField(default=0)),
                ('notes', models.CharField(blank=True, default='', max_length=200)),
                ('gang', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='ledger', to='gangs.gang')),
                ('user', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'syn_treasury_ledger',
                'ordering': ['-created_at'],
            },
        ),
        migrations.CreateModel(
            name='Territory',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('name', models.CharField(max_length=100, unique=True)),
                ('description', models.TextField(blank=True, default='')),
                ('image', models.CharField(blank=True, default='', max_length=200)),
                ('income_per_day', models.IntegerField(default=0)),
                ('defense_bonus_percent', models.IntegerField(default=0)),
                ('attack_cooldown_until', models.DateTimeField(blank=True, null=True)),
                ('last_income_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('controlled_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='territories', to='gangs.gang')),
            ],
            options={
                'db_table': 'syn_territories',
                'ordering': ['name'],
            },
        ),
        migrations.CreateModel(
            name='War',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('attack_strength', models.BigIntegerField(default=0)),
                ('defense_strength', models.BigIntegerField(default=0)),
                ('status', models.CharField(choices=[('active', 'Active'), ('completed', 'Completed')], default='active', max_length=16)),
                ('start_time', models.DateTimeField(default=django.utils.timezone.now)),
                ('end_time', models.DateTimeField(blank=True, null=True)),
                ('attacker', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='wars_declared', to='gangs.gang')),
                ('defender', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='wars_defended', to='gangs.gang')),
                ('territory', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='wars', to='gangs.territory')),
                ('winner', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='wars_won', to='gangs.gang')),
            ],
            options={
                'db_table': 'syn_wars',
                'ordering': ['-start_time'],
                'constraints': [
                    models.UniqueConstraint(condition=models.Q(('status', 'active')), fields=('territory',), name='one_active_war_per_territory'),
                ],
            },
        ),
        migrations.CreateModel(
            name='WarParticipant',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('side', models.CharField(choices=[('attacker', 'Attacker'), ('defender', 'Defender')], max_length=16)),
                ('contribution', models.BigIntegerField(default=0)),
                ('joined_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('gang', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='war_participants', to='gangs.gang')),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='war_participations', to=settings.AUTH_USER_MODEL)),
                ('war', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='participants', to='gangs.war')),
            ],
            options={
                'db_table': 'syn_war_participants',
                'unique_together': {('war', 'user')},
            },
        ),
        migrations.CreateModel(
            name='Mission',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('name', models.CharField(max_length=100, unique=True)),
                ('description', models.TextField(blank=True, default='')),
                ('difficulty', models.CharField(choices=[('easy', 'Easy'), ('medium', 'Medium'), ('hard', 'Hard'), ('extreme', 'Extreme')], default='easy', max_length=16)),
                ('duration_minutes', models.PositiveIntegerField()),
                ('cooldown_minutes', models.PositiveIntegerField(default=0)),
                ('required_members', models.PositiveIntegerField(default=1)),
                ('cash_reward', models.PositiveIntegerField(default=0)),
                ('respect_reward', models.PositiveIntegerField(default=0)),
                ('experience_reward', models.PositiveIntegerField(default=0)),
                ('is_active', models.BooleanField(default=True)),
            ],
            options={
                'db_table': 'syn_missions',
                'ordering': ['duration_minutes', 'name'],
            },
        ),
        migrations.CreateModel(
            name='MissionAttempt',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('status', models.CharField(choices=[('in_progress', 'In Progress'), ('completed', 'Completed'), ('rewarded', 'Rewarded')], default='in_progress', max_length=16)),
                ('started_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('completed_at', models.DateTimeField()),
                ('next_available_at', models.DateTimeField()),
                ('gang', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='mission_attempts', to='gangs.gang')),
                ('mission', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='attempts', to='gangs.mission')),
            ],
            options={
                'db_table': 'syn_mission_attempts',
                'ordering': ['-started_at'],
                'indexes': [
                    models.Index(fields=['gang', 'mission', 'started_at'], name='attempt_gang_mission_idx'),
                ],
                'constraints': [
                    models.UniqueConstraint(condition=models.Q(('status', 'in_progress')), fields=('gang', 'mission'), name='one_in_progress_attempt_per_gang_mission'),
                ],
            },
        ),
    ]
