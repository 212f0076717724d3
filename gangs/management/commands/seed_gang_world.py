"""
Django management command to seed the gang world.
Creates the starter territories and the mission catalog.
"""
from django.core.management.base import BaseCommand
from django.db import transaction

from gangs.models import Mission, Territory


TERRITORIES = [
    {
        'name': 'Downtown District',
        'description': 'The heart of the city with high-end businesses and opportunities.',
        'income_per_day': 500,
        'defense_bonus_percent': 10,
        'image': '/assets/territories/downtown.jpg',
    },
    {
        'name': 'Industrial Zone',
        'description': 'Factories and warehouses perfect for black market operations.',
        'income_per_day': 350,
        'defense_bonus_percent': 15,
        'image': '/assets/territories/industrial.jpg',
    },
    {
        'name': 'Dockside',
        'description': 'Control of the ports means control of smuggling operations.',
        'income_per_day': 400,
        'defense_bonus_percent': 5,
        'image': '/assets/territories/docks.jpg',
    },
    {
        'name': 'Nightlife District',
        'description': 'Clubs, bars, and entertainment venues ripe for protection rackets.',
        'income_per_day': 450,
        'defense_bonus_percent': 8,
        'image': '/assets/territories/nightlife.jpg',
    },
    {
        'name': 'Suburban Heights',
        'description': 'Wealthy residential area perfect for high-value robberies.',
        'income_per_day': 300,
        'defense_bonus_percent': 20,
        'image': '/assets/territories/suburban.jpg',
    },
]

MISSIONS = [
    {
        'name': 'Bank Heist',
        'description': 'Rob a high-security bank for a massive payday.',
        'difficulty': Mission.Difficulty.HARD,
        'duration_minutes': 60,
        'cooldown_minutes': 360,
        'required_members': 3,
        'cash_reward': 10000,
        'experience_reward': 500,
        'respect_reward': 50,
    },
    {
        'name': 'Protection Racket',
        'description': "Convince local businesses they need your 'protection'.",
        'difficulty': Mission.Difficulty.EASY,
        'duration_minutes': 15,
        'cooldown_minutes': 60,
        'required_members': 1,
        'cash_reward': 2000,
        'experience_reward': 100,
        'respect_reward': 10,
    },
    {
        'name': 'Drug Shipment',
        'description': 'Escort a valuable drug shipment across town.',
        'difficulty': Mission.Difficulty.MEDIUM,
        'duration_minutes': 30,
        'cooldown_minutes': 120,
        'required_members': 2,
        'cash_reward': 5000,
        'experience_reward': 250,
        'respect_reward': 25,
    },
    {
        'name': 'Casino Takeover',
        'description': 'Take control of a local casino and its operations.',
        'difficulty': Mission.Difficulty.HARD,
        'duration_minutes': 90,
        'cooldown_minutes': 480,
        'required_members': 4,
        'cash_reward': 15000,
        'experience_reward': 750,
        'respect_reward': 75,
    },
    {
        'name': 'Street Race',
        'description': 'Organize an illegal street race for betting revenue.',
        'difficulty': Mission.Difficulty.MEDIUM,
        'duration_minutes': 45,
        'cooldown_minutes': 180,
        'required_members': 2,
        'cash_reward': 6000,
        'experience_reward': 300,
        'respect_reward': 30,
    },
]


class Command(BaseCommand):
    help = 'Seed the starter territories and the gang mission catalog'

    def add_arguments(self, parser):
        parser.add_argument(
            '--update',
            action='store_true',
            help='Overwrite stats of territories and missions that already exist',
        )

    @transaction.atomic
    def handle(self, *args, **options):
        update = options['update']
        self.stdout.write('Seeding gang world...')
        created = self.seed(Territory, TERRITORIES, update)
        self.stdout.write(f'Territories: {created} created')
        created = self.seed(Mission, MISSIONS, update)
        self.stdout.write(f'Missions: {created} created')
        self.stdout.write(self.style.SUCCESS('Gang world ready'))

    def seed(self, model, rows, update):
        created = 0
        for row in rows:
            defaults = {k: v for k, v in row.items() if k != 'name'}
            if update:
                _, was_created = model.objects.update_or_create(name=row['name'], defaults=defaults)
            else:
                _, was_created = model.objects.get_or_create(name=row['name'], defaults=defaults)
            created += int(was_created)
        return created
