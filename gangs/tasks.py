"""
Periodic gang sweeps run by Celery beat (see CELERY_BEAT_SCHEDULE).
"""
import logging

from celery import shared_task
from django.utils import timezone

from .services import missions as mission_svc
from .services import territory as territory_svc

logger = logging.getLogger(__name__)


@shared_task
def complete_due_missions():
    """Complete every in-progress mission attempt whose time is up."""
    return mission_svc.complete_due_attempts(now=timezone.now())


@shared_task
def accrue_territory_income():
    """Pay controlling gangs the income their territories earned since the last run."""
    return territory_svc.accrue_income(now=timezone.now())


def run_tick(now=None):
    """One pass of every periodic sweep. Returns (missions completed, income paid)."""
    now = now or timezone.now()
    completed = mission_svc.complete_due_attempts(now=now)
    paid = territory_svc.accrue_income(now=now)
    logger.debug(f"Gang tick: {completed} missions completed, {paid} income paid")
    return completed, paid
