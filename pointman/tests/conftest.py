"""Pytest fixtures for Pointman tests."""

from datetime import timedelta

import pytest
from django.contrib.auth import get_user_model
from django.utils import timezone

from pointman.models import Establishment


@pytest.fixture
def now():
    return timezone.now()


@pytest.fixture
def user(db):
    """Create a test user."""
    return get_user_model().objects.create_user(username="ahmed", password="x")


@pytest.fixture
def other_user(db):
    """Create a second test user."""
    return get_user_model().objects.create_user(username="mona", password="x")


@pytest.fixture
def establishment(db):
    """Create the issuing establishment."""
    return Establishment.objects.create(code="EST-001", name="Cafe Nile")


@pytest.fixture
def other_establishment(db):
    """Create an unrelated establishment."""
    return Establishment.objects.create(code="EST-002", name="Zamalek Bakery")


@pytest.fixture
def trial_subscription(user, now):
    """Fresh account: free plan with the trial running."""
    from pointman.services import SubscriptionService

    return SubscriptionService.start(user.pk, now=now)


@pytest.fixture
def free_subscription(user, now):
    """Account whose trial lapsed a while ago (effective plan: free)."""
    from pointman.services import SubscriptionService

    return SubscriptionService.start(user.pk, now=now - timedelta(days=30))
