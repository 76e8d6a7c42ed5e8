from datetime import date
from decimal import Decimal

import pytest
from django.contrib.auth import get_user_model
from rest_framework.test import APIClient

from operacoes import hotmart_client
from operacoes.models import Product, UserRole
from operacoes.sales import create_sale

User = get_user_model()


def make_user(username, role=UserRole.COLLABORATOR, **extra):
    user = User.objects.create_user(username=username, password="senha-forte-123", **extra)
    profile = user.profile
    profile.role = role
    profile.full_name = username.title()
    profile.save()
    return user


@pytest.fixture(autouse=True)
def clean_integrations(settings, tmp_path):
    settings.ASAAS_API_KEY = ""
    settings.HOTMART_CLIENT_ID = ""
    settings.HOTMART_CLIENT_SECRET = ""
    settings.HOTMART_BASIC_TOKEN = ""
    settings.LLM_API_KEY = ""
    settings.INTEGRATIONS_LOG_REQUESTS = False
    settings.MEDIA_ROOT = str(tmp_path / "media")
    hotmart_client.clear_token_cache()
    yield
    hotmart_client.clear_token_cache()


@pytest.fixture
def admin_user(db):
    return make_user("admin", UserRole.ADMIN)


@pytest.fixture
def finance_user(db):
    return make_user("financeiro", UserRole.FINANCE)


@pytest.fixture
def seller(db):
    return make_user("vendedor", UserRole.SELLER)


@pytest.fixture
def other_seller(db):
    return make_user("outro_vendedor", UserRole.SELLER)


@pytest.fixture
def collaborator(db):
    return make_user("colaborador", UserRole.COLLABORATOR)


@pytest.fixture
def product(db):
    return Product.objects.create(
        name="Mentoria Anual",
        price=Decimal("1200.00"),
        default_commission_percent=Decimal("10"),
    )


@pytest.fixture
def sale_factory(db, admin_user):
    counter = {"value": 0}

    def build(**overrides):
        counter["value"] += 1
        data = {
            "external_id": f"VENDA-{counter['value']}",
            "client_name": "Maria Cliente",
            "client_email": "maria@example.com",
            "product_name": "Mentoria Anual",
            "total_value": Decimal("1000.00"),
            "installments_count": 3,
            "sale_date": date(2024, 1, 31),
            "commission_percent": Decimal("10"),
        }
        data.update(overrides)
        return create_sale(data, user=admin_user)

    return build


@pytest.fixture
def api_client():
    def build(user=None):
        client = APIClient()
        if user is not None:
            client.force_authenticate(user=user)
        return client

    return build
