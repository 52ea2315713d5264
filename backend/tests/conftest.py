"""
Pytest configuration and fixtures.

Les services tournent contre une base SQLite en mémoire (aiosqlite,
StaticPool : une seule connexion partagée) ; l'API est appelée via httpx
sans serveur.
"""

import datetime
from decimal import Decimal

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.pool import StaticPool

from orbital.core.config import Settings, get_settings
from orbital.core.database import Database
from orbital.core.security import create_access_token
from orbital.main import create_app
from orbital.schemas.client import ClientCreate
from orbital.schemas.common import LineItemInput
from orbital.schemas.invoice import InvoiceCreate
from orbital.services.client_service import ClientService
from orbital.services.invoice_service import InvoiceService
from orbital.services.payment_service import PaymentService
from orbital.services.quote_service import QuoteService
from orbital.services.settings_service import SettingsService

USER_A = "user-a"
USER_B = "user-b"


# ============================================================
# Configuration et base de données
# ============================================================


@pytest.fixture
def settings() -> Settings:
    return Settings(
        database_url="sqlite+aiosqlite://",
        app_env="testing",
        secret_key="test-secret-key-for-orbital-tests-0123456789",
        log_level="DEBUG",
    )


@pytest.fixture
async def database():
    """Base en mémoire, schéma créé puis supprimé à chaque test."""
    database = Database(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    await database.create_all()
    yield database
    await database.drop_all()
    await database.dispose()


@pytest.fixture
async def db(database):
    async with database.session_factory() as session:
        yield session


# ============================================================
# Services
# ============================================================


@pytest.fixture
def client_service() -> ClientService:
    return ClientService()


@pytest.fixture
def payment_service(client_service) -> PaymentService:
    return PaymentService(client_service)


@pytest.fixture
def invoice_service(settings, client_service, payment_service) -> InvoiceService:
    return InvoiceService(
        settings=settings,
        client_service=client_service,
        payment_service=payment_service,
    )


@pytest.fixture
def quote_service(settings, client_service, invoice_service) -> QuoteService:
    return QuoteService(
        settings=settings,
        client_service=client_service,
        invoice_service=invoice_service,
    )


@pytest.fixture
def settings_service() -> SettingsService:
    return SettingsService()


# ============================================================
# Données
# ============================================================


@pytest.fixture
async def acme(db, client_service):
    """Client société de l'utilisateur A."""
    return await client_service.create(
        db, USER_A, ClientCreate(name="ACME SAS", email="compta@acme.fr", city="Lyon")
    )


def dev_items(quantity="5", unit_price="450"):
    return [
        LineItemInput(
            description="Dev",
            quantity=Decimal(quantity),
            unit_price=Decimal(unit_price),
        )
    ]


@pytest.fixture
def make_invoice(db, invoice_service, acme):
    """Fabrique de factures brouillon pour ACME (2250 HT, 2700 TTC par défaut)."""

    async def _make(**kwargs):
        kwargs.setdefault("items", dev_items())
        kwargs.setdefault("vat_rate", Decimal("20"))
        return await invoice_service.create(
            db, USER_A, InvoiceCreate(client_id=acme.id, **kwargs)
        )

    return _make


@pytest.fixture
def current_year() -> int:
    return datetime.date.today().year


# ============================================================
# API
# ============================================================


@pytest.fixture
def app(settings, database):
    application = create_app(app_settings=settings, database=database)
    application.dependency_overrides[get_settings] = lambda: settings
    return application


@pytest.fixture
async def http_client(app):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def auth_headers(settings) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(USER_A, settings)}"}


@pytest.fixture
def other_auth_headers(settings) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(USER_B, settings)}"}
