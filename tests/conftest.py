import os

# Pas de Redis pendant les tests: le lifespan lit ce flag au démarrage
os.environ.setdefault("DISABLE_FASTAPI_LIMITER_INIT_FOR_TESTS", "1")

import itertools
import pytest
from typing import Any, Dict, Generator, List, Optional
from fastapi.testclient import TestClient

from paybridge import config
from paybridge.app import app as fastapi_app
from paybridge.checkout.errors import UpstreamError, ValidationError
from paybridge.checkout.store import InMemorySessionStore
from paybridge.commandes.shopify_client import CommerceOrder, build_order_payload
from paybridge.payments.sumup_client import to_provider_session

# Marquage automatique selon le dossier
def pytest_collection_modifyitems(config, items):
    for item in items:
        nodeid = item.nodeid.replace("\\", "/")
        if "tests/unit/" in nodeid:
            item.add_marker(pytest.mark.unit)
        elif "tests/integration/" in nodeid:
            item.add_marker(pytest.mark.integration)
        elif "tests/functional/" in nodeid:
            item.add_marker(pytest.mark.functional)


CUSTOMER = {
    "firstName": "Aoife",
    "lastName": "Murphy",
    "email": "aoife@example.com",
    "phone": "+353 1 234 5678",
    "address": "12 O'Connell Street",
    "postalCode": "D01 F5P2",
    "city": "Dublin",
    "country": "Ireland",
}

CART = {
    "items": [{"title": "Product", "quantity": 1, "price": 1000, "variant_id": 4242}],
    "total_price": 1000,
    "currency": "EUR",
}


class FakeSumUp:
    """SumUp en mémoire: checkouts créés, statut pilotable par le test."""

    def __init__(self) -> None:
        self.checkouts: Dict[str, Dict[str, Any]] = {}
        self.created: List[Dict[str, Any]] = []
        self.status_calls = 0
        self.fail_create: Optional[tuple] = None
        self._ids = itertools.count(1)

    async def open_session(self, *, reference, amount, currency, payee, description):
        if self.fail_create:
            status, body = self.fail_create
            raise UpstreamError("SumUp", status, body)
        checkout_id = f"chk_{next(self._ids)}"
        self.checkouts[checkout_id] = {
            "id": checkout_id,
            "status": "PENDING",
            "amount": float(amount),
            "currency": currency,
            "checkout_reference": reference,
            "transactions": [],
        }
        self.created.append(
            {"reference": reference, "amount": amount, "currency": currency, "payee": payee, "description": description}
        )
        return to_provider_session(self.checkouts[checkout_id])

    async def get_session_status(self, session_id):
        self.status_calls += 1
        data = self.checkouts.get(session_id)
        if data is None:
            raise UpstreamError("SumUp", 404, {"error_code": "NOT_FOUND"})
        return to_provider_session(dict(data))

    async def get_merchant_profile(self):
        return {"merchant_profile": {"merchant_code": "MTEST"}}

    async def list_transactions(self):
        return [{"transaction_code": "TXN1", "status": "SUCCESSFUL"}]

    @property
    def last_id(self) -> str:
        return list(self.checkouts)[-1]

    def pay(self, checkout_id: str, code: str = "TXN123") -> None:
        # Le drapeau de session reste PENDING: seule la transaction dit SUCCESSFUL
        self.checkouts[checkout_id]["transactions"] = [
            {"id": "t1", "transaction_code": code, "status": "SUCCESSFUL", "amount": self.checkouts[checkout_id]["amount"]}
        ]

    def decline(self, checkout_id: str) -> None:
        self.checkouts[checkout_id]["status"] = "FAILED"
        self.checkouts[checkout_id]["transactions"] = [{"id": "t1", "status": "FAILED"}]


class FakeShopify:
    """Enregistre les payloads de commande au lieu de les envoyer."""

    def __init__(self) -> None:
        self.payloads: List[Dict[str, Any]] = []
        self.fail: Optional[Exception] = None

    async def create_order(self, customer, cart, session_id, transaction_code=None):
        if cart is None or cart.is_empty:
            raise ValidationError("Aucun article dans le panier")
        self.payloads.append(build_order_payload(customer, cart, session_id, transaction_code))
        if self.fail is not None:
            raise self.fail
        n = len(self.payloads)
        return CommerceOrder(id=5000 + n, order_number=1000 + n)


@pytest.fixture(autouse=True)
def _settings(monkeypatch):
    monkeypatch.setattr(config, "SUMUP_API_KEY", "sup_sk_test")
    monkeypatch.setattr(config, "SUMUP_EMAIL", "merchant@example.com")
    monkeypatch.setattr(config, "SHOPIFY_STORE", "test-shop.myshopify.com")
    monkeypatch.setattr(config, "SHOPIFY_ACCESS_TOKEN", "shpat_test")
    monkeypatch.setattr(config, "BASE_URL", "http://testserver")
    monkeypatch.setattr(config, "SERVER_SIDE_POLLING", False)
    monkeypatch.setattr(config, "CHECKOUT_LOCALE", "en")


@pytest.fixture
def fake_sumup(monkeypatch) -> FakeSumUp:
    fake = FakeSumUp()
    monkeypatch.setattr("paybridge.payments.sumup_client.open_session", fake.open_session)
    monkeypatch.setattr("paybridge.payments.sumup_client.get_session_status", fake.get_session_status)
    monkeypatch.setattr("paybridge.payments.sumup_client.get_merchant_profile", fake.get_merchant_profile)
    monkeypatch.setattr("paybridge.payments.sumup_client.list_transactions", fake.list_transactions)
    return fake


@pytest.fixture
def fake_shopify(monkeypatch) -> FakeShopify:
    fake = FakeShopify()
    monkeypatch.setattr("paybridge.commandes.shopify_client.create_order", fake.create_order)
    return fake


@pytest.fixture(scope="session")
def app():
    return fastapi_app


@pytest.fixture()
def client(app) -> Generator[TestClient, None, None]:
    # Store neuf par test: le lifespan reconstruit l'orchestrateur autour de lui
    app.state.session_store = InMemorySessionStore()
    with TestClient(app) as c:
        yield c


@pytest.fixture
def store(app, client) -> InMemorySessionStore:
    return app.state.session_store


@pytest.fixture
def customer_data() -> Dict[str, Any]:
    return dict(CUSTOMER)


@pytest.fixture
def cart_data() -> Dict[str, Any]:
    return {**CART, "items": [dict(i) for i in CART["items"]]}
