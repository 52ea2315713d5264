"""
Tests de l'API HTTP (FastAPI + httpx, sans serveur).
"""

import datetime
import uuid
from decimal import Decimal

import pytest

CURRENT_YEAR = datetime.date.today().year


async def create_client(http_client, headers, name="ACME SAS"):
    response = await http_client.post("/api/v1/clients", json={"name": name}, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


async def create_invoice(http_client, headers, client_id, **extra):
    body = {
        "clientId": client_id,
        "items": [{"description": "Dev", "quantity": 5, "unitPrice": 450}],
        "vatRate": 20,
    }
    body.update(extra)
    response = await http_client.post("/api/v1/invoices", json=body, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


@pytest.fixture
async def invoice(http_client, auth_headers):
    client = await create_client(http_client, auth_headers)
    return await create_invoice(http_client, auth_headers, client["id"])


# ============================================================
# Authentification et format des erreurs
# ============================================================


class TestAuthAndErrors:

    async def test_health(self, http_client):
        response = await http_client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    async def test_missing_token(self, http_client):
        response = await http_client.get("/api/v1/invoices")
        assert response.status_code == 401
        assert response.json()["error"] == "Non authentifié"

    async def test_invalid_token(self, http_client):
        response = await http_client.get(
            "/api/v1/invoices", headers={"Authorization": "Bearer not-a-jwt"}
        )
        assert response.status_code == 401
        assert "error" in response.json()

    async def test_validation_error_is_400(self, http_client, auth_headers):
        response = await http_client.post(
            "/api/v1/invoices",
            json={"clientId": str(uuid.uuid4()), "items": [{"description": "X", "unitPrice": -5}]},
            headers=auth_headers,
        )
        assert response.status_code == 400
        assert "error" in response.json()

    async def test_quantity_finer_than_storage_is_400(self, http_client, auth_headers):
        client = await create_client(http_client, auth_headers)
        response = await http_client.post(
            "/api/v1/invoices",
            json={
                "clientId": client["id"],
                "items": [{"description": "Dev", "quantity": "0.0001", "unitPrice": 450}],
            },
            headers=auth_headers,
        )
        assert response.status_code == 400
        assert "quantity" in response.json()["error"]

    async def test_missing_client_and_items(self, http_client, auth_headers):
        response = await http_client.post("/api/v1/invoices", json={}, headers=auth_headers)
        assert response.status_code == 400
        assert response.json()["error"] == "Client et lignes requis"

    async def test_other_user_gets_404(self, http_client, invoice, other_auth_headers):
        response = await http_client.get(f"/api/v1/invoices/{invoice['id']}", headers=other_auth_headers)
        assert response.status_code == 404
        assert response.json()["error"] == "Facture non trouvée"


# ============================================================
# Scénarios de bout en bout
# ============================================================


class TestInvoiceLifecycle:

    async def test_create_invoice(self, invoice):
        """Scénario A."""
        assert Decimal(invoice["subtotal"]) == Decimal("2250.00")
        assert Decimal(invoice["vatAmount"]) == Decimal("450.00")
        assert Decimal(invoice["total"]) == Decimal("2700.00")
        assert invoice["invoiceNumber"] == f"FAC-{CURRENT_YEAR}-0001"
        assert invoice["clientName"] == "ACME SAS"
        assert invoice["items"][0]["sortOrder"] == 0

    async def test_finalized_invoice_rejects_updates(self, http_client, auth_headers, invoice):
        """Scénario B."""
        url = f"/api/v1/invoices/{invoice['id']}"
        response = await http_client.post(f"{url}/finalize", headers=auth_headers)
        assert response.status_code == 400

        response = await http_client.put(url, json={"status": "sent"}, headers=auth_headers)
        assert response.status_code == 200
        response = await http_client.post(f"{url}/finalize", headers=auth_headers)
        assert response.status_code == 200
        assert response.json()["isFinalized"] is True

        response = await http_client.put(
            url,
            json={"items": [{"description": "Dev", "quantity": 1, "unitPrice": 1}]},
            headers=auth_headers,
        )
        assert response.status_code == 403
        assert response.json()["error"].startswith("Facture finalisée")

        response = await http_client.post(f"{url}/finalize", headers=auth_headers)
        assert response.status_code == 400

    async def test_credit_note(self, http_client, auth_headers, invoice):
        """Scénario C."""
        response = await http_client.post(
            f"/api/v1/invoices/{invoice['id']}/credit-note", headers=auth_headers
        )
        assert response.status_code == 201
        credit_note = response.json()
        assert Decimal(credit_note["total"]) == Decimal("-2700.00")
        assert credit_note["invoiceNumber"] == f"AV-{CURRENT_YEAR}-0001"
        assert credit_note["isFinalized"] is True
        assert credit_note["relatedInvoiceId"] == invoice["id"]

    async def test_payment_then_deletion(self, http_client, auth_headers, invoice):
        """Scénario D."""
        response = await http_client.post(
            "/api/v1/payments",
            json={"invoiceId": invoice["id"], "amount": 2700.00, "method": "bank_transfer"},
            headers=auth_headers,
        )
        assert response.status_code == 201
        payment_id = response.json()["id"]

        paid = (await http_client.get(f"/api/v1/invoices/{invoice['id']}", headers=auth_headers)).json()
        assert paid["paymentStatus"] == "paid"
        assert paid["status"] == "paid"
        assert paid["paidAt"] is not None

        response = await http_client.delete(f"/api/v1/payments/{payment_id}", headers=auth_headers)
        assert response.status_code == 200
        assert response.json() == {"success": True, "id": payment_id}

        unpaid = (await http_client.get(f"/api/v1/invoices/{invoice['id']}", headers=auth_headers)).json()
        assert unpaid["paymentStatus"] == "unpaid"
        assert unpaid["paidAt"] is None

    async def test_overpayment_rejected(self, http_client, auth_headers, invoice):
        """Scénario E."""
        response = await http_client.post(
            "/api/v1/payments",
            json={"invoiceId": invoice["id"], "amount": 2700.01, "method": "card"},
            headers=auth_headers,
        )
        assert response.status_code == 400
        assert "2700.00 €" in response.json()["error"]

        summary = (
            await http_client.get(f"/api/v1/payments/invoice/{invoice['id']}", headers=auth_headers)
        ).json()
        assert summary["payments"] == []
        assert Decimal(summary["summary"]["balanceDue"]) == Decimal("2700.00")

        unchanged = (await http_client.get(f"/api/v1/invoices/{invoice['id']}", headers=auth_headers)).json()
        assert unchanged["paymentStatus"] == "unpaid"

    async def test_payment_on_other_users_invoice(self, http_client, invoice, other_auth_headers):
        response = await http_client.post(
            "/api/v1/payments",
            json={"invoiceId": invoice["id"], "amount": 10, "method": "cash"},
            headers=other_auth_headers,
        )
        assert response.status_code == 404

    async def test_direct_payment_status(self, http_client, auth_headers, invoice):
        response = await http_client.put(
            f"/api/v1/invoices/{invoice['id']}/payment",
            json={"paymentStatus": "paid", "paidAmount": 12},
            headers=auth_headers,
        )
        assert response.status_code == 200
        assert response.json()["status"] == "paid"

    async def test_list_with_filters(self, http_client, auth_headers, invoice):
        response = await http_client.get(
            "/api/v1/invoices", params={"status": "draft"}, headers=auth_headers
        )
        assert response.status_code == 200
        assert [i["id"] for i in response.json()] == [invoice["id"]]

        response = await http_client.get(
            "/api/v1/invoices", params={"paymentStatus": "paid"}, headers=auth_headers
        )
        assert response.json() == []

    async def test_delete_invoice(self, http_client, auth_headers, invoice):
        response = await http_client.delete(f"/api/v1/invoices/{invoice['id']}", headers=auth_headers)
        assert response.status_code == 200
        assert response.json()["success"] is True


# ============================================================
# Devis
# ============================================================


class TestQuotesApi:

    async def test_convert_quote_once(self, http_client, auth_headers):
        client = await create_client(http_client, auth_headers)
        response = await http_client.post(
            "/api/v1/quotes",
            json={
                "clientId": client["id"],
                "items": [{"description": "Audit", "unitPrice": 1000, "discount": 5}],
            },
            headers=auth_headers,
        )
        assert response.status_code == 201
        quote = response.json()
        assert quote["quoteNumber"] == f"DEV-{CURRENT_YEAR}-0001"

        response = await http_client.post(f"/api/v1/quotes/{quote['id']}/convert", headers=auth_headers)
        assert response.status_code == 200
        body = response.json()
        assert body["quote"]["convertedToInvoiceId"] == body["invoice"]["id"]
        assert body["quote"]["status"] == "accepted"
        assert Decimal(body["invoice"]["total"]) == Decimal("1140.00")

        response = await http_client.post(f"/api/v1/quotes/{quote['id']}/convert", headers=auth_headers)
        assert response.status_code == 403
        assert response.json()["error"] == "Devis déjà converti en facture"

    async def test_duplicate_and_convert_back(self, http_client, auth_headers, invoice):
        response = await http_client.post(
            f"/api/v1/invoices/{invoice['id']}/convert-to-quote", headers=auth_headers
        )
        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True

        response = await http_client.post(
            f"/api/v1/quotes/{body['quote']['id']}/duplicate", headers=auth_headers
        )
        assert response.status_code == 201
        assert response.json()["quoteNumber"] == f"DEV-{CURRENT_YEAR}-0002"


# ============================================================
# Clients et paramètres
# ============================================================


class TestClientsAndSettings:

    async def test_client_with_invoice_cannot_be_deleted(self, http_client, auth_headers, invoice):
        response = await http_client.delete(
            f"/api/v1/clients/{invoice['clientId']}", headers=auth_headers
        )
        assert response.status_code == 400

    async def test_client_name_required(self, http_client, auth_headers):
        response = await http_client.post("/api/v1/clients", json={}, headers=auth_headers)
        assert response.status_code == 400
        assert response.json()["error"] == "Le nom est requis"

    async def test_settings_created_lazily(self, http_client, auth_headers):
        response = await http_client.get("/api/v1/settings", headers=auth_headers)
        assert response.status_code == 200
        assert response.json()["invoiceTheme"] == "modern"
        assert response.json()["invoicePrimaryColor"] == "#0ea5e9"

    async def test_settings_partial_update(self, http_client, auth_headers):
        response = await http_client.put(
            "/api/v1/settings/company",
            json={"companyName": "Orbital Studio", "siret": "73282932000074"},
            headers=auth_headers,
        )
        assert response.status_code == 200
        assert response.json()["companyName"] == "Orbital Studio"

        response = await http_client.put(
            "/api/v1/settings", json={"quoteTheme": "minimal"}, headers=auth_headers
        )
        body = response.json()
        assert body["quoteTheme"] == "minimal"
        assert body["companyName"] == "Orbital Studio"

    async def test_invalid_color_rejected(self, http_client, auth_headers):
        response = await http_client.put(
            "/api/v1/settings/theme/invoice",
            json={"invoicePrimaryColor": "blue"},
            headers=auth_headers,
        )
        assert response.status_code == 400

    async def test_stats(self, http_client, auth_headers, invoice):
        await http_client.post(
            "/api/v1/payments",
            json={"invoiceId": invoice["id"], "amount": 700, "method": "check"},
            headers=auth_headers,
        )
        response = await http_client.get("/api/v1/payments/stats", headers=auth_headers)
        assert response.status_code == 200
        stats = response.json()
        assert Decimal(stats["month"]["encaisse"]) == Decimal("700.00")
        assert Decimal(stats["enAttente"]) == Decimal("2700.00")
        assert stats["overdue"]["count"] == 0
