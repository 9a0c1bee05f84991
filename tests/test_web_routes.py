"""
tests/test_web_routes.py -- Integration tests for the server-rendered web UI.

These tests run through the real ASGI stack using the web_client fixture
(follow_redirects=False) and assert on redirect Location headers directly --
following the redirect would hide them.

Coverage:
  - Unauthenticated requests -> 302 /login?next={path}
  - Login form: bad credentials, username or e-mail, open-redirect guard
  - Car and customer forms: create, per-field error rendering, edit, delete
"""

from __future__ import annotations

from urllib.parse import parse_qs, urlparse

import pytest
from fastapi.testclient import TestClient

from core.config import get_settings


def _cookie(token: str) -> dict[str, str]:
    return {"Cookie": f"{get_settings().auth_cookie_name}={token}"}


@pytest.fixture(autouse=True)
def _empty_cookie_jar(web_client: tuple[TestClient, str]) -> None:
    web_client[0].cookies.clear()


def _car_form(**overrides) -> dict[str, str]:
    form = {
        "brand": "Fiat",
        "model": "Uno",
        "color": "BRANCO",
        "year_manufacture": "2012",
        "imported": "on",
        "plates": "FIA-7U12",
        "selling_date": "",
        "selling_price": "18.500,00",
    }
    form.update(overrides)
    return form


def _customer_form(**overrides) -> dict[str, str]:
    form = {
        "name": "Joana Ribeiro",
        "ident_document": "987.654.321-00",
        "birth_date": "1979-11-30",
        "street_name": "Avenida Brasil",
        "house_number": "1500",
        "complements": "",
        "district": "Jardim",
        "municipality": "Ribeirão Preto",
        "state": "SP",
        "phone": "(16) 98888-7777",
        "email": "joana@example.com",
    }
    form.update(overrides)
    return form


class TestAuthRedirect:
    @pytest.mark.parametrize("path", ["/", "/cars", "/cars/new", "/customers", "/customers/1/edit"])
    def test_unauthenticated_redirects_to_login(self, web_client, path: str) -> None:
        client, _token = web_client
        resp = client.get(path)
        assert resp.status_code == 302
        location = resp.headers["location"]
        assert location.startswith("/login")
        assert parse_qs(urlparse(location).query)["next"] == [path]

    def test_post_unauthenticated_creates_nothing(self, web_client) -> None:
        client, token = web_client
        resp = client.post("/cars", data=_car_form(brand="Ghost"))
        assert resp.status_code == 302
        assert "Ghost" not in client.get("/cars", headers=_cookie(token)).text

    def test_home_redirects_to_cars(self, web_client) -> None:
        client, token = web_client
        resp = client.get("/", headers=_cookie(token))
        assert resp.status_code == 302
        assert resp.headers["location"] == "/cars"


class TestLogin:
    def test_login_page_renders(self, web_client) -> None:
        client, _token = web_client
        resp = client.get("/login")
        assert resp.status_code == 200
        assert 'name="login"' in resp.text

    def test_bad_credentials(self, web_client) -> None:
        client, _token = web_client
        resp = client.post("/login", data={"login": "testadmin", "password": "nope"})
        assert resp.status_code == 302
        assert resp.headers["location"] == "/login?error=bad_credentials"

    def test_error_message_whitelisted(self, web_client) -> None:
        client, _token = web_client
        resp = client.get("/login?error=<script>alert(1)</script>")
        assert "<script>" not in resp.text

    @pytest.mark.parametrize("login", ["testadmin", "testadmin@carstore.example.com"])
    def test_login_sets_cookie_and_redirects(self, web_client, login: str) -> None:
        client, _token = web_client
        resp = client.post("/login", data={"login": login, "password": "testpass123", "next": "/customers"})
        assert resp.status_code == 302
        assert resp.headers["location"] == "/customers"
        assert get_settings().auth_cookie_name in resp.cookies

    def test_username_with_at_sign(self, web_client) -> None:
        client, _token = web_client
        client.app.state.user_flow.create(
            {
                "fullname": "Vendas Loja",
                "username": "vendas@loja",
                "email": "vendas@carstore.example.com",
                "password": "balcao 2024 ",
            }
        )
        resp = client.post("/login", data={"login": "vendas@loja", "password": "balcao 2024 "})
        assert resp.status_code == 302
        assert resp.headers["location"] == "/"

    def test_next_cannot_leave_the_site(self, web_client) -> None:
        client, _token = web_client
        resp = client.post("/login", data={"login": "testadmin", "password": "testpass123", "next": "//evil.test"})
        assert resp.headers["location"] == "/"

    def test_logout(self, web_client) -> None:
        client, token = web_client
        resp = client.post("/logout", headers=_cookie(token))
        assert resp.status_code == 302
        assert resp.headers["location"] == "/login"


class TestCarPages:
    def test_create_redirects_to_list(self, web_client) -> None:
        client, token = web_client
        resp = client.post("/cars", data=_car_form(), headers=_cookie(token))
        assert resp.status_code == 303
        assert resp.headers["location"] == "/cars"
        page = client.get("/cars", headers=_cookie(token)).text
        assert "FIA-7U12" in page
        assert "18500.00" in page

    def test_errors_render_under_fields(self, web_client) -> None:
        client, token = web_client
        resp = client.post("/cars", data=_car_form(plates="X", color="ROXO-CLARO"), headers=_cookie(token))
        assert resp.status_code == 422
        assert "Plates must have exactly 8 characters." in resp.text
        assert "Invalid color option." in resp.text
        # Submitted values are kept.
        assert 'value="Uno"' in resp.text

    def test_edit_and_delete(self, web_client) -> None:
        client, token = web_client
        client.post("/cars", data=_car_form(plates="EDT-0001"), headers=_cookie(token))
        car = next(c for c in client.app.state.car_flow.list() if c.plates == "EDT-0001")

        form = client.get(f"/cars/{car.id}/edit", headers=_cookie(token))
        assert form.status_code == 200
        assert 'value="EDT-0001"' in form.text

        resp = client.post(f"/cars/{car.id}", data=_car_form(plates="EDT-0002"), headers=_cookie(token))
        assert resp.status_code == 303
        assert client.app.state.car_flow.get(car.id).plates == "EDT-0002"

        resp = client.post(f"/cars/{car.id}/delete", headers=_cookie(token))
        assert resp.status_code == 303
        assert client.post(f"/cars/{car.id}/delete", headers=_cookie(token)).status_code == 404

    def test_delete_asks_for_confirmation(self, web_client) -> None:
        client, token = web_client
        client.post("/cars", data=_car_form(plates="CNF-0001"), headers=_cookie(token))
        page = client.get("/cars", headers=_cookie(token)).text
        assert "return confirm(" in page

    def test_edit_missing_car(self, web_client) -> None:
        client, token = web_client
        assert client.get("/cars/999999/edit", headers=_cookie(token)).status_code == 404


class TestCustomerPages:
    def test_create_redirects_to_list(self, web_client) -> None:
        client, token = web_client
        resp = client.post("/customers", data=_customer_form(), headers=_cookie(token))
        assert resp.status_code == 303
        assert "Joana Ribeiro" in client.get("/customers", headers=_cookie(token)).text

    def test_errors_render_under_fields(self, web_client) -> None:
        client, token = web_client
        resp = client.post(
            "/customers",
            data=_customer_form(phone="123", birth_date=""),
            headers=_cookie(token),
        )
        assert resp.status_code == 422
        assert "Phone must follow the format" in resp.text
        assert 'value="Joana Ribeiro"' in resp.text

    def test_delete_asks_for_confirmation(self, web_client) -> None:
        client, token = web_client
        client.post("/customers", data=_customer_form(name="Confirma Cliente"), headers=_cookie(token))
        page = client.get("/customers", headers=_cookie(token)).text
        assert "return confirm(" in page
