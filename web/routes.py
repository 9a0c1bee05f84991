"""
web/routes.py -- Jinja2 template routes for the CarStore web UI.

These routes serve server-rendered HTML. They share app.state with the API
routes (same stores, same mutation flows) but return HTML instead of JSON.

The web UI is outside the gate's /api/ scope. Each protected handler calls
_require_auth(), which runs the same credential lookup and verification as the
gate (try_get_auth_user) and redirects to /login?next=<path> instead of
answering 403.

Route registration order matters: GET /cars/new and GET /customers/new are
registered before any /{id} route of the same resource so "new" is never
captured as a path parameter.

Routes:
  GET  /                              -- redirect to /cars
  GET  /login                         -- login form
  POST /login                         -- handle login, set cookie, redirect next
  POST /logout                        -- clear cookie, redirect /login
  GET  /cars                          -- car list (by brand)
  GET  /cars/new                      -- car creation form
  POST /cars                          -- create, 303 to /cars
  GET  /cars/{car_id}/edit            -- pre-populated edit form
  POST /cars/{car_id}                 -- full update, 303 to /cars
  POST /cars/{car_id}/delete          -- delete, 303 to /cars
  GET  /customers ... (same set as /cars)

Validation errors re-render the form with status 422, the submitted values
kept and one message per field shown beneath its input.
"""

import logging
from pathlib import Path
from typing import Any, Optional

from fastapi import APIRouter, Form, Request
from fastapi.responses import HTMLResponse, RedirectResponse
from fastapi.templating import Jinja2Templates

from auth.dependencies import try_get_auth_user
from auth.store import UserStore
from auth.tokens import authenticate_user, clear_auth_cookie, create_access_token, set_auth_cookie
from core.errors import AuthenticationError, NotFoundError, ValidationError
from core.mutation import MutationFlow
from inventory.models import Car, Customer
from inventory.schemas import CarColor, StateCode

logger = logging.getLogger("carstore.web")

templates = Jinja2Templates(directory=str(Path(__file__).parent / "templates"))
# layout.html calls this to show the signed-in user without every handler
# adding it to the context.
templates.env.globals["try_get_auth_user"] = try_get_auth_user
router = APIRouter()

# ---------------------------------------------------------------------------
# Auth helpers
# ---------------------------------------------------------------------------

# Whitelist mapping for ?error= query params on /login.
# The raw query param is NEVER passed to templates -- only the message from
# this dict is.
_ERROR_MESSAGES: dict[str, str] = {
    "bad_credentials": "Invalid username, e-mail or password.",
}


def _safe_next(next_url: Optional[str]) -> str:
    """Validate a post-login redirect target. Only accept relative paths.

    Rejects absolute URLs and protocol-relative ones ("//host/...") so a
    crafted ?next= cannot send the user off-site after login.
    """
    if next_url and next_url.startswith("/") and not next_url.startswith("//"):
        return next_url
    return "/"


def _require_auth(request: Request) -> Optional[RedirectResponse]:
    """Return a redirect to /login if the request carries no valid session.

    Call at the top of protected route handlers:
        if redirect := _require_auth(request):
            return redirect
    """
    if try_get_auth_user(request) is None:
        return RedirectResponse(f"/login?next={request.url.path}", status_code=302)
    return None


def _not_found(exc: NotFoundError) -> HTMLResponse:
    return HTMLResponse(f"<h1>{exc.message}</h1>", status_code=404)


# ---------------------------------------------------------------------------
# Form <-> payload mapping
# ---------------------------------------------------------------------------

_CAR_TEXT_FIELDS = ("brand", "model", "color", "year_manufacture", "plates", "selling_date", "selling_price")
_CUSTOMER_FIELDS = (
    "name",
    "ident_document",
    "birth_date",
    "street_name",
    "house_number",
    "complements",
    "district",
    "municipality",
    "state",
    "phone",
    "email",
)


async def _car_form_data(request: Request) -> dict[str, Any]:
    """Read the car form. Everything stays a string except the checkbox."""
    form = await request.form()
    data: dict[str, Any] = {name: str(form.get(name) or "").strip() for name in _CAR_TEXT_FIELDS}
    data["plates"] = str(form.get("plates") or "")
    # Unchecked checkboxes are simply absent from the submission.
    data["imported"] = "imported" in form
    # "85.000,00" and "85000.00" both mean the same price.
    price = data["selling_price"]
    if "," in price:
        data["selling_price"] = price.replace(".", "").replace(",", ".")
    return data


async def _customer_form_data(request: Request) -> dict[str, Any]:
    form = await request.form()
    return {name: str(form.get(name) or "").strip() for name in _CUSTOMER_FIELDS}


def _car_to_form(car: Car) -> dict[str, Any]:
    return {
        "brand": car.brand,
        "model": car.model,
        "color": car.color,
        "year_manufacture": str(car.year_manufacture),
        "imported": car.imported,
        "plates": car.plates,
        "selling_date": car.selling_date.isoformat() if car.selling_date else "",
        "selling_price": f"{car.selling_price:.2f}",
    }


def _customer_to_form(customer: Customer) -> dict[str, Any]:
    return {
        "name": customer.name,
        "ident_document": customer.ident_document,
        "birth_date": customer.birth_date.isoformat(),
        "street_name": customer.street_name,
        "house_number": customer.house_number,
        "complements": customer.complements or "",
        "district": customer.district,
        "municipality": customer.municipality,
        "state": customer.state,
        "phone": customer.phone,
        "email": customer.email,
    }


def _car_flow(request: Request) -> MutationFlow[Car]:
    return request.app.state.car_flow


def _customer_flow(request: Request) -> MutationFlow[Customer]:
    return request.app.state.customer_flow


def _render_car_form(
    request: Request,
    form_data: dict,
    car_id: Optional[int] = None,
    errors: Optional[dict[str, str]] = None,
    status_code: int = 200,
) -> HTMLResponse:
    return templates.TemplateResponse(
        request,
        "cars_form.html",
        {
            "car_id": car_id,
            "form_data": form_data,
            "errors": errors or {},
            "colors": [c.value for c in CarColor],
        },
        status_code=status_code,
    )


def _render_customer_form(
    request: Request,
    form_data: dict,
    customer_id: Optional[int] = None,
    errors: Optional[dict[str, str]] = None,
    status_code: int = 200,
) -> HTMLResponse:
    return templates.TemplateResponse(
        request,
        "customers_form.html",
        {
            "customer_id": customer_id,
            "form_data": form_data,
            "errors": errors or {},
            "states": [s.value for s in StateCode],
        },
        status_code=status_code,
    )


# ---------------------------------------------------------------------------
# GET / -- home
# ---------------------------------------------------------------------------


@router.get("/", response_class=HTMLResponse)
def home(request: Request) -> RedirectResponse:
    if redirect := _require_auth(request):
        return redirect
    return RedirectResponse("/cars", status_code=302)


# ---------------------------------------------------------------------------
# Cars
# ---------------------------------------------------------------------------


@router.get("/cars", response_class=HTMLResponse)
def cars_list(request: Request) -> HTMLResponse:
    if redirect := _require_auth(request):
        return redirect
    return templates.TemplateResponse(request, "cars_list.html", {"cars": _car_flow(request).list()})


@router.get("/cars/new", response_class=HTMLResponse)
def car_create_form(request: Request) -> HTMLResponse:
    """Render an empty car form."""
    if redirect := _require_auth(request):
        return redirect
    return _render_car_form(request, {"imported": False})


@router.post("/cars", response_class=HTMLResponse)
async def car_create(request: Request) -> HTMLResponse:
    if redirect := _require_auth(request):
        return redirect
    form_data = await _car_form_data(request)
    try:
        _car_flow(request).create(form_data)
    except ValidationError as exc:
        return _render_car_form(request, form_data, errors=exc.by_field(), status_code=422)
    return RedirectResponse("/cars", status_code=303)


@router.get("/cars/{car_id}/edit", response_class=HTMLResponse)
def car_edit_form(request: Request, car_id: int) -> HTMLResponse:
    if redirect := _require_auth(request):
        return redirect
    try:
        car = _car_flow(request).get(car_id)
    except NotFoundError as exc:
        return _not_found(exc)
    return _render_car_form(request, _car_to_form(car), car_id=car_id)


@router.post("/cars/{car_id}", response_class=HTMLResponse)
async def car_update(request: Request, car_id: int) -> HTMLResponse:
    """Handle the edit form. The form always carries every field, so this is a full update."""
    if redirect := _require_auth(request):
        return redirect
    form_data = await _car_form_data(request)
    try:
        _car_flow(request).replace(car_id, form_data)
    except ValidationError as exc:
        return _render_car_form(request, form_data, car_id=car_id, errors=exc.by_field(), status_code=422)
    except NotFoundError as exc:
        return _not_found(exc)
    return RedirectResponse("/cars", status_code=303)


@router.post("/cars/{car_id}/delete")
def car_delete(request: Request, car_id: int) -> HTMLResponse:
    if redirect := _require_auth(request):
        return redirect
    try:
        _car_flow(request).delete(car_id)
    except NotFoundError as exc:
        return _not_found(exc)
    return RedirectResponse("/cars", status_code=303)


# ---------------------------------------------------------------------------
# Customers
# ---------------------------------------------------------------------------


@router.get("/customers", response_class=HTMLResponse)
def customers_list(request: Request) -> HTMLResponse:
    if redirect := _require_auth(request):
        return redirect
    return templates.TemplateResponse(
        request, "customers_list.html", {"customers": _customer_flow(request).list()}
    )


@router.get("/customers/new", response_class=HTMLResponse)
def customer_create_form(request: Request) -> HTMLResponse:
    if redirect := _require_auth(request):
        return redirect
    return _render_customer_form(request, {})


@router.post("/customers", response_class=HTMLResponse)
async def customer_create(request: Request) -> HTMLResponse:
    if redirect := _require_auth(request):
        return redirect
    form_data = await _customer_form_data(request)
    try:
        _customer_flow(request).create(form_data)
    except ValidationError as exc:
        return _render_customer_form(request, form_data, errors=exc.by_field(), status_code=422)
    return RedirectResponse("/customers", status_code=303)


@router.get("/customers/{customer_id}/edit", response_class=HTMLResponse)
def customer_edit_form(request: Request, customer_id: int) -> HTMLResponse:
    if redirect := _require_auth(request):
        return redirect
    try:
        customer = _customer_flow(request).get(customer_id)
    except NotFoundError as exc:
        return _not_found(exc)
    return _render_customer_form(request, _customer_to_form(customer), customer_id=customer_id)


@router.post("/customers/{customer_id}", response_class=HTMLResponse)
async def customer_update(request: Request, customer_id: int) -> HTMLResponse:
    if redirect := _require_auth(request):
        return redirect
    form_data = await _customer_form_data(request)
    try:
        _customer_flow(request).replace(customer_id, form_data)
    except ValidationError as exc:
        return _render_customer_form(
            request, form_data, customer_id=customer_id, errors=exc.by_field(), status_code=422
        )
    except NotFoundError as exc:
        return _not_found(exc)
    return RedirectResponse("/customers", status_code=303)


@router.post("/customers/{customer_id}/delete")
def customer_delete(request: Request, customer_id: int) -> HTMLResponse:
    if redirect := _require_auth(request):
        return redirect
    try:
        _customer_flow(request).delete(customer_id)
    except NotFoundError as exc:
        return _not_found(exc)
    return RedirectResponse("/customers", status_code=303)


# ---------------------------------------------------------------------------
# Login / logout
# ---------------------------------------------------------------------------


@router.get("/login", response_class=HTMLResponse)
def login_form(request: Request) -> HTMLResponse:
    """Render the login page. Already-authenticated users go straight to /."""
    if try_get_auth_user(request) is not None:
        return RedirectResponse("/", status_code=302)

    error_msg = _ERROR_MESSAGES.get(request.query_params.get("error", ""), None)
    return templates.TemplateResponse(
        request,
        "login.html",
        {"error_msg": error_msg, "next": _safe_next(request.query_params.get("next"))},
    )


@router.post("/login", response_class=HTMLResponse)
def login_post(
    request: Request,
    login: str = Form(...),
    password: str = Form(...),
    next_url: str = Form(default="/", alias="next"),
) -> RedirectResponse:
    """Handle the login form. The single "login" field takes a username or an e-mail."""
    user_store: UserStore = request.app.state.user_store
    login = login.strip()
    try:
        user = authenticate_user(user_store, password, username=login, email=login)
    except AuthenticationError:
        return RedirectResponse("/login?error=bad_credentials", status_code=302)

    logger.info("Web login for user %d", user.id)
    token = create_access_token(user)
    resp = RedirectResponse(_safe_next(next_url), status_code=302)
    set_auth_cookie(resp, token)
    resp.headers["Cache-Control"] = "no-store"
    return resp


@router.post("/logout")
def logout(request: Request) -> RedirectResponse:
    """Clear the session cookie and redirect to the login page."""
    resp = RedirectResponse("/login", status_code=302)
    clear_auth_cookie(resp)
    return resp
