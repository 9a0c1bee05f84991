"""
api/routes/v1/customers.py -- Customer routes for the CarStore REST API.

Routes:
  POST   /customers                 -- create customer         201 | 422
  GET    /customers                 -- list customers by name  200
  GET    /customers/{customer_id}   -- customer detail         200 | 404
  PUT    /customers/{customer_id}   -- full update             204 | 404 | 422
  PATCH  /customers/{customer_id}   -- partial update          204 | 404 | 422
  DELETE /customers/{customer_id}   -- delete                  204 | 404
"""

from typing import Any

from fastapi import APIRouter, Body, Depends, Request, Response

from api.models import CustomerResponse
from auth.dependencies import get_auth_user
from core.mutation import MutationFlow
from inventory.models import Customer

router = APIRouter(dependencies=[Depends(get_auth_user)])


def _flow(request: Request) -> MutationFlow[Customer]:
    return request.app.state.customer_flow


@router.post("/customers", status_code=201)
def create_customer(request: Request, payload: Any = Body(...)) -> Response:
    customer_id = _flow(request).create(payload)
    return Response(status_code=201, headers={"Location": f"/api/v1/customers/{customer_id}"})


@router.get("/customers", response_model=list[CustomerResponse])
def list_customers(request: Request) -> list[CustomerResponse]:
    return [CustomerResponse.from_customer(c) for c in _flow(request).list()]


@router.get("/customers/{customer_id}", response_model=CustomerResponse)
def get_customer(request: Request, customer_id: int) -> CustomerResponse:
    return CustomerResponse.from_customer(_flow(request).get(customer_id))


@router.put("/customers/{customer_id}", status_code=204)
def replace_customer(request: Request, customer_id: int, payload: Any = Body(...)) -> Response:
    _flow(request).replace(customer_id, payload)
    return Response(status_code=204)


@router.patch("/customers/{customer_id}", status_code=204)
def patch_customer(request: Request, customer_id: int, payload: Any = Body(...)) -> Response:
    _flow(request).patch(customer_id, payload)
    return Response(status_code=204)


@router.delete("/customers/{customer_id}", status_code=204)
def delete_customer(request: Request, customer_id: int) -> Response:
    _flow(request).delete(customer_id)
    return Response(status_code=204)
