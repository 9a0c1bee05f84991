"""
api/routes/v1/cars.py -- Car inventory routes for the CarStore REST API.

Routes:
  POST   /cars            -- create car             201 (no body) | 422
  GET    /cars            -- list cars by brand     200
  GET    /cars/{car_id}   -- car detail             200 | 404
  PUT    /cars/{car_id}   -- full update            204 | 404 | 422
  PATCH  /cars/{car_id}   -- partial update         204 | 404 | 422
  DELETE /cars/{car_id}   -- delete                 204 | 404

Bodies are taken as raw JSON and handed to the car MutationFlow, which
normalizes, validates (collecting every violation) and persists. Errors come
back as core.errors exceptions and are rendered by the handlers in
api/main.py, so no handler here builds an error response itself.
"""

from typing import Any

from fastapi import APIRouter, Body, Depends, Request, Response

from api.models import CarResponse
from auth.dependencies import get_auth_user
from core.mutation import MutationFlow
from inventory.models import Car

# The gate middleware has already rejected anonymous requests; the router-level
# dependency makes the requirement explicit on every route registered here.
router = APIRouter(dependencies=[Depends(get_auth_user)])


def _flow(request: Request) -> MutationFlow[Car]:
    return request.app.state.car_flow


@router.post("/cars", status_code=201)
def create_car(request: Request, payload: Any = Body(...)) -> Response:
    """Register a car. Location points at the new record."""
    car_id = _flow(request).create(payload)
    return Response(status_code=201, headers={"Location": f"/api/v1/cars/{car_id}"})


@router.get("/cars", response_model=list[CarResponse])
def list_cars(request: Request) -> list[CarResponse]:
    """Return every car ordered by brand."""
    return [CarResponse.from_car(c) for c in _flow(request).list()]


@router.get("/cars/{car_id}", response_model=CarResponse)
def get_car(request: Request, car_id: int) -> CarResponse:
    return CarResponse.from_car(_flow(request).get(car_id))


@router.put("/cars/{car_id}", status_code=204)
def replace_car(request: Request, car_id: int, payload: Any = Body(...)) -> Response:
    _flow(request).replace(car_id, payload)
    return Response(status_code=204)


@router.patch("/cars/{car_id}", status_code=204)
def patch_car(request: Request, car_id: int, payload: Any = Body(...)) -> Response:
    """Change some fields. The merged record is validated as a whole."""
    _flow(request).patch(car_id, payload)
    return Response(status_code=204)


@router.delete("/cars/{car_id}", status_code=204)
def delete_car(request: Request, car_id: int) -> Response:
    _flow(request).delete(car_id)
    return Response(status_code=204)
