"""Subscription plan catalog endpoint."""

from fastapi import APIRouter

from bizfinder_api.schemas import PlanResponse
from bizfinder_api.services.plans import PLANS

router = APIRouter()


@router.get("/plans", response_model=list[PlanResponse])
async def list_plans():
    return [PlanResponse.model_validate(plan) for plan in PLANS]
