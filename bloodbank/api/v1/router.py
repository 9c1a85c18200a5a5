"""Main router aggregator for API v1."""

from fastapi import APIRouter

from bloodbank.api.v1.donors import router as donors_router
from bloodbank.api.v1.inventory import router as inventory_router
from bloodbank.api.v1.requests import router as requests_router
from bloodbank.api.v1.stats import router as stats_router

router = APIRouter(prefix="/api")

router.include_router(stats_router)
router.include_router(donors_router)
router.include_router(inventory_router)
router.include_router(requests_router)
