from fastapi import APIRouter

from budgetflow.api.allocations import allocations_router
from budgetflow.api.budget import budget_router
from budgetflow.api.expenses import expenses_router

api_router = APIRouter()
api_router.include_router(allocations_router)
api_router.include_router(expenses_router)
api_router.include_router(budget_router)
