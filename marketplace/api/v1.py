"""Centralized v1 API router: all module routers are included here."""

from fastapi import APIRouter

from marketplace.modules.customization.router import router as customization_router
from marketplace.modules.dispute.router import router as dispute_router
from marketplace.modules.notifications.router import activity_router
from marketplace.modules.notifications.router import router as notification_router
from marketplace.modules.order.router import router as order_router

v1_router = APIRouter(prefix="/api/v1")
v1_router.include_router(customization_router)
v1_router.include_router(order_router)
v1_router.include_router(dispute_router)
v1_router.include_router(notification_router)
v1_router.include_router(activity_router)
