"""API Routes."""

from fastapi import APIRouter

from .admin_affiliate import router as admin_affiliate_router
from .admin_bookings import router as admin_bookings_router
from .admin_hospitals import router as admin_hospitals_router
from .admin_promotions import router as admin_promotions_router
from .affiliate import router as affiliate_router
from .auth import router as auth_router
from .bookings import router as bookings_router
from .contact import router as contact_router
from .cron import router as cron_router
from .favorites import router as favorites_router
from .gamification import router as gamification_router
from .health import router as health_router
from .hospitals import router as hospitals_router
from .moderation import admin_router as admin_moderation_router
from .moderation import router as moderation_router
from .newsletter import router as newsletter_router
from .notifications import router as notifications_router
from .payments import router as payments_router
from .promotions import router as promotions_router

# Create main API router
api_router = APIRouter()

api_router.include_router(health_router, tags=["Health"])
api_router.include_router(auth_router)
api_router.include_router(hospitals_router)
api_router.include_router(bookings_router)
api_router.include_router(payments_router)
api_router.include_router(favorites_router)
api_router.include_router(promotions_router)
api_router.include_router(newsletter_router)
api_router.include_router(moderation_router)
api_router.include_router(affiliate_router)
api_router.include_router(gamification_router)
api_router.include_router(notifications_router)
api_router.include_router(contact_router)
api_router.include_router(cron_router)

# Admin
api_router.include_router(admin_hospitals_router)
api_router.include_router(admin_promotions_router)
api_router.include_router(admin_bookings_router)
api_router.include_router(admin_moderation_router)
api_router.include_router(admin_affiliate_router)
