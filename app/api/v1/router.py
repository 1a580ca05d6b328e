
from fastapi import APIRouter

# Auth
from app.api.v1.public.auth import router as auth_router

# Public — facilities & slot availability
from app.api.v1.public.facilities import router as facilities_router

# Public — bookings & waitlist
from app.api.v1.public.bookings import router as bookings_router

# Public — user profile & notifications
from app.api.v1.public.me import router as me_router

# Admin
from app.api.v1.admin.facilities import router as admin_facilities_router
from app.api.v1.admin.bookings import router as admin_bookings_router
from app.api.v1.admin.notifications import router as admin_notifications_router

api_router = APIRouter()

# --- Auth ---
api_router.include_router(auth_router)

# --- Public: facilities ---
api_router.include_router(facilities_router)

# --- Public: bookings ---
api_router.include_router(bookings_router)

# --- Public: profile & notifications ---
api_router.include_router(me_router)

# --- Admin ---
api_router.include_router(admin_facilities_router)
api_router.include_router(admin_bookings_router)
api_router.include_router(admin_notifications_router)
