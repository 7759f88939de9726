import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from cropmgmt.config import settings
from cropmgmt.db.init import init_db
from cropmgmt.exceptions import AppException, app_exception_handler
from cropmgmt.api import dashboard, expenses, farms
from cropmgmt.auth.jwt import router as auth_router

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)

app = FastAPI(
    title=settings.PROJECT_NAME,
    description="Backend API for farm, season, expense and dashboard record keeping",
    version=settings.VERSION,
    docs_url="/docs",
    redoc_url="/redoc"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_exception_handler(AppException, app_exception_handler)

# Initialize database
@app.on_event("startup")
async def startup_event():
    init_db()

# Include routers
prefix = settings.API_PREFIX
app.include_router(auth_router, prefix=f"{prefix}/auth", tags=["auth"])
app.include_router(farms.router, prefix=f"{prefix}/farms", tags=["farms"])
app.include_router(expenses.season_router, prefix=f"{prefix}/seasons/{{season_id}}/expenses", tags=["expenses"])
app.include_router(expenses.router, prefix=f"{prefix}/expenses", tags=["expenses"])
app.include_router(dashboard.router, prefix=f"{prefix}/dashboard", tags=["dashboard"])

@app.get("/")
def read_root():
    return {"message": "Welcome to the crop management API"}
