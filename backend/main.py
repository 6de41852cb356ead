import os
from dotenv import load_dotenv
load_dotenv() # Load .env file at the very beginning

import logging
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from timeclock.db import init_db
from timeclock.middleware.error_handler import ErrorHandlerMiddleware, timeclock_error_response
from timeclock.routes import clock, health, locations, team, timesheets
from timeclock.services.exceptions import TimeclockError

logger = logging.getLogger(__name__)

app = FastAPI(
    title="Timeclock API",
    description="Employee time tracking: geofenced clock-in/out, team status and timesheets",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc"
)

@app.exception_handler(TimeclockError)
async def timeclock_error_handler(request: Request, exc: TimeclockError):
    return timeclock_error_response(exc)

# Explicit origin list is mandatory when allow_credentials=True.
# Multiple origins can be provided via the CORS_ORIGINS environment variable, comma-separated.
cors_origins_str = os.getenv("CORS_ORIGINS", "http://localhost:3000")
cors_origins = [origin.strip() for origin in cors_origins_str.split(",")]
logger.debug("Configuring CORS for origins: %s", cors_origins)

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Add error handler middleware (after CORS so errors get CORS headers)
app.add_middleware(ErrorHandlerMiddleware)

# Initialize Database
init_db(app)

app.include_router(health.router, tags=["Health"])

@app.get("/")
async def root():
    return {
        "message": "Welcome to the Timeclock API",
        "docs": "/docs",
        "health": "/health"
    }

app.include_router(clock.router, prefix="/api/clock", tags=["Clock"])
app.include_router(locations.router, prefix="/api/locations", tags=["Locations"])
app.include_router(team.router, prefix="/api/team", tags=["Team"])
app.include_router(timesheets.router, prefix="/api/timesheets", tags=["Timesheets"])

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
