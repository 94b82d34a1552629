from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from datetime import datetime
import logging

from lms_core.config import init_db, LOG_LEVEL, CORS_ORIGINS
from lms_core.routes import register_routes

APP_VERSION = "1.0.0"

app = FastAPI(
    title="LMS Progression API",
    description="Quiz grading, course progress and content locking",
    version=APP_VERSION
)

# Initialize database
init_db()

logging.basicConfig(level=LOG_LEVEL)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_routes(app)


# Health check endpoint
@app.get("/health")
def health_check():
    return JSONResponse(
        status_code=200,
        content={
            "status": "healthy",
            "timestamp": datetime.utcnow().isoformat(),
            "version": APP_VERSION,
        }
    )


# Error handlers keep the route's detail as the message
@app.exception_handler(404)
def not_found_handler(request, exc):
    return JSONResponse(
        status_code=404,
        content={
            "error": "Not Found",
            "message": getattr(exc, "detail", None) or "The requested resource was not found",
            "status_code": 404
        }
    )


@app.exception_handler(403)
def forbidden_handler(request, exc):
    return JSONResponse(
        status_code=403,
        content={
            "error": "Forbidden",
            "message": getattr(exc, "detail", None) or "You don't have permission to access this resource",
            "status_code": 403
        }
    )


@app.exception_handler(401)
def unauthorized_handler(request, exc):
    return JSONResponse(
        status_code=401,
        content={
            "error": "Unauthorized",
            "message": getattr(exc, "detail", None) or "Authentication required",
            "status_code": 401
        },
        headers={"WWW-Authenticate": "Bearer"}
    )
