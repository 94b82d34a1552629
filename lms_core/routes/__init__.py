from fastapi import FastAPI


def register_routes(app: FastAPI):
    """Register all domain routers with the FastAPI application."""
    from lms_core.courses.routes import courses_router, analytics_router
    from lms_core.quizzes.routes import quizzes_router
    from lms_core.progress.routes import progress_router

    app.include_router(courses_router, prefix="/courses", tags=["Courses"])
    app.include_router(quizzes_router, prefix="/quizzes", tags=["Quizzes"])
    app.include_router(progress_router, prefix="/progress", tags=["Progress"])
    app.include_router(analytics_router, prefix="/analytics", tags=["Analytics"])
