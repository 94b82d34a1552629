from lms_core.courses.routes.courses import router as courses_router
from lms_core.courses.routes.analytics import router as analytics_router

__all__ = ["courses_router", "analytics_router"]
