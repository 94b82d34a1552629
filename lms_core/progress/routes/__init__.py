from lms_core.progress.routes.progress import router as progress_router

__all__ = ["progress_router"]
