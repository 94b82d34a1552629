from lms_core.quizzes.routes.quizzes import router as quizzes_router

__all__ = ["quizzes_router"]
