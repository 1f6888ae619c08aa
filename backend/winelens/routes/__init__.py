from .analyze import router as analyze_router
from .analysis_result import router as analysis_result_router
from .image_search import router as image_search_router

__all__ = ["analyze_router", "analysis_result_router", "image_search_router"]
