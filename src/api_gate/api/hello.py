from fastapi import APIRouter

from ..schemas import HelloResponse

router = APIRouter(tags=["Hello"])


@router.get("/hello", response_model=HelloResponse)
async def hello():
    """Authenticated greeting endpoint."""
    return HelloResponse(message="Hello, World!")
