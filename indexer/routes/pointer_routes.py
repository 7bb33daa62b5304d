"""Pointer API routes."""

from fastapi import APIRouter, Body, Query, Response, status

from indexer.schemas.pointers import PointerListResponse, PointerSummary, PutPointerResponse
from indexer.services.pointer_service import PointerService

router = APIRouter(prefix="/pointers", tags=["Pointers"])


@router.put("/{code_id}", response_model=PutPointerResponse, status_code=status.HTTP_201_CREATED)
async def put_pointer(code_id: str, response: Response, payload: dict = Body(...)):
    """
    Publish a pointer record under a share code.

    Parameters:
        - code_id: Share code without scheme and namespace (e.g. ab12-cd34-ef56-gh78)
        - body: Pointer record in camelCase wire format

    Returns:
        - 201 when stored, 200 when the identical record was already stored

    Raises:
        - 400: Malformed share code
        - 409: Share code already holds a different record
        - 422: Invalid pointer record
    """
    service = PointerService()
    record, created = service.put(code_id, payload)
    if not created:
        response.status_code = status.HTTP_200_OK
    return PutPointerResponse(share_code=record.share_code, root_digest=record.root_digest, created=created)


@router.get("/{code_id}")
async def get_pointer(code_id: str):
    """
    Fetch the pointer record stored under a share code.

    Raises:
        - 400: Malformed share code
        - 404: Unknown share code
    """
    return PointerService().get(code_id)


@router.get("", response_model=PointerListResponse)
async def list_pointers(root_digest: str = Query(..., min_length=1)):
    """List share codes published for a root digest."""
    stored = PointerService().list_by_root(root_digest)
    return PointerListResponse(
        root_digest=root_digest.lower(),
        pointers=[
            PointerSummary(
                share_code=p.share_code,
                file_name=p.record.get("fileName", ""),
                created_at=p.created_at.isoformat(),
            )
            for p in stored
        ],
    )
