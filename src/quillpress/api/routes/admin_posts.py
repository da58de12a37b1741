from fastapi import APIRouter, Depends, Response
from fastapi import status as http_status

from quillpress.api.deps import get_admin_service, get_current_identity
from quillpress.api.schemas import (
    BulkPublishRequest,
    BulkResultResponse,
    PostPageResponse,
    PostResponse,
    StatsResponse,
)
from quillpress.components.admin import AdminPostService
from quillpress.domain.entities import Identity

router = APIRouter()


@router.get("", response_model=PostPageResponse)
def list_posts(
    page: int | None = None,
    limit: int | None = None,
    status: str | None = None,
    is_deleted: bool | None = None,
    author_id: str | None = None,
    q: str | None = None,
    identity: Identity = Depends(get_current_identity),
    service: AdminPostService = Depends(get_admin_service),
) -> PostPageResponse:
    result = service.list_posts(
        identity,
        page,
        limit,
        status=status,
        is_deleted=is_deleted,
        author_id=author_id,
        q=q,
    )
    return PostPageResponse.from_page(result)


@router.get("/stats", response_model=StatsResponse)
def post_stats(
    identity: Identity = Depends(get_current_identity),
    service: AdminPostService = Depends(get_admin_service),
) -> StatsResponse:
    stats = service.stats(identity)
    return StatsResponse(total=stats.total, deleted=stats.deleted, by_status=stats.by_status)


@router.post("/bulk-publish", response_model=BulkResultResponse)
def bulk_publish(
    req: BulkPublishRequest,
    identity: Identity = Depends(get_current_identity),
    service: AdminPostService = Depends(get_admin_service),
) -> BulkResultResponse:
    result = service.bulk_set_published(identity, req.post_ids, req.publish)
    return BulkResultResponse(matched=result.matched, modified=result.modified)


@router.get("/{post_id}", response_model=PostResponse)
def get_post(
    post_id: str,
    identity: Identity = Depends(get_current_identity),
    service: AdminPostService = Depends(get_admin_service),
) -> PostResponse:
    return PostResponse.model_validate(service.get_post(identity, post_id))


@router.delete("/{post_id}", response_model=PostResponse)
def soft_delete_post(
    post_id: str,
    identity: Identity = Depends(get_current_identity),
    service: AdminPostService = Depends(get_admin_service),
) -> PostResponse:
    return PostResponse.model_validate(service.soft_delete(identity, post_id))


@router.delete("/{post_id}/force", status_code=http_status.HTTP_204_NO_CONTENT)
def force_delete_post(
    post_id: str,
    identity: Identity = Depends(get_current_identity),
    service: AdminPostService = Depends(get_admin_service),
) -> Response:
    service.force_delete(identity, post_id)
    return Response(status_code=http_status.HTTP_204_NO_CONTENT)


@router.post("/{post_id}/restore", response_model=PostResponse)
def restore_post(
    post_id: str,
    identity: Identity = Depends(get_current_identity),
    service: AdminPostService = Depends(get_admin_service),
) -> PostResponse:
    return PostResponse.model_validate(service.restore(identity, post_id))
