from fastapi import APIRouter, Depends, File, UploadFile, status

from quillpress.api.deps import (
    get_content_service,
    get_current_identity,
    get_optional_identity,
)
from quillpress.api.schemas import (
    MediaResponse,
    PostCreateRequest,
    PostPageResponse,
    PostResponse,
    PostUpdateRequest,
    RevisionResponse,
)
from quillpress.components.content import ContentService, CreatePostInput, PostPatch
from quillpress.domain.entities import Identity

router = APIRouter()


# --- Public reads ---
# Fixed paths are declared before /{post_id} so they are not captured by it.


@router.get("", response_model=PostPageResponse)
def list_published(
    page: int | None = None,
    limit: int | None = None,
    tag: str | None = None,
    category: str | None = None,
    author_id: str | None = None,
    q: str | None = None,
    service: ContentService = Depends(get_content_service),
) -> PostPageResponse:
    result = service.list_published(
        page, limit, tag=tag, category=category, author_id=author_id, q=q
    )
    return PostPageResponse.from_page(result)


@router.get("/search", response_model=PostPageResponse)
def search_posts(
    q: str | None = None,
    page: int | None = None,
    limit: int | None = None,
    service: ContentService = Depends(get_content_service),
) -> PostPageResponse:
    return PostPageResponse.from_page(service.search(q, page, limit))


@router.get("/slug/{slug}", response_model=PostResponse)
def get_post_by_slug(
    slug: str,
    service: ContentService = Depends(get_content_service),
) -> PostResponse:
    return PostResponse.model_validate(service.get_by_slug(slug))


@router.get("/me/drafts", response_model=PostPageResponse)
def list_my_drafts(
    page: int | None = None,
    limit: int | None = None,
    identity: Identity = Depends(get_current_identity),
    service: ContentService = Depends(get_content_service),
) -> PostPageResponse:
    return PostPageResponse.from_page(service.list_drafts(identity, page, limit))


@router.get("/author/{author_id}", response_model=PostPageResponse)
def list_by_author(
    author_id: str,
    page: int | None = None,
    limit: int | None = None,
    identity: Identity | None = Depends(get_optional_identity),
    service: ContentService = Depends(get_content_service),
) -> PostPageResponse:
    return PostPageResponse.from_page(service.list_by_author(author_id, identity, page, limit))


@router.get("/{post_id}", response_model=PostResponse)
def get_post(
    post_id: str,
    identity: Identity | None = Depends(get_optional_identity),
    service: ContentService = Depends(get_content_service),
) -> PostResponse:
    return PostResponse.model_validate(service.get(post_id, identity))


# --- Author writes ---


@router.post("", response_model=PostResponse, status_code=status.HTTP_201_CREATED)
def create_post(
    req: PostCreateRequest,
    identity: Identity = Depends(get_current_identity),
    service: ContentService = Depends(get_content_service),
) -> PostResponse:
    inp = CreatePostInput(
        title=req.title,
        body=req.body,
        excerpt=req.excerpt,
        tags=req.tags,
        categories=req.categories,
        feature_image_url=req.feature_image_url,
        meta=req.meta,
        status=req.status,
    )
    return PostResponse.model_validate(service.create(identity, inp))


@router.patch("/{post_id}", response_model=PostResponse)
def update_post(
    post_id: str,
    req: PostUpdateRequest,
    identity: Identity = Depends(get_current_identity),
    service: ContentService = Depends(get_content_service),
) -> PostResponse:
    patch = PostPatch(**req.model_dump())
    return PostResponse.model_validate(service.update(post_id, identity, patch))


@router.delete("/{post_id}", response_model=PostResponse)
def delete_post(
    post_id: str,
    identity: Identity = Depends(get_current_identity),
    service: ContentService = Depends(get_content_service),
) -> PostResponse:
    return PostResponse.model_validate(service.soft_delete(post_id, identity))


@router.post("/{post_id}/publish", response_model=PostResponse)
def publish_post(
    post_id: str,
    identity: Identity = Depends(get_current_identity),
    service: ContentService = Depends(get_content_service),
) -> PostResponse:
    return PostResponse.model_validate(service.publish(post_id, identity))


@router.post("/{post_id}/unpublish", response_model=PostResponse)
def unpublish_post(
    post_id: str,
    identity: Identity = Depends(get_current_identity),
    service: ContentService = Depends(get_content_service),
) -> PostResponse:
    return PostResponse.model_validate(service.unpublish(post_id, identity))


# --- Revisions ---


@router.get("/{post_id}/revisions", response_model=list[RevisionResponse])
def list_revisions(
    post_id: str,
    identity: Identity = Depends(get_current_identity),
    service: ContentService = Depends(get_content_service),
) -> list[RevisionResponse]:
    return [RevisionResponse.model_validate(r) for r in service.list_revisions(post_id, identity)]


@router.post("/{post_id}/revisions/{revision_id}/restore", response_model=PostResponse)
def restore_revision(
    post_id: str,
    revision_id: str,
    identity: Identity = Depends(get_current_identity),
    service: ContentService = Depends(get_content_service),
) -> PostResponse:
    return PostResponse.model_validate(service.restore_revision(post_id, revision_id, identity))


# --- Media ---


@router.post("/{post_id}/image", response_model=MediaResponse, status_code=status.HTTP_201_CREATED)
def upload_image(
    post_id: str,
    file: UploadFile = File(...),
    identity: Identity = Depends(get_current_identity),
    service: ContentService = Depends(get_content_service),
) -> MediaResponse:
    data = file.file.read()
    media = service.attach_image(
        post_id,
        identity,
        filename=file.filename or "upload",
        data=data,
        mime_type=file.content_type or "application/octet-stream",
    )
    return MediaResponse.model_validate(media)
