from pydantic import BaseModel, Field, field_validator, model_validator

from quillpress.domain.slugs import is_valid_slug


class RbacRules(BaseModel):
    admin_roles: list[str]
    roles: dict[str, list[str]]


class SlugRules(BaseModel):
    fallback: str = "untitled"
    max_length: int = Field(default=120, gt=0)
    max_attempts: int = Field(default=10, gt=0)

    @field_validator("fallback")
    @classmethod
    def _fallback_is_slug(cls, value: str) -> str:
        if not is_valid_slug(value):
            raise ValueError("fallback must be lowercase letters, numbers and hyphens")
        return value


class PageRule(BaseModel):
    default: int = Field(gt=0)
    max: int = Field(gt=0)

    @model_validator(mode="after")
    def _default_within_max(self) -> "PageRule":
        if self.default > self.max:
            raise ValueError("default page size exceeds max")
        return self

    def clamp(self, page: int | None, limit: int | None) -> tuple[int, int]:
        """Return (page, limit): page is 1-based, limit clamped to [1, max]."""
        page = max(1, page or 1)
        if limit is None or limit < 1:
            limit = self.default
        return page, min(limit, self.max)


class PaginationRules(BaseModel):
    public: PageRule
    search: PageRule
    admin: PageRule


class ContentRules(BaseModel):
    excerpt_length: int = Field(default=200, gt=0)
    words_per_minute: int = Field(default=200, gt=0)


class Rules(BaseModel):
    rbac: RbacRules
    slug: SlugRules = Field(default_factory=SlugRules)
    pagination: PaginationRules
    content: ContentRules = Field(default_factory=ContentRules)
