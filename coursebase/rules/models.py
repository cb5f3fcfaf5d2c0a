from pydantic import BaseModel, Field, model_validator

from coursebase.domain.entities import RoleType


class PaginationRules(BaseModel):
    min_limit: int = Field(1, ge=1)
    max_limit: int = Field(100, ge=1)
    default_limit: int = Field(20, ge=1)

    @model_validator(mode="after")
    def check_bounds(self) -> "PaginationRules":
        if not self.min_limit <= self.default_limit <= self.max_limit:
            raise ValueError("default_limit must lie between min_limit and max_limit")
        return self


class AccessRules(BaseModel):
    # Roles a caller needs for protected routes.
    required_roles: list[RoleType] = Field(default_factory=lambda: ["regular"], min_length=1)
    # Roles granted to a user provisioned on first sign-in.
    default_roles: list[RoleType] = Field(default_factory=lambda: ["regular"], min_length=1)


class LanguageRules(BaseModel):
    default_code: str = "en"


class Rules(BaseModel):
    rules_version: str = "1"
    pagination: PaginationRules = Field(default_factory=PaginationRules)
    access: AccessRules = Field(default_factory=AccessRules)
    languages: LanguageRules = Field(default_factory=LanguageRules)
