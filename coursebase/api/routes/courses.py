from typing import Any

from fastapi import APIRouter, Depends

from coursebase.api.deps import get_catalog, get_current_user
from coursebase.api.schemas import CourseOutline
from coursebase.core.catalog import Catalog
from coursebase.domain.entities import User

router = APIRouter()


@router.get("/{course_id}/outline", response_model=CourseOutline)
async def get_outline(
    course_id: str,
    current_user: User = Depends(get_current_user),
    catalog: Catalog = Depends(get_catalog),
) -> Any:
    """Course with its visible chapters and their visible sections, in course order."""
    course = await catalog.courses.get_by_id(current_user, course_id, "owner")
    chapters = await catalog.chapters.list_by_ids(current_user, course.chapters)

    outline_chapters = []
    for chapter in chapters:
        sections = await catalog.sections.list_by_ids(current_user, chapter.sections)
        outline_chapters.append(
            {**chapter.model_dump(), "sections": [s.model_dump() for s in sections]}
        )
    return CourseOutline.model_validate({**course.model_dump(), "chapters": outline_chapters})
