from pydantic import BaseModel, Field, validator
from typing import List, Optional, Union
from devspace.models.portfolio import ProjectCategory, ProjectVisibility, ProjectStatus

MAX_TAGS = 10


class ProjectLinks(BaseModel):
    live: Optional[str] = Field(None, max_length=500)
    github: Optional[str] = Field(None, max_length=500)
    demo: Optional[str] = Field(None, max_length=500)
    documentation: Optional[str] = Field(None, max_length=500)


class ProjectBase(BaseModel):
    short_description: Optional[str] = Field(None, max_length=200)
    tags: List[str] = []
    # Accepts ["Python"] or [{"name": "Python"}]
    technologies: List[Union[str, dict]] = []
    keywords: List[str] = []
    links: Optional[ProjectLinks] = None
    thumbnail: Optional[str] = Field(None, max_length=500)
    visibility: ProjectVisibility = ProjectVisibility.PUBLIC
    status: ProjectStatus = ProjectStatus.COMPLETED

    class Config:
        str_strip_whitespace = True

    @validator('tags', 'keywords')
    def clean_words(cls, v):
        if v is None:
            return v
        cleaned = [t.strip().lower() for t in v if t and t.strip()]
        if len(cleaned) > MAX_TAGS:
            raise ValueError(f'At most {MAX_TAGS} entries are allowed')
        if any(len(t) > 30 for t in cleaned):
            raise ValueError('Entries cannot be longer than 30 characters')
        return cleaned

    @validator('technologies')
    def technology_names(cls, v):
        if v is None:
            return v
        names = []
        for tech in v:
            name = tech.get('name') if isinstance(tech, dict) else tech
            if isinstance(name, str) and name.strip():
                names.append(name.strip())
        return names


class ProjectCreate(ProjectBase):
    title: str = Field(..., min_length=3, max_length=100)
    description: str = Field(..., min_length=10, max_length=5000)
    category: ProjectCategory


class ProjectUpdate(ProjectBase):
    """All fields optional; only the fields sent are applied"""
    title: Optional[str] = Field(None, min_length=3, max_length=100)
    description: Optional[str] = Field(None, min_length=10, max_length=5000)
    category: Optional[ProjectCategory] = None
    tags: Optional[List[str]] = None
    technologies: Optional[List[Union[str, dict]]] = None
    keywords: Optional[List[str]] = None
    visibility: Optional[ProjectVisibility] = None
    status: Optional[ProjectStatus] = None
    featured: Optional[bool] = None


class CommentCreate(BaseModel):
    content: Optional[str] = None
