"""Response schemas for namespace and project listings."""

from pydantic import BaseModel


class NamespaceItem(BaseModel):
    namespace_code: str
    name: str

    class Config:
        from_attributes = True


class NamespacesListResponse(BaseModel):
    namespaces: list[NamespaceItem]


class ProjectItem(BaseModel):
    namespace_code: str
    project_code: str
    name: str

    class Config:
        from_attributes = True


class ProjectsListResponse(BaseModel):
    projects: list[ProjectItem]
