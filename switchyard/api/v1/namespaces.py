"""Namespace and project listings, restricted to what the caller may read."""

from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from switchyard.api.v1.auth import get_current_user
from switchyard.core.database import get_db
from switchyard.models import Namespace, Project
from switchyard.schemas.auth import CurrentUser
from switchyard.schemas.permissions import ActionType
from switchyard.schemas.tenancy import (
    NamespaceItem,
    NamespacesListResponse,
    ProjectItem,
    ProjectsListResponse,
)
from switchyard.services.authorization import (
    filter_by_namespace,
    filter_by_namespace_project,
    filter_by_project,
)

router = APIRouter()


@router.get("/namespaces", response_model=NamespacesListResponse)
def list_namespaces(
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
) -> NamespacesListResponse:
    query = db.query(Namespace)
    query = filter_by_namespace(
        query, current_user.permissions.resources, ActionType.READ, Namespace.namespace_code
    )
    rows = query.order_by(Namespace.namespace_code).all()
    return NamespacesListResponse(namespaces=[NamespaceItem.model_validate(r) for r in rows])


@router.get("/namespaces/{namespace_code}/projects", response_model=ProjectsListResponse)
def list_namespace_projects(
    namespace_code: str,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
) -> ProjectsListResponse:
    """Projects of one namespace the caller may read. Unknown namespaces give an empty list."""
    query = db.query(Project)
    query = filter_by_project(
        query,
        current_user.permissions.resources,
        namespace_code,
        ActionType.READ,
        Project.namespace_code,
        Project.project_code,
    )
    rows = query.order_by(Project.project_code).all()
    return ProjectsListResponse(projects=[ProjectItem.model_validate(r) for r in rows])


@router.get("/projects", response_model=ProjectsListResponse)
def list_projects(
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
) -> ProjectsListResponse:
    """Every project the caller may read, across namespaces."""
    query = db.query(Project)
    query = filter_by_namespace_project(
        query,
        current_user.permissions.resources,
        ActionType.READ,
        Project.namespace_code,
        Project.project_code,
    )
    rows = query.order_by(Project.namespace_code, Project.project_code).all()
    return ProjectsListResponse(projects=[ProjectItem.model_validate(r) for r in rows])
