"""ORM models for the namespace/project tenancy codes."""

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, UniqueConstraint, func

from switchyard.models.base import Base


class Namespace(Base):
    __tablename__ = "namespaces"

    id = Column(Integer, primary_key=True, autoincrement=True)
    namespace_code = Column(String(50), nullable=False, unique=True, index=True)
    name = Column(String(255), nullable=False, default="")
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())


class Project(Base):
    """Project inside a namespace; (namespace_code, project_code) is unique."""

    __tablename__ = "projects"
    __table_args__ = (
        UniqueConstraint("namespace_code", "project_code", name="uq_projects_namespace_project"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    namespace_code = Column(
        String(50),
        ForeignKey("namespaces.namespace_code", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    project_code = Column(String(50), nullable=False, index=True)
    name = Column(String(255), nullable=False, default="")
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
