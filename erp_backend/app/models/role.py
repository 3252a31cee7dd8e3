"""
Role database model.

A role bundles the capability tags ("contabilidad:read", "almacen:write", "*", ...)
granted to every user holding it.
"""

from sqlalchemy import Column, Integer, String, DateTime, JSON
from sqlalchemy.sql import func
from erp_backend.app.db.session import Base


class Role(Base):
    """Role model with its permission set stored as a JSON list."""
    __tablename__ = "roles"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(String(50), unique=True, index=True, nullable=False)
    description = Column(String(255), nullable=True)
    permissions = Column(JSON, nullable=False, default=list)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<Role(id={self.id}, name='{self.name}')>"
